import pytest
import torch

from ml.errors import ConfigurationError, DatasetError
from ml.evaluation import evaluate
from ml.spam_model import NetworkConfig, SpamClassifier
from ml.train_model import should_record_epoch, train, train_network


def tiny_data():
    x = torch.tensor([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0], [0.0, 0.0]], dtype=torch.float64)
    y = torch.tensor([1, 0, 1, 0])
    return x, y


def clustered_data(config, n_per_class=50):
    """Two well separated clusters, labelled so the untrained network gets them wrong."""
    gen = torch.Generator().manual_seed(7)
    cluster_a = torch.tensor([3.0, 3.0, 0.0, 0.0], dtype=torch.float64) + 0.3 * torch.rand(
        n_per_class, 4, generator=gen, dtype=torch.float64
    )
    cluster_b = torch.tensor([0.0, 0.0, 3.0, 3.0], dtype=torch.float64) + 0.3 * torch.rand(
        n_per_class, 4, generator=gen, dtype=torch.float64
    )
    untrained = SpamClassifier(config)
    mean_a = sum(untrained.predict(x) for x in cluster_a) / n_per_class
    mean_b = sum(untrained.predict(x) for x in cluster_b) / n_per_class
    label_a = 1 if mean_a < mean_b else 0

    features = torch.stack([row for pair in zip(cluster_a, cluster_b) for row in pair])
    labels = torch.tensor([label_a, 1 - label_a] * n_per_class)
    split = int(0.8 * len(labels))
    return features[:split], labels[:split], features[split:], labels[split:]


def test_loss_cadence():
    recorded = [epoch for epoch in range(23) if should_record_epoch(epoch, 23, 5)]
    assert recorded == [0, 5, 10, 15, 20, 22]
    recorded = [epoch for epoch in range(23) if should_record_epoch(epoch, 23, 10)]
    assert recorded == [0, 10, 20, 22]


def test_train_network_records_epoch_losses():
    x, y = tiny_data()
    config = NetworkConfig(input_size=2, hidden_layer_sizes=[3], learning_rate=0.5)
    network, losses = train_network(config, x, y, epochs=12, report_every=5, shuffle_seed=3)
    assert [record.epoch for record in losses] == [0, 5, 10, 11]
    assert all(record.loss >= 0 for record in losses)
    assert isinstance(network, SpamClassifier)


def test_loss_decreases_over_training():
    x, y = tiny_data()
    config = NetworkConfig(input_size=2, hidden_layer_sizes=[3], learning_rate=0.5)
    _, losses = train_network(config, x, y, epochs=400, report_every=100, shuffle_seed=3)
    assert [record.epoch for record in losses] == [0, 100, 200, 300, 399]
    assert losses[-1].loss < losses[0].loss


def test_zero_epochs_returns_untrained_network():
    x, y = tiny_data()
    config = NetworkConfig(input_size=2, hidden_layer_sizes=[3])
    run = train(config, x, y, x, y, epochs=0)
    fresh = SpamClassifier(config)
    assert run.epoch_losses == []
    for trained, initial in zip(run.network.layers, fresh.layers):
        assert torch.equal(trained.weight, initial.weight)
    assert run.metrics == evaluate(fresh, x, y, train_labels=y)


def test_seeded_shuffle_makes_runs_repeatable():
    x, y = tiny_data()
    config = NetworkConfig(input_size=2, hidden_layer_sizes=[3], activation="TANH", learning_rate=0.2)
    first, losses_a = train_network(config, x, y, epochs=6, shuffle_seed=11)
    second, losses_b = train_network(config, x, y, epochs=6, shuffle_seed=11)
    assert losses_a == losses_b
    for a, b in zip(first.layers, second.layers):
        assert torch.equal(a.weight, b.weight)


def test_relu_network_beats_its_untrained_accuracy():
    config = NetworkConfig(input_size=4, hidden_layer_sizes=[3], activation="RELU", learning_rate=0.1)
    x_train, y_train, x_test, y_test = clustered_data(config)

    baseline = train(config, x_train, y_train, x_test, y_test, epochs=0)
    trained = train(config, x_train, y_train, x_test, y_test, epochs=50, shuffle_seed=0)

    assert trained.metrics.accuracy > baseline.metrics.accuracy
    assert len(trained.epoch_losses) == 11


def test_negative_epochs_rejected():
    x, y = tiny_data()
    config = NetworkConfig(input_size=2, hidden_layer_sizes=[3])
    with pytest.raises(ConfigurationError):
        train(config, x, y, x, y, epochs=-1)


def test_empty_training_set_rejected():
    config = NetworkConfig(input_size=2, hidden_layer_sizes=[3])
    with pytest.raises(DatasetError):
        train(config, torch.empty(0, 2), [], [], [], epochs=1)


def test_feature_width_must_match_input_size():
    x, y = tiny_data()
    config = NetworkConfig(input_size=3, hidden_layer_sizes=[3])
    with pytest.raises(DatasetError):
        train(config, x, y, x, y, epochs=1)


def test_labels_must_be_binary():
    x, _ = tiny_data()
    config = NetworkConfig(input_size=2, hidden_layer_sizes=[3])
    with pytest.raises(DatasetError):
        train(config, x, [0, 1, 2, 0], x, [0, 1, 0, 0], epochs=1)


def test_test_labels_without_test_features_rejected():
    x, y = tiny_data()
    config = NetworkConfig(input_size=2, hidden_layer_sizes=[3])
    with pytest.raises(DatasetError):
        train(config, x, y, torch.empty(0, 2), [1, 0], epochs=1)


def test_metrics_echo_architecture_and_counts():
    x, y = tiny_data()
    config = NetworkConfig(input_size=2, hidden_layer_sizes=[3, 2], activation="LEAKY_RELU")
    run = train(config, x[:3], y[:3], x[3:], y[3:], epochs=2, shuffle_seed=1)
    metrics = run.metrics
    assert metrics.total_emails == 4
    assert metrics.spam_emails == 2
    assert metrics.non_spam_emails == 2
    assert metrics.train_size == 3
    assert metrics.test_size == 1
    assert metrics.feature_dimensions == 2
    assert metrics.hidden_layer_sizes == [3, 2]
    assert metrics.num_hidden_layers == 2
    assert metrics.activation_function == "LEAKY_RELU"
