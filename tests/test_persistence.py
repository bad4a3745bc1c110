import os

import pytest
import torch

from ml.errors import ModelLoadError
from ml.evaluation import TrainingMetrics
from ml.persistence import ModelStore, PretrainedModel, deserialize, serialize
from ml.spam_model import NetworkConfig, SpamClassifier


def trained_network(activation="TANH"):
    network = SpamClassifier(
        NetworkConfig(input_size=3, hidden_layer_sizes=[4, 2], activation=activation, learning_rate=0.3)
    )
    for _ in range(5):
        network.train_sample([1.0, 0.0, 2.0], 1)
        network.train_sample([0.0, 1.5, 0.0], 0)
    return network


def test_round_trip_predictions_are_identical():
    network = trained_network()
    restored = deserialize(serialize(network))
    for features in ([1.0, 0.0, 2.0], [0.3, -0.7, 5.0], [0.0, 0.0, 0.0]):
        assert restored.predict(features) == network.predict(features)
    assert restored.describe() == network.describe()


def test_snapshot_is_detached_from_live_network():
    network = trained_network()
    snapshot = serialize(network)
    before = snapshot.weights[0].clone()
    network.train_sample([5.0, 5.0, 5.0], 0)
    assert torch.equal(snapshot.weights[0], before)


def test_store_load_without_model_returns_none(model_store):
    assert not model_store.exists()
    assert model_store.load() is None


def test_store_round_trip_through_disk(model_store):
    network = trained_network("LEAKY_RELU")
    metrics = TrainingMetrics(total_emails=40, accuracy=0.9, hidden_layer_sizes=[4, 2], activation_function="LEAKY_RELU")
    model_store.save(serialize(network, metrics, ["free", "money", "meeting"]))

    loaded = model_store.load()
    assert isinstance(loaded, PretrainedModel)
    assert loaded.metrics == metrics
    assert loaded.feature_names == ["free", "money", "meeting"]
    assert loaded.hidden_layer_sizes == (4, 2)
    assert loaded.activation_function == "LEAKY_RELU"
    assert deserialize(loaded).predict([0.3, 0.1, 0.9]) == network.predict([0.3, 0.1, 0.9])


def test_store_keeps_a_single_model(model_store):
    model_store.save(serialize(trained_network("TANH")))
    model_store.save(serialize(trained_network("RELU")))
    assert model_store.load().activation_function == "RELU"
    assert os.listdir(model_store.directory) == ["pretrained_model.pth"]

    model_store.delete()
    assert model_store.load() is None


def test_corrupt_store_file_is_a_load_error(model_store):
    os.makedirs(model_store.directory)
    with open(model_store.path, "wb") as f:
        f.write(b"not a torch file")
    with pytest.raises(ModelLoadError, match="unreadable"):
        model_store.load()


def test_store_file_missing_fields_is_a_load_error(model_store):
    os.makedirs(model_store.directory)
    torch.save({"input_size": 3}, model_store.path)
    with pytest.raises(ModelLoadError):
        model_store.load()
