"""
Training script for the MLP spam classifier.

This module:
1. Loads the word-count email dataset from CSV
2. Splits it 80/20 into training and test sets with a fixed seed
3. Trains a fresh SpamClassifier with per-sample gradient descent
4. Records the mean squared error of selected epochs
5. Evaluates accuracy and per-class detection rates on the test set
6. Optionally saves the result as the pretrained model
"""

import argparse
import logging
from typing import List, NamedTuple

import torch

from backend.config import (
    ACTIVATION_FUNCTION, DATASET_PATH, HIDDEN_LAYER_SIZES, INIT_SEED, LEARNING_RATE,
    LOSS_REPORT_INTERVAL, MODEL_DIR, NUM_EPOCHS, SHUFFLE_SEED, configure_logging,
)
from ml.activations import activation_names
from ml.errors import ConfigurationError, DatasetError
from ml.evaluation import EpochLoss, TrainingMetrics, evaluate
from ml.spam_model import SpamClassifier

logger = logging.getLogger(__name__)


class TrainingRun(NamedTuple):
    network: SpamClassifier
    metrics: TrainingMetrics
    epoch_losses: List[EpochLoss]


def should_record_epoch(epoch, epochs, report_every=LOSS_REPORT_INTERVAL):
    """Loss is kept for epoch 0, every report_every-th epoch, and the last epoch."""
    return epoch == 0 or epoch % report_every == 0 or epoch == epochs - 1


def train_network(config, x_train, y_train, epochs, report_every=LOSS_REPORT_INTERVAL, shuffle_seed=SHUFFLE_SEED):
    """
    Trains a freshly initialized network for a fixed number of epochs.

    Each epoch visits every training sample once in shuffled order, trains on
    it, then measures (target - predict(x))^2 with the updated parameters.

    @param config: NetworkConfig for the new network
    @param x_train: Training features [n, input_size]
    @param y_train: Training labels [n]
    @param epochs: Number of passes over the training set (0 leaves the network untrained)
    @param report_every: Loss recording interval
    @param shuffle_seed: Seed for the per-epoch order, or None for an unseeded order
    @returns: Tuple of (network, epoch_losses)
    """
    if epochs < 0:
        raise ConfigurationError(f"Number of epochs must not be negative, got {epochs}")
    if report_every <= 0:
        raise ConfigurationError(f"Loss report interval must be positive, got {report_every}")

    x_train = torch.as_tensor(x_train, dtype=torch.float64)
    targets = torch.as_tensor(y_train, dtype=torch.long).tolist()
    network = SpamClassifier(config)

    generator = None
    if shuffle_seed is not None:
        generator = torch.Generator().manual_seed(shuffle_seed)

    epoch_losses = []
    for epoch in range(epochs):
        total_loss = 0.0
        # Step 1: fresh sample order, independent of the train/test split
        order = torch.randperm(len(targets), generator=generator).tolist()

        for idx in order:
            # Step 2: forward, backpropagate and update on one sample
            network.train_sample(x_train[idx], targets[idx])
            # Step 3: squared error measured after the update
            prediction = network.predict(x_train[idx])
            total_loss += (targets[idx] - prediction) ** 2

        avg_loss = total_loss / len(targets)
        if should_record_epoch(epoch, epochs, report_every):
            epoch_losses.append(EpochLoss(epoch=epoch, loss=avg_loss))
            logger.info("Epoch %d/%d - Loss: %.6f", epoch + 1, epochs, avg_loss)

    return network, epoch_losses


def validate_training_data(config, features, labels, name):
    """
    @raises DatasetError: if the feature matrix or labels cannot be trained on
    """
    if features.dim() != 2 or features.shape[1] == 0:
        raise DatasetError(f"{name} features must be a non-empty 2D matrix with at least one feature column")
    if features.shape[1] != config.input_size:
        raise DatasetError(
            f"{name} features have {features.shape[1]} columns but the network expects {config.input_size}"
        )
    if features.shape[0] != labels.shape[0]:
        raise DatasetError(f"{name} set has {features.shape[0]} feature rows but {labels.shape[0]} labels")
    if labels.numel() and not bool(((labels == 0) | (labels == 1)).all()):
        raise DatasetError(f"{name} labels must be 0 (ham) or 1 (spam)")


def train(config, x_train, y_train, x_test, y_test, epochs,
          report_every=LOSS_REPORT_INTERVAL, shuffle_seed=SHUFFLE_SEED):
    """
    Trains and evaluates a network.

    @returns: TrainingRun(network, metrics, epoch_losses)
    @raises ConfigurationError: negative epochs or bad report interval
    @raises DatasetError: empty or inconsistent data
    """
    x_train = torch.as_tensor(x_train, dtype=torch.float64)
    y_train = torch.as_tensor(y_train, dtype=torch.long)
    x_test = torch.as_tensor(x_test, dtype=torch.float64)
    y_test = torch.as_tensor(y_test, dtype=torch.long)

    if x_train.shape[0] == 0:
        raise DatasetError("Training set is empty")
    validate_training_data(config, x_train, y_train, 'Training')
    if x_test.numel() or y_test.numel():
        validate_training_data(config, x_test, y_test, 'Test')
    else:
        x_test = x_test.reshape(0, config.input_size)

    network, epoch_losses = train_network(
        config, x_train, y_train, epochs, report_every=report_every, shuffle_seed=shuffle_seed,
    )
    metrics = evaluate(network, x_test, y_test, train_labels=y_train)
    logger.info(
        "Accuracy: %.2f%% (spam detection %.2f%%, ham detection %.2f%%)",
        100 * metrics.accuracy, 100 * metrics.spam_detection_rate, 100 * metrics.non_spam_detection_rate,
    )
    return TrainingRun(network, metrics, epoch_losses)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Train the MLP spam classifier")
    parser.add_argument('--dataset', default=DATASET_PATH, help="CSV dataset path")
    parser.add_argument('--hidden-sizes', default=','.join(str(s) for s in HIDDEN_LAYER_SIZES),
                        help="Comma-separated hidden layer sizes, e.g. 10,5")
    parser.add_argument('--activation', default=ACTIVATION_FUNCTION, choices=activation_names(),
                        type=str.upper)
    parser.add_argument('--learning-rate', type=float, default=LEARNING_RATE)
    parser.add_argument('--epochs', type=int, default=NUM_EPOCHS)
    parser.add_argument('--seed', type=int, default=INIT_SEED, help="Weight initialization seed")
    parser.add_argument('--shuffle-seed', type=int, default=SHUFFLE_SEED)
    parser.add_argument('--model-dir', default=MODEL_DIR)
    parser.add_argument('--save', action='store_true', help="Save the trained network as the pretrained model")
    return parser.parse_args(argv)


def main(argv=None):
    from ml.persistence import ModelStore
    from ml.spam_detector import SpamDetector, TrainingRequest

    configure_logging()
    args = parse_args(argv)
    detector = SpamDetector(dataset_path=args.dataset, store=ModelStore(args.model_dir))
    try:
        hidden_sizes = [int(s) for s in args.hidden_sizes.split(',')]
    except ValueError:
        logger.error("Invalid number format in hidden layer sizes: %s", args.hidden_sizes)
        return 1

    response = detector.train_model(TrainingRequest(
        hidden_sizes=hidden_sizes,
        activation_function=args.activation,
        learning_rate=args.learning_rate,
        epochs=args.epochs,
        seed=args.seed,
        shuffle_seed=args.shuffle_seed,
    ))
    if response.status != 'success':
        logger.error(response.message)
        return 1

    logger.info(response.message)
    if args.save:
        detector.save_pretrained_model()
        logger.info("Pretrained model saved to %s", args.model_dir)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
