"""
Holdout evaluation of a trained SpamClassifier.
"""

from dataclasses import asdict, dataclass, field
from typing import List

import torch

from backend.config import DECISION_THRESHOLD


@dataclass
class EpochLoss:
    epoch: int
    loss: float


@dataclass
class TrainingMetrics:
    """Dataset counts, holdout results and the architecture that produced them."""
    total_emails: int = 0
    spam_emails: int = 0
    non_spam_emails: int = 0
    feature_dimensions: int = 0
    train_size: int = 0
    test_size: int = 0
    accuracy: float = 0.0
    spam_detection_rate: float = 0.0
    non_spam_detection_rate: float = 0.0
    hidden_layer_sizes: List[int] = field(default_factory=list)
    num_hidden_layers: int = 0
    activation_function: str = ''

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        return cls(**data)


def _rate(hits, total):
    return hits / total if total > 0 else 0.0


def evaluate(network, test_features, test_labels, train_labels=None, threshold=DECISION_THRESHOLD):
    """
    Scores the network on a holdout set.

    A sample counts as spam when predict(x) > threshold. Detection rates are
    per-class recall and are 0.0 for a class missing from the test set.

    @param network: Trained SpamClassifier
    @param test_features: Tensor or nested sequence [test_size, input_size]
    @param test_labels: Labels (0 = ham, 1 = spam) [test_size]
    @param train_labels: Training labels, only used for the dataset counts
    @returns: TrainingMetrics
    """
    test_features = torch.as_tensor(test_features, dtype=torch.float64)
    test_labels = torch.as_tensor(test_labels, dtype=torch.long)
    train_labels = torch.as_tensor(train_labels if train_labels is not None else [], dtype=torch.long)

    correct = 0
    total_spam = correct_spam = 0
    total_not_spam = correct_not_spam = 0

    for features, label in zip(test_features, test_labels.tolist()):
        predicted = 1 if network.predict(features) > threshold else 0
        if predicted == label:
            correct += 1
        if label == 1:
            total_spam += 1
            correct_spam += predicted
        else:
            total_not_spam += 1
            correct_not_spam += 1 - predicted

    test_size = len(test_labels)
    all_labels = torch.cat([train_labels, test_labels])
    spam_count = int((all_labels == 1).sum().item())

    return TrainingMetrics(
        total_emails=len(all_labels),
        spam_emails=spam_count,
        non_spam_emails=len(all_labels) - spam_count,
        feature_dimensions=network.input_size,
        train_size=len(train_labels),
        test_size=test_size,
        accuracy=_rate(correct, test_size),
        spam_detection_rate=_rate(correct_spam, total_spam),
        non_spam_detection_rate=_rate(correct_not_spam, total_not_spam),
        hidden_layer_sizes=network.hidden_layer_sizes,
        num_hidden_layers=network.num_hidden_layers,
        activation_function=network.activation.name,
    )
