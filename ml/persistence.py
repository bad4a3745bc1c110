"""
Saving and loading the pretrained spam classifier.

A PretrainedModel is a detached snapshot of a trained network plus the metrics
of the run that produced it. ModelStore keeps at most one snapshot on disk,
under a fixed identifier, and replaces it atomically.
"""

import logging
import os
import pickle
import tempfile
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import torch

from backend.config import PRETRAINED_MODEL_ID
from ml.errors import ModelLoadError
from ml.evaluation import TrainingMetrics
from ml.spam_model import NetworkConfig, SpamClassifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PretrainedModel:
    weights: Tuple[torch.Tensor, ...]
    biases: Tuple[torch.Tensor, ...]
    input_size: int
    hidden_layer_sizes: Tuple[int, ...]
    learning_rate: float
    activation_function: str
    metrics: Optional[TrainingMetrics] = None
    feature_names: List[str] = field(default_factory=list)
    seed: Optional[int] = None

    def to_dict(self):
        return {
            'weights': list(self.weights),
            'biases': list(self.biases),
            'input_size': self.input_size,
            'hidden_layer_sizes': list(self.hidden_layer_sizes),
            'learning_rate': self.learning_rate,
            'activation_function': self.activation_function,
            'metrics': self.metrics.to_dict() if self.metrics is not None else None,
            'feature_names': list(self.feature_names),
            'seed': self.seed,
        }

    @classmethod
    def from_dict(cls, data):
        metrics = data.get('metrics')
        return cls(
            weights=tuple(data['weights']),
            biases=tuple(data['biases']),
            input_size=int(data['input_size']),
            hidden_layer_sizes=tuple(data['hidden_layer_sizes']),
            learning_rate=float(data['learning_rate']),
            activation_function=data['activation_function'],
            metrics=TrainingMetrics.from_dict(metrics) if metrics is not None else None,
            feature_names=list(data.get('feature_names') or []),
            seed=data.get('seed'),
        )


def serialize(network, metrics=None, feature_names=None):
    """Snapshot of a network's parameters and configuration, sharing no tensors with it."""
    return PretrainedModel(
        weights=tuple(layer.weight.detach().clone() for layer in network.layers),
        biases=tuple(layer.bias.detach().clone() for layer in network.layers),
        input_size=network.input_size,
        hidden_layer_sizes=tuple(network.hidden_layer_sizes),
        learning_rate=network.learning_rate,
        activation_function=network.activation.name,
        metrics=metrics,
        feature_names=list(feature_names or []),
        seed=network.config.seed,
    )


def deserialize(snapshot):
    """Rebuilds an inference-ready network from a snapshot."""
    config_kwargs = {}
    if snapshot.seed is not None:
        config_kwargs['seed'] = snapshot.seed
    config = NetworkConfig(
        input_size=snapshot.input_size,
        hidden_layer_sizes=snapshot.hidden_layer_sizes,
        activation=snapshot.activation_function,
        learning_rate=snapshot.learning_rate,
        **config_kwargs,
    )
    network = SpamClassifier(config)
    network.load_parameters(snapshot.weights, snapshot.biases)
    return network


class ModelStore:
    """
    File-backed store for the single pretrained model.
    """
    def __init__(self, directory, model_id=PRETRAINED_MODEL_ID):
        self.directory = directory
        self.model_id = model_id

    @property
    def path(self):
        return os.path.join(self.directory, f"{self.model_id}.pth")

    def exists(self):
        return os.path.exists(self.path)

    def save(self, snapshot: PretrainedModel):
        """Writes the snapshot, replacing any previous one only once fully written."""
        os.makedirs(self.directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{self.model_id}-", suffix='.tmp')
        try:
            with os.fdopen(fd, 'wb') as f:
                torch.save(snapshot.to_dict(), f)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.info("Pretrained model saved to %s", self.path)

    def load(self) -> Optional[PretrainedModel]:
        """
        @returns: The stored snapshot, or None when no pretrained model exists
        @raises ModelLoadError: if the file is corrupt or missing snapshot fields
        """
        if not self.exists():
            return None
        try:
            data = torch.load(self.path, map_location='cpu', weights_only=True)
            snapshot = PretrainedModel.from_dict(data)
        except (pickle.UnpicklingError, RuntimeError, EOFError, AttributeError, KeyError, TypeError, ValueError) as e:
            raise ModelLoadError(f"Pretrained model is unreadable: {e}") from e
        logger.info("Pretrained model loaded from %s", self.path)
        return snapshot

    def delete(self):
        if self.exists():
            os.remove(self.path)
