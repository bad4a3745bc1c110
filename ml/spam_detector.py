"""
SpamDetector Class - Owns the current trained network and the pretrained model

This class handles:
- Training a new network from the configured dataset
- Keeping the latest network, its metrics and vocabulary
- Converting email text into feature vectors
- Making spam predictions with the current or the pretrained network
- Saving the current network as the pretrained model
"""

import logging
import threading
from typing import NamedTuple, Optional

from backend.config import (
    DATASET_PATH, DECISION_THRESHOLD, INIT_SEED, LOSS_REPORT_INTERVAL, MODEL_DIR,
    SHUFFLE_SEED, SPLIT_SEED, TRAIN_FRACTION,
)
from backend.schemas import TrainingRequest, TrainingResponse
from ml.activations import get_activation
from ml.dataset import load_dataset, split_dataset
from ml.errors import InputSizeMismatchError, InvalidSaveState, ModelLoadError, SpamModelError
from ml.evaluation import TrainingMetrics
from ml.features import FeatureExtractor
from ml.persistence import ModelStore, deserialize, serialize
from ml.spam_model import NetworkConfig, SpamClassifier, check_hidden_layer_sizes
from ml.train_model import train

logger = logging.getLogger(__name__)


class TrainedModel(NamedTuple):
    network: SpamClassifier
    metrics: TrainingMetrics
    feature_names: list


class SpamDetector:
    """
    Service object around the classifier core.

    The current model is replaced as a whole (one attribute assignment), and
    training runs are serialized with a lock, so readers always see a complete
    network/metrics pair.
    """
    def __init__(self, dataset_path=DATASET_PATH, store=None, split_seed=SPLIT_SEED,
                 train_fraction=TRAIN_FRACTION):
        self.dataset_path = dataset_path
        self.store = store if store is not None else ModelStore(MODEL_DIR)
        self.split_seed = split_seed
        self.train_fraction = train_fraction
        self.current: Optional[TrainedModel] = None
        self._training_lock = threading.Lock()

    def train_model(self, request: TrainingRequest) -> TrainingResponse:
        """
        Trains a new network with the requested architecture on the dataset

        @param request: TrainingRequest (hidden sizes, activation, learning rate, epochs)
        @returns: TrainingResponse with status "success" and metrics, or status "error" and a reason
        """
        with self._training_lock:
            try:
                # Reject the configuration before touching the dataset
                check_hidden_layer_sizes(request.hidden_sizes)
                activation = get_activation(request.activation_function)

                dataset = load_dataset(self.dataset_path)
                split = split_dataset(dataset, self.train_fraction, self.split_seed)
                config = NetworkConfig(
                    input_size=len(dataset.feature_names),
                    hidden_layer_sizes=request.hidden_sizes,
                    activation=activation.name,
                    learning_rate=request.learning_rate,
                    seed=request.seed if request.seed is not None else INIT_SEED,
                )
                run = train(
                    config, split.x_train, split.y_train, split.x_test, split.y_test, request.epochs,
                    report_every=request.report_every if request.report_every is not None else LOSS_REPORT_INTERVAL,
                    shuffle_seed=request.shuffle_seed if request.shuffle_seed is not None else SHUFFLE_SEED,
                )
            except SpamModelError as e:
                logger.warning("Training rejected: %s", e)
                return TrainingResponse(status='error', message=str(e))
            except Exception as e:
                logger.exception("Training failed")
                return TrainingResponse(status='error', message=f"Training failed: {e}")

            self.current = TrainedModel(run.network, run.metrics, dataset.feature_names)

        return TrainingResponse(
            status='success',
            message=(
                f"Model trained successfully with {config.num_hidden_layers} hidden layers "
                f"using {activation.name} activation"
            ),
            metrics=run.metrics,
            epoch_losses=run.epoch_losses,
        )

    def _prediction_result(self, network, features, label):
        try:
            prediction = network.predict(features)
        except InputSizeMismatchError as e:
            return {'error': str(e)}

        is_spam = prediction > DECISION_THRESHOLD
        return {
            'prediction': prediction,
            'is_spam': is_spam,
            'classification': 'SPAM' if is_spam else 'NOT SPAM',
            'confidence': prediction if is_spam else 1 - prediction,
            'model_info': f"{label}: {network.num_hidden_layers} layers, activation {network.activation.name}",
        }

    def predict_features(self, features):
        """
        Classifies a feature vector with the current network
        @returns: Prediction dict, or {"error": ...} when no model is trained or the size is wrong
        """
        current = self.current
        if current is None:
            return {'error': "No trained model available"}
        return self._prediction_result(current.network, features, "Network")

    def predict_text(self, text):
        current = self.current
        if current is None:
            return {'error': "No trained model available"}
        features = FeatureExtractor(current.feature_names).transform(text)
        return self._prediction_result(current.network, features, "Network")

    def _load_pretrained(self):
        """
        @returns: Tuple of (snapshot, network, error); error is None when a usable model was loaded
        """
        try:
            snapshot = self.store.load()
            if snapshot is None:
                return None, None, "No pretrained model available"
            return snapshot, deserialize(snapshot), None
        except ModelLoadError as e:
            logger.exception("Pretrained model could not be loaded")
            return None, None, str(e)
        except SpamModelError as e:
            logger.exception("Pretrained model could not be rebuilt")
            return None, None, f"Pretrained model is unreadable: {e}"

    def predict_pretrained_features(self, features):
        _, network, error = self._load_pretrained()
        if error is not None:
            return {'error': error}
        return self._prediction_result(network, features, "Pretrained network")

    def predict_pretrained_text(self, text):
        snapshot, network, error = self._load_pretrained()
        if error is not None:
            return {'error': error}
        if not snapshot.feature_names:
            return {'error': "Pretrained model has no vocabulary for text input"}
        features = FeatureExtractor(snapshot.feature_names).transform(text)
        return self._prediction_result(network, features, "Pretrained network")

    def get_last_training_metrics(self) -> Optional[TrainingMetrics]:
        current = self.current
        return current.metrics if current is not None else None

    def get_pretrained_metrics(self) -> Optional[TrainingMetrics]:
        """@returns: Metrics of the stored model, or None when it is absent or unreadable"""
        snapshot, _, error = self._load_pretrained()
        return snapshot.metrics if error is None else None

    def get_model_info(self):
        current = self.current
        if current is None:
            return {'error': "No trained model available"}
        return current.network.describe()

    def get_pretrained_model_info(self):
        _, network, error = self._load_pretrained()
        if error is not None:
            return {'error': error}
        return network.describe()

    def save_pretrained_model(self):
        """
        Stores the current network and its metrics as the pretrained model,
        replacing any earlier one.

        @raises InvalidSaveState: if no model has been trained yet
        """
        current = self.current
        if current is None or current.metrics is None:
            raise InvalidSaveState("No trained model or metrics available to save")
        snapshot = serialize(current.network, current.metrics, current.feature_names)
        self.store.save(snapshot)
        return snapshot
