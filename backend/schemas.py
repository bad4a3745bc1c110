"""
Request and response models shared by the API server and the SpamDetector service.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.config import ACTIVATION_FUNCTION, HIDDEN_LAYER_SIZES, LEARNING_RATE, NUM_EPOCHS
from ml.evaluation import EpochLoss, TrainingMetrics


class TrainingRequest(BaseModel):
    # Values are checked by the service so bad ones come back as status "error"
    hidden_sizes: List[int] = Field(default_factory=lambda: list(HIDDEN_LAYER_SIZES))
    activation_function: str = ACTIVATION_FUNCTION
    learning_rate: float = LEARNING_RATE
    epochs: int = NUM_EPOCHS
    seed: Optional[int] = None
    shuffle_seed: Optional[int] = None
    report_every: Optional[int] = None


class TrainingResponse(BaseModel):
    status: str
    message: str
    metrics: Optional[TrainingMetrics] = None
    epoch_losses: List[EpochLoss] = Field(default_factory=list)


class EmailRequest(BaseModel):
    email: str


class FeatureRequest(BaseModel):
    features: List[float]


class PredictionResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    prediction: float
    is_spam: bool
    classification: str
    confidence: float
    model_info: str


class StatusResponse(BaseModel):
    status: str
    message: str
