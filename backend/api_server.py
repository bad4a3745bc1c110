import logging
from contextlib import asynccontextmanager
from typing import List

import uvicorn
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from backend.config import API_HOST, API_PORT, configure_logging
from backend.schemas import (
    EmailRequest, FeatureRequest, PredictionResponse, StatusResponse, TrainingRequest, TrainingResponse,
)
from ml.activations import activation_names
from ml.errors import InvalidSaveState
from ml.evaluation import TrainingMetrics
from ml.spam_detector import SpamDetector

logger = logging.getLogger(__name__)


def create_app(detector=None):
    """
    Builds the API around a SpamDetector.

    @param detector: Service to use; a default SpamDetector is created at startup when omitted
    """
    @asynccontextmanager
    async def lifespan(app):
        if getattr(app.state, 'detector', None) is None:
            logger.info("Starting spam classifier service...")
            app.state.detector = SpamDetector()
        logger.info("API ready!")
        yield

    app = FastAPI(title="MLP Spam Classifier API", lifespan=lifespan)
    app.state.detector = detector

    # Enable CORS for the web frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_detector(request: Request) -> SpamDetector:
        detector = request.app.state.detector
        if detector is None:
            raise HTTPException(status_code=503, detail="Service not ready")
        return detector

    def unwrap(result):
        if 'error' in result:
            raise HTTPException(status_code=400, detail=result['error'])
        return result

    def check_text(email: EmailRequest):
        if not email.email or len(email.email.strip()) == 0:
            raise HTTPException(status_code=400, detail="Email text cannot be empty")

    @app.get("/")
    async def root():
        return {"message": "MLP Spam Classifier API", "status": "running"}

    @app.get("/health")
    def health(request: Request):
        detector = get_detector(request)
        return {
            "status": "healthy",
            "model_trained": detector.current is not None,
            "pretrained_available": detector.store.exists(),
        }

    @app.post("/api/train", response_model=TrainingResponse)
    def train_model(training: TrainingRequest, request: Request, response: Response):
        """
        Train a new network with configurable hidden layers and activation function

        Returns the training metrics and the recorded epoch losses; a rejected
        configuration or dataset comes back with status "error" and HTTP 400.
        """
        result = get_detector(request).train_model(training)
        if result.status != 'success':
            response.status_code = 400
        return result

    @app.post("/api/train-simple", response_model=TrainingResponse)
    def train_model_simple(request: Request, response: Response, hidden_sizes: str,
                           activation_function: str, learning_rate: float, epochs: int):
        """
        Training endpoint taking query parameters, e.g. hidden_sizes=10,5
        """
        try:
            sizes = [int(s.strip()) for s in hidden_sizes.split(',')]
        except ValueError as e:
            response.status_code = 400
            return TrainingResponse(status='error', message=f"Invalid number format in hidden layer sizes: {e}")
        if any(size <= 0 for size in sizes):
            response.status_code = 400
            return TrainingResponse(status='error', message="All hidden layer sizes must be positive integers")

        training = TrainingRequest(
            hidden_sizes=sizes,
            activation_function=activation_function,
            learning_rate=learning_rate,
            epochs=epochs,
        )
        return train_model(training, request, response)

    @app.post("/api/predict", response_model=PredictionResponse)
    def predict_email(email: EmailRequest, request: Request):
        """Classify raw email text with the most recently trained network"""
        check_text(email)
        return unwrap(get_detector(request).predict_text(email.email))

    @app.post("/api/predict-features", response_model=PredictionResponse)
    def predict_features(body: FeatureRequest, request: Request):
        return unwrap(get_detector(request).predict_features(body.features))

    @app.post("/api/pretrained-predict", response_model=PredictionResponse)
    def predict_pretrained_email(email: EmailRequest, request: Request):
        check_text(email)
        return unwrap(get_detector(request).predict_pretrained_text(email.email))

    @app.post("/api/pretrained-predict-features", response_model=PredictionResponse)
    def predict_pretrained_features(body: FeatureRequest, request: Request):
        return unwrap(get_detector(request).predict_pretrained_features(body.features))

    @app.get("/api/metrics", response_model=TrainingMetrics)
    def get_metrics(request: Request):
        metrics = get_detector(request).get_last_training_metrics()
        if metrics is None:
            raise HTTPException(status_code=404, detail="No training metrics available")
        return metrics

    @app.get("/api/pretrained-metrics", response_model=TrainingMetrics)
    def get_pretrained_metrics(request: Request):
        metrics = get_detector(request).get_pretrained_metrics()
        if metrics is None:
            raise HTTPException(status_code=404, detail="No pretrained model available")
        return metrics

    @app.get("/api/model-info")
    def get_model_info(request: Request):
        info = get_detector(request).get_model_info()
        if 'error' in info:
            raise HTTPException(status_code=404, detail=info['error'])
        return info

    @app.get("/api/pretrained-model-info")
    def get_pretrained_model_info(request: Request):
        info = get_detector(request).get_pretrained_model_info()
        if 'error' in info:
            raise HTTPException(status_code=404, detail=info['error'])
        return info

    @app.get("/api/activation-functions", response_model=List[str])
    async def get_activation_functions():
        return activation_names()

    @app.post("/api/save-pretrained", response_model=StatusResponse)
    def save_pretrained_model(request: Request, response: Response):
        try:
            get_detector(request).save_pretrained_model()
        except InvalidSaveState as e:
            response.status_code = 400
            return StatusResponse(status='error', message=str(e))
        return StatusResponse(status='success', message="Pretrained model saved successfully")

    return app


app = create_app()

if __name__ == "__main__":
    configure_logging()
    uvicorn.run(app, host=API_HOST, port=API_PORT)
