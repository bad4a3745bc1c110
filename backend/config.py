"""
Configuration file for the MLP Spam Classifier
Contains network defaults, dataset and model paths, seeds, and API settings
"""

import logging
import os
from dotenv import load_dotenv

# Load environment variables from .env file (if it exists)
load_dotenv()

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))

# Dataset Configuration
# CSV layout: id column, one column per vocabulary word, label column
DATASET_PATH = os.getenv('DATASET_PATH', os.path.join(PROJECT_ROOT, 'data', 'emails.csv'))
TRAIN_FRACTION = float(os.getenv('TRAIN_FRACTION', 0.8))  # 80% train / 20% test
SPLIT_SEED = int(os.getenv('SPLIT_SEED', 42))  # Seed for the train/test split shuffle

# Model Configuration
# Defaults used when a training request leaves a field out
HIDDEN_LAYER_SIZES = [int(s) for s in os.getenv('HIDDEN_LAYER_SIZES', '10').split(',')]
ACTIVATION_FUNCTION = os.getenv('ACTIVATION_FUNCTION', 'SIGMOID')
LEARNING_RATE = float(os.getenv('LEARNING_RATE', 0.1))
INIT_SEED = int(os.getenv('INIT_SEED', 42))  # Seed for weight/bias initialization
WEIGHT_INIT_SCALE = 0.1  # Gaussian(0, 1) samples are scaled by this factor
DECISION_THRESHOLD = 0.5  # predict(x) > threshold => spam

# Training Configuration
NUM_EPOCHS = int(os.getenv('NUM_EPOCHS', 50))
LOSS_REPORT_INTERVAL = int(os.getenv('LOSS_REPORT_INTERVAL', 5))  # Record epoch loss every N epochs
# Per-epoch shuffle seed; unset means a fresh order on every run
SHUFFLE_SEED = int(os.getenv('SHUFFLE_SEED')) if os.getenv('SHUFFLE_SEED') else None

# Persistence Configuration
MODEL_DIR = os.getenv('MODEL_DIR', os.path.join(PROJECT_ROOT, 'models'))
PRETRAINED_MODEL_ID = 'pretrained_model'  # Only one pretrained model is kept

# API Configuration
API_HOST = os.getenv('API_HOST', '0.0.0.0')
API_PORT = int(os.getenv('API_PORT', 8000))

# Logging Configuration
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level=None):
    """Set up root logging once for scripts and the API server."""
    logging.basicConfig(level=level or LOG_LEVEL, format=LOG_FORMAT)
