"""
Backend package for the MLP Spam Classifier

This package contains:
- config.py: Environment-driven settings and logging setup
- api_server.py: FastAPI application exposing training, prediction and model endpoints
"""
