"""
Machine Learning package for the MLP Spam Classifier

This package contains:
- activations.py: Hidden layer activation functions and their derivatives
- spam_model.py: Feed-forward network with per-sample backpropagation
- train_model.py: Training loop and command line training script
- evaluation.py: Holdout accuracy and per-class detection rates
- dataset.py: CSV dataset loading and train/test split
- features.py: Bag-of-words vectors for raw email text
- persistence.py: Pretrained model snapshots and storage
- spam_detector.py: Service owning the current and pretrained models
"""
