"""
Dataset loading for the spam classifier.

Expected CSV layout (one row per email):
    <id>, <word_1>, ..., <word_d>, <label>
The first column is an opaque identifier, the middle columns are word counts
and the last column is the label (1 = spam, 0 = ham).
"""

import logging
import os
from typing import List, NamedTuple

import numpy as np
import pandas as pd
import torch
from sklearn.model_selection import train_test_split

from backend.config import SPLIT_SEED, TRAIN_FRACTION
from ml.errors import DatasetError

logger = logging.getLogger(__name__)


class Dataset(NamedTuple):
    features: torch.Tensor  # [n, d] float64
    labels: torch.Tensor    # [n] long
    feature_names: List[str]

    def __len__(self):
        return len(self.labels)

    @property
    def spam_count(self):
        return int((self.labels == 1).sum().item())


class DatasetSplit(NamedTuple):
    x_train: torch.Tensor
    y_train: torch.Tensor
    x_test: torch.Tensor
    y_test: torch.Tensor


def load_dataset(csv_path):
    """
    Loads an email word-count dataset from CSV.

    Non-numeric feature cells become 0.0 and non-numeric labels become 0, so a
    single malformed row never aborts a run.

    @param csv_path: Path to the CSV file
    @returns: Dataset
    @raises DatasetError: file missing or unreadable, no rows, or no feature columns
    """
    if not os.path.exists(csv_path):
        raise DatasetError(f"Dataset not found: {csv_path}")

    logger.info("Loading data from %s...", csv_path)
    try:
        df = pd.read_csv(csv_path, dtype=str, keep_default_na=False, skipinitialspace=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError, OSError) as e:
        raise DatasetError(f"Dataset is unreadable: {e}") from e

    if df.shape[1] < 3:
        raise DatasetError("Dataset has no feature columns (expected id, features..., label)")
    if df.empty:
        raise DatasetError("Dataset is empty or invalid")

    # Unparseable and non-finite cells ("inf", "-inf") both default to 0.0
    feature_frame = df.iloc[:, 1:-1].apply(pd.to_numeric, errors='coerce').replace([np.inf, -np.inf], np.nan)
    invalid_cells = int(feature_frame.isna().sum().sum())
    if invalid_cells:
        logger.warning("Replaced %d non-numeric or non-finite feature cells with 0.0", invalid_cells)
    features = feature_frame.fillna(0.0).astype('float64')

    labels = pd.to_numeric(df.iloc[:, -1], errors='coerce').replace([np.inf, -np.inf], np.nan)
    invalid_labels = int(labels.isna().sum())
    if invalid_labels:
        logger.warning("Replaced %d non-numeric or non-finite labels with 0", invalid_labels)
    labels = labels.fillna(0).astype('int64')

    dataset = Dataset(
        features=torch.tensor(features.values, dtype=torch.float64),
        labels=torch.tensor(labels.values, dtype=torch.long),
        feature_names=[str(name).strip() for name in df.columns[1:-1]],
    )
    logger.info(
        "Loaded %d emails with %d features (spam: %d, ham: %d)",
        len(dataset), len(dataset.feature_names), dataset.spam_count, len(dataset) - dataset.spam_count,
    )
    return dataset


def split_dataset(dataset, train_fraction=TRAIN_FRACTION, seed=SPLIT_SEED):
    """
    Deterministic shuffled split into training and test sets.

    int(train_fraction * n) rows go to training, the rest to test. The seed is
    independent of the per-epoch training shuffle.

    @raises DatasetError: fewer than two rows, or a split leaving one side empty
    """
    n = len(dataset)
    train_size = int(n * train_fraction)
    test_size = n - train_size
    if train_size == 0 or test_size == 0:
        raise DatasetError(
            f"Cannot split {n} emails into non-empty train/test sets with train fraction {train_fraction}"
        )

    x_train, x_test, y_train, y_test = train_test_split(
        dataset.features.numpy(), dataset.labels.numpy(),
        train_size=train_size, test_size=test_size, random_state=seed, shuffle=True,
    )
    return DatasetSplit(
        torch.from_numpy(x_train), torch.from_numpy(y_train),
        torch.from_numpy(x_test), torch.from_numpy(y_test),
    )
