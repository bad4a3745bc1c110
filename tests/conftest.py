import csv

import pytest

from ml.persistence import ModelStore
from ml.spam_detector import SpamDetector

VOCABULARY = ["free", "money", "meeting", "report"]


def spam_row(i):
    return [3 + i % 2, 2 + i % 3, 0, i % 2]


def ham_row(i):
    return [i % 2, 0, 3 + i % 2, 2 + i % 3]


def write_email_csv(path, rows, vocabulary=VOCABULARY, id_column="Email No.", label_column="Prediction"):
    """Writes rows of (counts, label) in the id, words..., label layout."""
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow([id_column, *vocabulary, label_column])
        for index, (counts, label) in enumerate(rows):
            writer.writerow([f"Email {index + 1}", *counts, label])
    return path


def separable_rows(n_per_class=20):
    rows = []
    for i in range(n_per_class):
        rows.append((spam_row(i), 1))
        rows.append((ham_row(i), 0))
    return rows


@pytest.fixture
def email_csv(tmp_path):
    return write_email_csv(tmp_path / "emails.csv", separable_rows())


@pytest.fixture
def model_store(tmp_path):
    return ModelStore(tmp_path / "models")


@pytest.fixture
def detector(email_csv, model_store):
    return SpamDetector(dataset_path=str(email_csv), store=model_store)
