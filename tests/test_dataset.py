import torch
import pytest

from conftest import VOCABULARY, separable_rows, write_email_csv
from ml.dataset import load_dataset, split_dataset
from ml.errors import DatasetError


def test_load_dataset_reads_features_labels_and_vocabulary(email_csv):
    dataset = load_dataset(str(email_csv))
    assert dataset.feature_names == VOCABULARY
    assert dataset.features.shape == (40, 4)
    assert dataset.features.dtype == torch.float64
    assert dataset.labels.tolist()[:2] == [1, 0]
    assert dataset.spam_count == 20


def test_malformed_cells_default_to_zero(tmp_path):
    path = tmp_path / "emails.csv"
    with open(path, "w") as f:
        f.write("Email No.,free,money,Prediction\n")
        f.write("Email 1,3,abc,1\n")
        f.write("Email 2,,2,oops\n")
        f.write("Email 3,1,1,0\n")
    dataset = load_dataset(str(path))
    assert dataset.features.tolist() == [[3.0, 0.0], [0.0, 2.0], [1.0, 1.0]]
    assert dataset.labels.tolist() == [1, 0, 0]


def test_infinite_cells_default_to_zero(tmp_path):
    path = tmp_path / "emails.csv"
    with open(path, "w") as f:
        f.write("Email No.,free,money,Prediction\n")
        f.write("Email 1,inf,2,1\n")
        f.write("Email 2,1,-inf,inf\n")
    dataset = load_dataset(str(path))
    assert dataset.features.tolist() == [[0.0, 2.0], [1.0, 0.0]]
    assert dataset.labels.tolist() == [1, 0]
    assert bool(torch.isfinite(dataset.features).all())


def test_missing_file_is_dataset_error(tmp_path):
    with pytest.raises(DatasetError):
        load_dataset(str(tmp_path / "missing.csv"))


def test_empty_file_is_dataset_error(tmp_path):
    path = tmp_path / "emails.csv"
    path.write_text("")
    with pytest.raises(DatasetError):
        load_dataset(str(path))


def test_header_only_is_dataset_error(tmp_path):
    path = write_email_csv(tmp_path / "emails.csv", [])
    with pytest.raises(DatasetError):
        load_dataset(str(path))


def test_no_feature_columns_is_dataset_error(tmp_path):
    path = tmp_path / "emails.csv"
    path.write_text("Email No.,Prediction\nEmail 1,1\n")
    with pytest.raises(DatasetError, match="no feature columns"):
        load_dataset(str(path))


def test_split_is_deterministic_and_80_20(email_csv):
    dataset = load_dataset(str(email_csv))
    first = split_dataset(dataset, 0.8, seed=42)
    second = split_dataset(dataset, 0.8, seed=42)
    assert first.x_train.shape == (32, 4)
    assert first.x_test.shape == (8, 4)
    assert torch.equal(first.x_train, second.x_train)
    assert torch.equal(first.y_test, second.y_test)


def test_split_seed_changes_partition(tmp_path):
    dataset = load_dataset(str(write_email_csv(tmp_path / "emails.csv", separable_rows(50))))
    a = split_dataset(dataset, 0.8, seed=1)
    b = split_dataset(dataset, 0.8, seed=2)
    assert not torch.equal(a.x_train, b.x_train)


def test_split_rounds_training_size_down(tmp_path):
    rows = separable_rows(5)[:7]
    dataset = load_dataset(str(write_email_csv(tmp_path / "emails.csv", rows)))
    split = split_dataset(dataset, 0.8)
    assert len(split.y_train) == 5
    assert len(split.y_test) == 2


def test_split_needs_two_rows(tmp_path):
    dataset = load_dataset(str(write_email_csv(tmp_path / "emails.csv", separable_rows(1)[:1])))
    with pytest.raises(DatasetError):
        split_dataset(dataset, 0.8)
