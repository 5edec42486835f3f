import gzip

import numpy as np
import pytest

from sigmanet.core.errors import DatasetError
from sigmanet.data import ArrayDataset, Dataset, MnistDataset, get_dataset, image_to_input, one_hot
from sigmanet.data.idx import (
    read_idx_images,
    read_idx_labels,
    write_idx_images,
    write_idx_labels,
)
from sigmanet.data.registry import available_datasets


def _write_mnist_dir(root, count=12, prefix="train"):
    rng = np.random.default_rng(0)
    images = rng.integers(0, 256, size=(count, 28, 28), dtype=np.uint8)
    labels = (np.arange(count) % 10).astype(np.uint8)
    names = {
        "train": ("train-labels.idx1-ubyte", "train-images.idx3-ubyte"),
        "test": ("t10k-labels.idx1-ubyte", "t10k-images.idx3-ubyte"),
    }[prefix]
    write_idx_labels(root / names[0], labels)
    write_idx_images(root / names[1], images)
    return images, labels


def test_idx_labels_and_images_round_trip(tmp_path):
    images, labels = _write_mnist_dir(tmp_path)
    assert np.array_equal(read_idx_labels(tmp_path / "train-labels.idx1-ubyte"), labels)
    decoded = read_idx_images(tmp_path / "train-images.idx3-ubyte")
    assert decoded.shape == (12, 28, 28)
    assert np.array_equal(decoded, images)


def test_idx_header_is_big_endian(tmp_path):
    path = write_idx_labels(tmp_path / "labels.idx1", [3, 1, 4])
    raw = path.read_bytes()
    assert raw[:8] == bytes([0, 0, 8, 1, 0, 0, 0, 3])
    assert raw[8:] == bytes([3, 1, 4])


def test_idx_reads_gzip(tmp_path):
    path = tmp_path / "labels.idx1.gz"
    with gzip.open(path, "wb") as handle:
        handle.write(bytes([0, 0, 8, 1, 0, 0, 0, 2, 7, 9]))
    assert read_idx_labels(path).tolist() == [7, 9]


def test_idx_bad_magic_and_truncation(tmp_path):
    labels = write_idx_labels(tmp_path / "labels.idx1", [1, 2, 3])
    with pytest.raises(DatasetError):
        read_idx_images(labels)

    truncated = tmp_path / "short.idx1"
    truncated.write_bytes(labels.read_bytes()[:-1])
    with pytest.raises(DatasetError):
        read_idx_labels(truncated)

    header_only = tmp_path / "header.idx3"
    header_only.write_bytes(bytes([0, 0, 8, 3]))
    with pytest.raises(DatasetError):
        read_idx_images(header_only)


def test_mnist_dataset_normalises_and_one_hot_encodes(tmp_path):
    images, labels = _write_mnist_dir(tmp_path)
    dataset = MnistDataset.from_idx(
        tmp_path / "train-labels.idx1-ubyte", tmp_path / "train-images.idx3-ubyte"
    )
    assert isinstance(dataset, Dataset)
    assert dataset.count() == 12

    inputs = dataset.get_input(3)
    assert inputs.shape == (1, 784)
    np.testing.assert_allclose(inputs.data[0], images[3].reshape(-1) / 255.0, atol=1e-6)
    assert inputs.data.min() >= 0.0 and inputs.data.max() <= 1.0

    output = dataset.get_output(3)
    assert output.shape == (1, 10)
    assert output.sum() == 1.0
    assert output.argmax() == labels[3]

    with pytest.raises(DatasetError):
        dataset.get_input(12)


def test_mnist_dataset_rejects_mismatched_counts():
    with pytest.raises(DatasetError):
        MnistDataset(np.zeros((3, 28, 28), dtype=np.uint8), np.zeros(2, dtype=np.uint8))


def test_mnist_offline_fixture(tmp_path):
    spec = get_dataset("mnist", offline=True, cache_dir=tmp_path)
    assert spec.data_spec.d_in == 784
    assert spec.data_spec.d_out == 10
    assert spec.labels == [str(i) for i in range(10)]
    assert spec.sizes == {"train": 256, "test": 64}
    assert spec.provenance["mode"] == "offline"

    again = get_dataset("mnist", offline=True, cache_dir=tmp_path)
    assert again.provenance["checksum"] == spec.provenance["checksum"]


def test_mnist_from_directory_with_max_items(tmp_path):
    _write_mnist_dir(tmp_path, count=20)
    _write_mnist_dir(tmp_path, count=6, prefix="test")
    spec = get_dataset("mnist", path=tmp_path, max_items=5)
    assert spec.provenance["mode"] == "local"
    assert spec.sizes == {"train": 5, "test": 5}


def test_mnist_requires_directory_when_online(tmp_path, monkeypatch):
    monkeypatch.delenv("SIGMANET_DATA_OFFLINE", raising=False)
    with pytest.raises(DatasetError):
        get_dataset("mnist", offline=False, cache_dir=tmp_path)


def test_image_to_input_resamples_to_28x28():
    canvas = np.full((56, 56), 255, dtype=np.uint8)
    row = image_to_input(canvas)
    assert row.shape == (1, 784)
    assert np.all(row.data == 1.0)
    with pytest.raises(DatasetError):
        image_to_input(np.zeros((2, 2, 2), dtype=np.uint8))


def test_xor_and_blobs_specs():
    xor = get_dataset("xor")
    train = xor.split("train")
    assert train.count() == 4
    assert train.get_output(1).argmax() == 1
    assert train.get_output(3).argmax() == 0

    blobs = get_dataset("blobs", n_points=50, n_classes=4, seed=1)
    assert blobs.data_spec.d_out == 4
    assert blobs.sizes["train"] + blobs.sizes["test"] == 50
    sample = blobs.split("train").get_input(0)
    assert sample.data.min() >= 0.0 and sample.data.max() <= 1.0


def test_registry_lookup_errors():
    assert {"mnist", "xor", "blobs"} <= set(available_datasets())
    with pytest.raises(KeyError):
        get_dataset("does-not-exist")
    with pytest.raises(KeyError):
        get_dataset("xor").split("val")


def test_array_dataset_contract():
    dataset = ArrayDataset(np.eye(3), one_hot([2, 0, 1], 3))
    assert isinstance(dataset, Dataset)
    assert dataset.get_output(0).argmax() == 2
    with pytest.raises(DatasetError):
        ArrayDataset(np.zeros((3, 2)), np.zeros((2, 2)))
    with pytest.raises(DatasetError):
        dataset.get_input(-1)
    with pytest.raises(DatasetError):
        one_hot([0, 3], 3)


def test_idx_oversized_header_is_rejected(tmp_path):
    path = tmp_path / "huge.idx3"
    path.write_bytes(bytes([0, 0, 8, 3]) + b"\xff" * 12 + b"\x00" * 32)
    with pytest.raises(DatasetError):
        read_idx_images(path)
