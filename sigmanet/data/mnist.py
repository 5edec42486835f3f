"""MNIST handwritten digits read from IDX files, with an offline fixture."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import numpy as np

from ..core.errors import DatasetError
from ..core.matrix import Matrix
from .idx import read_idx_images, read_idx_labels, write_idx_images, write_idx_labels
from .registry import DataSpec, DatasetSpec, register_dataset
from .utils import checksum_path, normalize_pixels, offline_requested, resolve_cache_dir

logger = logging.getLogger(__name__)

IMAGE_SIDE = 28
NUM_CLASSES = 10
LABELS = [str(i) for i in range(NUM_CLASSES)]

_FILES = {
    "train": ("train-labels.idx1-ubyte", "train-images.idx3-ubyte"),
    "test": ("t10k-labels.idx1-ubyte", "t10k-images.idx3-ubyte"),
}


def image_to_input(image: np.ndarray) -> Matrix:
    """Turn a grayscale ``uint8`` image into a ``1 x 784`` input row.

    Images of another size are resampled (nearest neighbour) to 28x28
    first, which is what a free-hand drawing needs before classification.
    """

    image = np.asarray(image)
    if image.ndim != 2:
        raise DatasetError(f"expected a 2-D grayscale image, got shape {image.shape}")
    if image.shape != (IMAGE_SIDE, IMAGE_SIDE):
        rows = (np.arange(IMAGE_SIDE) * image.shape[0] // IMAGE_SIDE).astype(np.int64)
        cols = (np.arange(IMAGE_SIDE) * image.shape[1] // IMAGE_SIDE).astype(np.int64)
        image = image[np.ix_(rows, cols)]
    return Matrix.from_array(normalize_pixels(image[np.newaxis]))


class MnistDataset:
    """Digit images and labels served as network-ready matrices."""

    def __init__(self, images: np.ndarray, labels: np.ndarray) -> None:
        images = np.asarray(images, dtype=np.uint8)
        labels = np.asarray(labels, dtype=np.uint8).reshape(-1)
        if images.ndim != 3:
            raise DatasetError(f"images must be (count, rows, cols), got {images.shape}")
        if images.shape[0] != labels.shape[0]:
            raise DatasetError(f"{images.shape[0]} images but {labels.shape[0]} labels")
        if labels.size and int(labels.max()) >= NUM_CLASSES:
            raise DatasetError(f"label {int(labels.max())} outside 0..{NUM_CLASSES - 1}")
        self.images = images
        self.labels = labels

    @classmethod
    def from_idx(cls, labels_path: str | Path, images_path: str | Path) -> "MnistDataset":
        return cls(read_idx_images(images_path), read_idx_labels(labels_path))

    def __len__(self) -> int:
        return self.count()

    def __repr__(self) -> str:
        return f"<MnistDataset count={self.count()}>"

    @property
    def input_width(self) -> int:
        return int(self.images.shape[1] * self.images.shape[2])

    def count(self) -> int:
        return int(self.labels.shape[0])

    def _check(self, index: int) -> int:
        index = int(index)
        if not 0 <= index < self.count():
            raise DatasetError(f"sample index {index} out of range [0, {self.count()})")
        return index

    def get_input(self, index: int) -> Matrix:
        image = self.images[self._check(index)]
        return Matrix.from_array(normalize_pixels(image[np.newaxis]))

    def get_output(self, index: int) -> Matrix:
        output = Matrix(1, NUM_CLASSES)
        output.set(0, int(self.labels[self._check(index)]), 1.0)
        return output


def build_offline_fixture(root: Path, train_count: int = 256, test_count: int = 64) -> Path:
    """Write a small deterministic MNIST look-alike in IDX format under ``root``.

    Pixels come from integer arithmetic only, so the files are identical on
    every platform and NumPy release.
    """

    root.mkdir(parents=True, exist_ok=True)
    side = IMAGE_SIDE * IMAGE_SIDE
    for split, count, reverse in (("train", train_count, False), ("test", test_count, True)):
        images = np.arange(count * side, dtype=np.uint32).reshape(count, side) % 256
        labels = np.arange(count, dtype=np.uint8) % NUM_CLASSES
        if reverse:
            images, labels = images[::-1], labels[::-1]
        labels_name, images_name = _FILES[split]
        write_idx_labels(root / labels_name, labels)
        write_idx_images(
            root / images_name,
            images.astype(np.uint8).reshape(count, IMAGE_SIDE, IMAGE_SIDE),
        )
    return root


def _load_split(root: Path, split: str, max_items: int | None) -> MnistDataset | None:
    labels_name, images_name = _FILES[split]
    for suffix in ("", ".gz"):
        labels_path = root / f"{labels_name}{suffix}"
        images_path = root / f"{images_name}{suffix}"
        if labels_path.exists() and images_path.exists():
            dataset = MnistDataset.from_idx(labels_path, images_path)
            if max_items is not None:
                dataset = MnistDataset(dataset.images[:max_items], dataset.labels[:max_items])
            return dataset
    return None


@register_dataset("mnist")
def build_mnist(
    path: str | Path | None = None,
    max_items: int | None = None,
    *,
    offline: bool = True,
    cache_dir: str | Path | None = None,
    splits: Sequence[str] = ("train", "test"),
    **_: object,
) -> DatasetSpec:
    """Create a :class:`DatasetSpec` for MNIST.

    ``path`` is a directory holding the four IDX files.  Without it an
    offline fixture is generated in the cache directory.
    """

    if path is not None:
        root = Path(path)
        mode = "local"
    elif offline or offline_requested(default=False):
        root = resolve_cache_dir(cache_dir) / "offline" / "mnist"
        if not (root / _FILES["train"][0]).exists():
            logger.info("Building offline MNIST fixture in %s", root)
            build_offline_fixture(root)
        mode = "offline"
    else:
        raise DatasetError("MNIST needs a directory of IDX files when not offline")

    loaded = {}
    for split in splits:
        dataset = _load_split(root, split, max_items)
        if dataset is not None:
            loaded[split] = dataset
    if "train" not in loaded:
        raise DatasetError(f"{root}: missing {' / '.join(_FILES['train'])}")

    train_labels = root / _FILES["train"][0]
    provenance = {
        "mode": mode,
        "root": str(root),
        "max_items": max_items,
    }
    if train_labels.exists():
        provenance["checksum"] = checksum_path(train_labels)

    return DatasetSpec(
        name="mnist",
        splits=loaded,
        data_spec=DataSpec(
            d_in=loaded["train"].input_width,
            d_out=NUM_CLASSES,
            normalization={"inputs": {"method": "scale", "factor": 1 / 255.0}},
        ),
        labels=list(LABELS),
        provenance=provenance,
    )


__all__ = ["LABELS", "MnistDataset", "build_mnist", "build_offline_fixture", "image_to_input"]
