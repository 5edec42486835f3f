"""Utility helpers for dataset providers."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Sequence, Tuple

import numpy as np

from ..core.errors import DatasetError
from ..core.matrix import Matrix

DEFAULT_CACHE_SUBDIR = Path.home() / ".cache" / "sigmanet"


def resolve_cache_dir(cache_dir: str | Path | None = None) -> Path:
    """Resolve the effective cache directory for datasets."""

    env_dir = os.environ.get("SIGMANET_CACHE_DIR")
    base = Path(cache_dir or env_dir or DEFAULT_CACHE_SUBDIR)
    base.mkdir(parents=True, exist_ok=True)
    return base


def offline_requested(default: bool = True) -> bool:
    """Honour ``SIGMANET_DATA_OFFLINE`` when it is set."""

    value = os.environ.get("SIGMANET_DATA_OFFLINE")
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", ""}


def checksum_path(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(8192), b""):
            digest.update(chunk)
    return digest.hexdigest()


def one_hot(labels: Sequence[int] | np.ndarray, num_classes: int) -> np.ndarray:
    labels = np.asarray(labels, dtype=np.int64)
    if labels.size and (labels.min() < 0 or labels.max() >= num_classes):
        raise DatasetError(f"labels must lie in [0, {num_classes})")
    out = np.zeros((labels.shape[0], num_classes), dtype=np.float32)
    out[np.arange(labels.shape[0]), labels] = 1.0
    return out


def normalize_pixels(images: np.ndarray) -> np.ndarray:
    """Flatten ``uint8`` images to rows of floats in ``[0, 1]``."""

    images = np.asarray(images)
    flat = images.reshape(images.shape[0], -1).astype(np.float32)
    return flat / np.float32(255.0)


def deterministic_split(
    n_samples: int,
    *,
    test_split: float = 0.2,
    seed: int = 0,
) -> Tuple[np.ndarray, np.ndarray]:
    """Return shuffled ``(train, test)`` index arrays."""

    if not 0 <= test_split < 1:
        raise ValueError("test_split must be in [0, 1)")
    rng = np.random.default_rng(seed)
    indices = np.arange(n_samples)
    rng.shuffle(indices)
    test_size = int(round(n_samples * test_split))
    test_size = min(max(test_size, 1 if test_split > 0 else 0), n_samples)
    if n_samples - test_size <= 0:
        raise ValueError("Not enough samples for the requested split")
    return indices[test_size:], indices[:test_size]


class ArrayDataset:
    """In-memory :class:`~sigmanet.data.registry.Dataset` over numpy arrays."""

    def __init__(self, inputs: np.ndarray, targets: np.ndarray) -> None:
        inputs = np.asarray(inputs, dtype=np.float32)
        targets = np.asarray(targets, dtype=np.float32)
        if inputs.ndim != 2 or targets.ndim != 2:
            raise DatasetError("inputs and targets must be 2-D (samples x features)")
        if inputs.shape[0] != targets.shape[0]:
            raise DatasetError(
                f"{inputs.shape[0]} inputs but {targets.shape[0]} targets"
            )
        self.inputs = inputs
        self.targets = targets

    def __len__(self) -> int:
        return self.count()

    def __repr__(self) -> str:
        return (
            f"<ArrayDataset count={self.count()} d_in={self.input_width} "
            f"d_out={self.output_width}>"
        )

    @property
    def input_width(self) -> int:
        return int(self.inputs.shape[1])

    @property
    def output_width(self) -> int:
        return int(self.targets.shape[1])

    def count(self) -> int:
        return int(self.inputs.shape[0])

    def _check(self, index: int) -> int:
        index = int(index)
        if not 0 <= index < self.count():
            raise DatasetError(f"sample index {index} out of range [0, {self.count()})")
        return index

    def get_input(self, index: int) -> Matrix:
        return Matrix.from_array(self.inputs[self._check(index)])

    def get_output(self, index: int) -> Matrix:
        return Matrix.from_array(self.targets[self._check(index)])

    def subset(self, indices: Sequence[int] | np.ndarray) -> "ArrayDataset":
        indices = np.asarray(indices, dtype=np.int64)
        return ArrayDataset(self.inputs[indices], self.targets[indices])


__all__ = [
    "ArrayDataset",
    "checksum_path",
    "deterministic_split",
    "normalize_pixels",
    "offline_requested",
    "one_hot",
    "resolve_cache_dir",
]
