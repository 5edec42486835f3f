"""Pure in-memory synthetic datasets."""

from __future__ import annotations

from pathlib import Path

import numpy as np

from .registry import DataSpec, DatasetSpec, register_dataset
from .utils import ArrayDataset, deterministic_split, one_hot


@register_dataset("xor")
def build_xor(
    repeat: int = 1,
    *,
    offline: bool = True,
    cache_dir: str | Path | None = None,
    **_: object,
) -> DatasetSpec:
    """The four XOR truth-table rows, one-hot over ``{"0", "1"}``."""

    x = np.array([[0, 0], [0, 1], [1, 0], [1, 1]], dtype=np.float32)
    y = np.array([0, 1, 1, 0], dtype=np.int64)
    x = np.tile(x, (max(1, int(repeat)), 1))
    y = np.tile(y, max(1, int(repeat)))
    dataset = ArrayDataset(x, one_hot(y, 2))
    return DatasetSpec(
        name="xor",
        splits={"train": dataset, "test": dataset},
        data_spec=DataSpec(d_in=2, d_out=2),
        labels=["0", "1"],
        provenance={"type": "synthetic", "repeat": int(repeat)},
    )


def _make_blobs(
    n_points: int, n_features: int, n_classes: int, spread: float, seed: int
) -> tuple[np.ndarray, np.ndarray]:
    rng = np.random.default_rng(seed)
    centres = rng.uniform(0.2, 0.8, size=(n_classes, n_features))
    labels = np.arange(n_points) % n_classes
    rng.shuffle(labels)
    points = centres[labels] + spread * rng.standard_normal((n_points, n_features))
    return np.clip(points, 0.0, 1.0).astype(np.float32), labels


@register_dataset("blobs")
def build_blobs(
    n_points: int = 256,
    n_features: int = 2,
    n_classes: int = 3,
    spread: float = 0.05,
    seed: int = 0,
    test_split: float = 0.2,
    *,
    offline: bool = True,
    cache_dir: str | Path | None = None,
    **_: object,
) -> DatasetSpec:
    """Gaussian clusters clipped into the unit hypercube."""

    x, labels = _make_blobs(n_points, n_features, n_classes, spread, seed)
    full = ArrayDataset(x, one_hot(labels, n_classes))
    train_idx, test_idx = deterministic_split(n_points, test_split=test_split, seed=seed)
    splits = {"train": full.subset(train_idx)}
    if test_idx.size:
        splits["test"] = full.subset(test_idx)
    return DatasetSpec(
        name="blobs",
        splits=splits,
        data_spec=DataSpec(d_in=n_features, d_out=n_classes),
        labels=[str(i) for i in range(n_classes)],
        provenance={
            "type": "synthetic",
            "n_points": n_points,
            "n_features": n_features,
            "n_classes": n_classes,
            "spread": spread,
            "seed": seed,
            "test_split": test_split,
        },
    )


__all__ = ["build_blobs", "build_xor"]
