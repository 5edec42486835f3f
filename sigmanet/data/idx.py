"""Reader and writer for the IDX files MNIST is distributed in.

Both file kinds start with a big-endian ``uint32`` magic number and sample
count.  Label files (magic 2049) follow with one ``uint8`` per sample; image
files (magic 2051) add row and column counts and then ``rows * cols`` pixel
bytes per sample.  Files ending in ``.gz`` are decompressed on the fly.
"""

from __future__ import annotations

import gzip
import logging
import struct
from pathlib import Path
from typing import BinaryIO

import numpy as np

from ..core.errors import DatasetError

logger = logging.getLogger(__name__)

LABELS_MAGIC = 2049
IMAGES_MAGIC = 2051

_U32 = struct.Struct(">I")
_CHUNK = 1 << 20


def _open(path: str | Path, mode: str = "rb") -> BinaryIO:
    path = Path(path)
    if path.suffix == ".gz":
        return gzip.open(path, mode)  # type: ignore[return-value]
    return path.open(mode)


def _header(handle: BinaryIO, fields: int, path: Path) -> tuple[int, ...]:
    raw = handle.read(_U32.size * fields)
    if len(raw) != _U32.size * fields:
        raise DatasetError(f"{path}: truncated IDX header")
    return struct.unpack(f">{fields}I", raw)


def _payload(handle: BinaryIO, size: int, path: Path) -> np.ndarray:
    chunks = []
    remaining = size
    while remaining > 0:
        raw = handle.read(min(remaining, _CHUNK))
        if not raw:
            break
        chunks.append(raw)
        remaining -= len(raw)
    if remaining:
        raise DatasetError(f"{path}: expected {size} payload bytes, got {size - remaining}")
    return np.frombuffer(b"".join(chunks), dtype=np.uint8)


def read_idx_labels(path: str | Path) -> np.ndarray:
    """Return the labels stored in an IDX1 file as a ``uint8`` vector."""

    path = Path(path)
    with _open(path) as handle:
        magic, count = _header(handle, 2, path)
        if magic != LABELS_MAGIC:
            raise DatasetError(f"{path}: bad label magic {magic}, expected {LABELS_MAGIC}")
        labels = _payload(handle, count, path).copy()
    logger.debug("Read %d labels from %s", count, path)
    return labels


def read_idx_images(path: str | Path) -> np.ndarray:
    """Return the images stored in an IDX3 file as ``(count, rows, cols)``."""

    path = Path(path)
    with _open(path) as handle:
        magic, count, rows, cols = _header(handle, 4, path)
        if magic != IMAGES_MAGIC:
            raise DatasetError(f"{path}: bad image magic {magic}, expected {IMAGES_MAGIC}")
        pixels = _payload(handle, count * rows * cols, path)
    logger.debug("Read %d %dx%d images from %s", count, rows, cols, path)
    return pixels.reshape(count, rows, cols).copy()


def write_idx_labels(path: str | Path, labels: np.ndarray) -> Path:
    path = Path(path)
    labels = np.asarray(labels, dtype=np.uint8).reshape(-1)
    path.parent.mkdir(parents=True, exist_ok=True)
    with _open(path, "wb") as handle:
        handle.write(struct.pack(">2I", LABELS_MAGIC, labels.shape[0]))
        handle.write(labels.tobytes())
    return path


def write_idx_images(path: str | Path, images: np.ndarray) -> Path:
    path = Path(path)
    images = np.asarray(images, dtype=np.uint8)
    if images.ndim != 3:
        raise DatasetError("images must have shape (count, rows, cols)")
    count, rows, cols = images.shape
    path.parent.mkdir(parents=True, exist_ok=True)
    with _open(path, "wb") as handle:
        handle.write(struct.pack(">4I", IMAGES_MAGIC, count, rows, cols))
        handle.write(np.ascontiguousarray(images).tobytes())
    return path


__all__ = [
    "IMAGES_MAGIC",
    "LABELS_MAGIC",
    "read_idx_images",
    "read_idx_labels",
    "write_idx_images",
    "write_idx_labels",
]
