"""Binary persistence for trained networks.

The layout is the legacy desktop model format:
native byte order, no magic number and no version tag::

    int32 trained
    int32 data_index
    int32 layer_count
    layer_count x (Matrix biased, Matrix weights)

    Matrix := int32 rows, int32 cols, float32[rows * cols] (row-major)

Activations are not stored; they are rebuilt as zeros on load.
"""

from __future__ import annotations

import io
import logging
import os
import struct
import tempfile
from pathlib import Path
from typing import BinaryIO, List, Sequence, Tuple

import numpy as np

from .errors import CorruptModel, IOFailure
from .layer import Layer
from .matrix import Matrix
from .types import TrainingProgress

logger = logging.getLogger(__name__)

_INT = struct.Struct("=i")
_FLOAT = np.dtype("=f4")
_CHUNK = 1 << 20


def _read_exact(stream: BinaryIO, size: int, what: str) -> bytes:
    # Bounded reads so a corrupt header cannot request an absurd buffer.
    chunks: List[bytes] = []
    remaining = size
    while remaining > 0:
        data = stream.read(min(remaining, _CHUNK))
        if not data:
            break
        chunks.append(data)
        remaining -= len(data)
    if remaining:
        raise CorruptModel(
            f"truncated model: expected {size} bytes for {what}, got {size - remaining}"
        )
    return b"".join(chunks)


def _read_int(stream: BinaryIO, what: str) -> int:
    return _INT.unpack(_read_exact(stream, _INT.size, what))[0]


def write_matrix(stream: BinaryIO, m: Matrix) -> None:
    stream.write(_INT.pack(m.rows))
    stream.write(_INT.pack(m.cols))
    stream.write(np.ascontiguousarray(m.data, dtype=_FLOAT).tobytes())


def read_matrix(stream: BinaryIO) -> Matrix:
    rows = _read_int(stream, "matrix rows")
    cols = _read_int(stream, "matrix cols")
    if rows < 0 or cols < 0:
        raise CorruptModel(f"negative matrix dimensions ({rows}, {cols})")
    count = rows * cols
    payload = _read_exact(stream, count * _FLOAT.itemsize, f"{rows}x{cols} matrix")
    values = np.frombuffer(payload, dtype=_FLOAT, count=count).reshape(rows, cols)
    return Matrix.from_array(values) if count else Matrix(rows, cols)


def validate_layers(layers: Sequence[Layer]) -> None:
    """Raise :class:`CorruptModel` unless adjacent layers chain correctly."""

    for idx, layer in enumerate(layers):
        if layer.biased.rows != 1 or layer.outputs.shape != layer.biased.shape:
            raise CorruptModel(
                f"layer {idx}: outputs {layer.outputs.shape} and biases "
                f"{layer.biased.shape} must be matching row vectors"
            )
    for idx, (current, following) in enumerate(zip(layers[:-1], layers[1:])):
        expected = (current.outputs.cols, following.outputs.cols)
        if current.weights.shape != expected:
            raise CorruptModel(
                f"layer {idx}: weights {current.weights.shape} do not bridge "
                f"{expected[0]} -> {expected[1]} neurons"
            )


def dump(layers: Sequence[Layer], progress: TrainingProgress, stream: BinaryIO) -> None:
    validate_layers(layers)
    stream.write(_INT.pack(int(progress.trained)))
    stream.write(_INT.pack(int(progress.data_index)))
    stream.write(_INT.pack(len(layers)))
    for layer in layers:
        write_matrix(stream, layer.biased)
        write_matrix(stream, layer.weights)


def dumps(layers: Sequence[Layer], progress: TrainingProgress) -> bytes:
    buffer = io.BytesIO()
    dump(layers, progress, buffer)
    return buffer.getvalue()


def load(stream: BinaryIO) -> Tuple[List[Layer], TrainingProgress]:
    trained = _read_int(stream, "trained counter")
    data_index = _read_int(stream, "data index")
    layer_count = _read_int(stream, "layer count")
    if trained < 0 or data_index < 0:
        raise CorruptModel(f"negative training progress ({trained}, {data_index})")
    if layer_count <= 0:
        raise CorruptModel(f"invalid layer count {layer_count}")

    layers: List[Layer] = []
    for idx in range(layer_count):
        biased = read_matrix(stream)
        if biased.rows != 1:
            raise CorruptModel(f"layer {idx}: biases must be a row vector, got {biased.shape}")
        weights = read_matrix(stream)
        layers.append(Layer(outputs=Matrix(1, biased.cols), biased=biased, weights=weights))

    validate_layers(layers)
    if stream.read(1):
        logger.warning("Ignoring trailing bytes after %d layers", layer_count)
    return layers, TrainingProgress(trained=trained, data_index=data_index)


def loads(data: bytes) -> Tuple[List[Layer], TrainingProgress]:
    return load(io.BytesIO(data))


def save_file(path: str | Path, network, progress: TrainingProgress) -> Path:
    """Write ``network`` to ``path`` atomically and return the path."""

    path = Path(path)
    payload = dumps(network.layers, progress)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except OSError as exc:
        raise IOFailure(f"cannot write model to {path}: {exc}") from exc
    logger.info("Saved %d-layer model to %s", len(network.layers), path)
    return path


def load_file(path: str | Path) -> Tuple[List[Layer], TrainingProgress]:
    path = Path(path)
    try:
        handle = path.open("rb")
    except OSError as exc:
        raise IOFailure(f"cannot open model {path}: {exc}") from exc
    with handle:
        layers, progress = load(handle)
    logger.info("Loaded %d-layer model from %s", len(layers), path)
    return layers, progress


__all__ = [
    "dump",
    "dumps",
    "load",
    "load_file",
    "loads",
    "read_matrix",
    "save_file",
    "validate_layers",
    "write_matrix",
]
