"""Dataset registry and the sample-provider contract."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, MutableMapping, Protocol, runtime_checkable

from ..core.matrix import Matrix


@runtime_checkable
class Dataset(Protocol):
    """Anything that hands out input/expected pairs by index.

    ``get_input`` returns a ``1 x input_width`` matrix with values in
    ``[0, 1]`` and ``get_output`` a ``1 x label_count`` one-hot matrix.
    """

    def count(self) -> int: ...

    def get_input(self, index: int) -> Matrix: ...

    def get_output(self, index: int) -> Matrix: ...


@dataclass(frozen=True)
class DataSpec:
    """Structural information about a dataset.

    Attributes
    ----------
    d_in:
        Width of an input vector.
    d_out:
        Width of an expected-output vector (the number of classes).
    normalization:
        Free-form description of the scaling applied to the inputs.
    """

    d_in: int
    d_out: int
    normalization: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DatasetSpec:
    """A registered dataset resolved into concrete splits."""

    name: str
    splits: Dict[str, Dataset]
    data_spec: DataSpec
    labels: List[str]
    provenance: Dict[str, Any] = field(default_factory=dict)

    def split(self, name: str) -> Dataset:
        try:
            return self.splits[name]
        except KeyError:
            raise KeyError(f"Dataset {self.name!r} has no split {name!r}") from None

    @property
    def sizes(self) -> Dict[str, int]:
        return {name: int(ds.count()) for name, ds in self.splits.items()}


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("mnist")
        def build_mnist(**kwargs):
            ...

    or directly::

        register_dataset("mnist", build_mnist)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(
    dataset: str,
    /,
    *,
    offline: bool = True,
    cache_dir: str | Path | None = None,
    **options: Any,
) -> DatasetSpec:
    """Return the :class:`DatasetSpec` for ``dataset``."""

    if dataset not in _REGISTRY:
        raise KeyError(f"Unknown dataset: {dataset}")
    spec = _REGISTRY[dataset](offline=offline, cache_dir=cache_dir, **options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    if "train" not in spec.splits:
        raise ValueError(f"Dataset {spec.name!r} must provide a 'train' split")
    if len(spec.labels) != spec.data_spec.d_out:
        raise ValueError(
            f"Dataset {spec.name!r} declares {len(spec.labels)} labels "
            f"for {spec.data_spec.d_out} outputs"
        )
    for split, ds in spec.splits.items():
        if not isinstance(ds, Dataset):
            raise TypeError(f"Split {split!r} does not implement the Dataset protocol")


__all__ = [
    "DataSpec",
    "Dataset",
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
