"""Dataset registry and sample providers."""

# Ensure built-in datasets register themselves when the package is imported.
from . import mnist as _mnist  # noqa: F401
from . import synthetic as _synthetic  # noqa: F401
from .mnist import MnistDataset, image_to_input
from .registry import (
    Dataset,
    DatasetSpec,
    DataSpec,
    available_datasets,
    get_dataset,
    register_dataset,
)
from .utils import ArrayDataset, one_hot

__all__ = [
    "ArrayDataset",
    "DataSpec",
    "Dataset",
    "DatasetSpec",
    "MnistDataset",
    "available_datasets",
    "get_dataset",
    "image_to_input",
    "one_hot",
    "register_dataset",
]
