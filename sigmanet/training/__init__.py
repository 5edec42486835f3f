"""Training loop and pipeline assembly."""

from .pipelines import load_preset, presets, run_pipeline
from .trainer import Trainer, evaluate, train_step

__all__ = ["Trainer", "evaluate", "load_preset", "presets", "run_pipeline", "train_step"]
