"""Pipeline assembly: dataset, network, trainer, sinks and artifacts."""

from __future__ import annotations

import json
import logging
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Tuple

from ..core.errors import IOFailure
from ..core.network import DEFAULT_LEARN_RATE, Network
from ..core.types import RunResult, TrainingProgress
from ..data import registry
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink, MetricsCapture
from ..reporting.plots import PlotAdapter
from ..reporting.summary import write_summary
from .trainer import DEFAULT_MAX_EPOCHS, Trainer, evaluate

logger = logging.getLogger(__name__)

MODEL_FILENAME = "model.nn"

_PRESETS: Dict[str, Mapping[str, object]] = {
    "mnist-784-20-10": {
        "data": {"name": "mnist", "options": {}},
        "model": {"topology": [784, 20, 10], "learn_rate": 0.01},
        "train": {
            "epochs": 3,
            "seed": 0,
            "log_every": 100,
            "evaluate": True,
            "run_dir": "runs/mnist-784-20-10",
            "enable_plots": False,
        },
    },
    "mnist-desktop": {
        "data": {"name": "mnist", "options": {}},
        "model": {"topology": [784, 20, 10, 10], "learn_rate": 0.01},
        "train": {
            "epochs": 3,
            "seed": 0,
            "log_every": 100,
            "evaluate": True,
            "run_dir": "runs/mnist-desktop",
            "enable_plots": False,
        },
    },
    "mnist-smoke": {
        "data": {"name": "mnist", "options": {"max_items": 32}},
        "model": {"topology": [784, 16, 10], "learn_rate": 0.05},
        "train": {
            "epochs": 1,
            "seed": 7,
            "log_every": 8,
            "evaluate": True,
            "run_dir": "runs/mnist-smoke",
            "enable_plots": False,
        },
    },
    "xor": {
        "data": {"name": "xor", "options": {"repeat": 1}},
        "model": {"topology": [2, 3, 2], "learn_rate": 0.5},
        "train": {
            "epochs": 2000,
            "seed": 1,
            "log_every": 400,
            "evaluate": True,
            "run_dir": "runs/xor",
            "enable_plots": False,
        },
    },
    "blobs": {
        "data": {"name": "blobs", "options": {"n_points": 240, "n_classes": 3, "seed": 0}},
        "model": {"topology": [2, 8, 3], "learn_rate": 0.1},
        "train": {
            "epochs": 20,
            "seed": 3,
            "log_every": 64,
            "evaluate": True,
            "run_dir": "runs/blobs",
            "enable_plots": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None


def read_config_file(path: str | Path) -> Mapping[str, object]:
    """Decode a JSON or YAML config file into a mapping."""

    path = Path(path)
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        import yaml

        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = read_config_file(file)
                missing = {"data", "model", "train"} - set(data)
                if missing:
                    raise KeyError(
                        f"Preset {file.name} is missing required sections: "
                        f"{', '.join(sorted(missing))}"
                    )
                found[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = found
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_overrides = _file_presets()
    if name in file_overrides:
        return file_overrides[name]
    try:
        return deepcopy(_PRESETS[name])
    except KeyError:
        raise KeyError(f"Unknown preset: {name}") from None


# ----------------------------------------------------------------------
# Resolution helpers


def _sections(config: Mapping[str, object]) -> Tuple[dict, dict, dict]:
    missing = {"data", "model", "train"} - set(config)
    if missing:
        raise KeyError(f"Config is missing required sections: {', '.join(sorted(missing))}")
    return dict(config["data"]), dict(config["model"]), dict(config["train"])


def resolve_dataset(config: Mapping[str, object]) -> registry.DatasetSpec:
    data_cfg, _, train_cfg = _sections(config)
    return registry.get_dataset(
        str(data_cfg["name"]),
        offline=bool(config.get("offline", True)),
        cache_dir=train_cfg.get("cache_dir"),
        **dict(data_cfg.get("options", {})),
    )


def _resolve_topology(model_cfg: Mapping[str, object], data_spec: registry.DataSpec) -> List[int]:
    if "topology" in model_cfg:
        topology = [int(n) for n in model_cfg["topology"]]  # type: ignore[union-attr]
    else:
        hidden = [int(n) for n in model_cfg.get("hidden", [])]  # type: ignore[union-attr]
        topology = [data_spec.d_in, *hidden, data_spec.d_out]
    if topology[0] != data_spec.d_in:
        raise ValueError(f"Topology input width {topology[0]} but dataset provides {data_spec.d_in}")
    if topology[-1] != data_spec.d_out:
        raise ValueError(f"Topology output width {topology[-1]} but dataset provides {data_spec.d_out}")
    return topology


def resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset


def resolve_model_path(train_cfg: Mapping[str, object], run_dir: Path) -> Path:
    if train_cfg.get("model_path"):
        return Path(str(train_cfg["model_path"]))
    return run_dir / MODEL_FILENAME


def build_network(
    config: Mapping[str, object],
    dataset: registry.DatasetSpec,
    model_path: Path | None = None,
    *,
    resume: bool = False,
) -> Tuple[Network, TrainingProgress]:
    """Create a fresh network, or load ``model_path`` when resuming."""

    _, model_cfg, train_cfg = _sections(config)
    topology = _resolve_topology(model_cfg, dataset.data_spec)
    labels = list(model_cfg.get("labels") or dataset.labels)  # type: ignore[arg-type]
    learn_rate = float(model_cfg.get("learn_rate", DEFAULT_LEARN_RATE))

    if resume and model_path is not None and model_path.exists():
        network, progress = Network.from_file(model_path, labels, learn_rate)
        if network.topology != topology:
            raise ValueError(
                f"Saved model topology {network.topology} does not match configured {topology}"
            )
        logger.info(
            "Resuming %s at epoch %d, sample %d", model_path, progress.trained, progress.data_index
        )
        return network, progress

    init_range = tuple(model_cfg.get("init_range", (-0.5, 0.5)))  # type: ignore[arg-type]
    network = Network(
        topology,
        labels,
        learn_rate,
        seed=int(train_cfg.get("seed", 0)),
        init_range=(float(init_range[0]), float(init_range[1])),
    )
    return network, TrainingProgress()


# ----------------------------------------------------------------------
# Entry points


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    """Train a network as described by ``config`` and write the run artifacts."""

    _, _, train_cfg = _sections(config)
    dataset = resolve_dataset(config)
    train_set = dataset.split("train")

    seed = int(train_cfg.get("seed", 0))
    epochs = int(train_cfg.get("epochs", DEFAULT_MAX_EPOCHS))
    max_steps = train_cfg.get("max_steps")
    run_dir = resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)
    model_path = resolve_model_path(train_cfg, run_dir)

    network, progress = build_network(
        config, dataset, model_path, resume=bool(train_cfg.get("resume", False))
    )

    _print_startup_summary(
        dataset_name=dataset.name,
        samples=train_set.count(),
        topology=network.topology,
        learn_rate=network.learn_rate,
        epochs=epochs,
        param_count=network.parameter_count,
        progress=progress,
    )

    step_sink = JsonlSink(
        run_dir / "metrics_steps.jsonl",
        split="train",
        seed=seed,
        every=int(train_cfg.get("log_every", 1)),
        epochs=False,
    )
    epoch_sink = JsonlSink(run_dir / "metrics.jsonl", split="train", seed=seed, steps=False)
    csv_sink = CsvSink(run_dir / "metrics.csv", split="train")
    capture = MetricsCapture()
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    trainer = Trainer(
        network,
        train_set,
        progress=progress,
        callbacks=[step_sink, epoch_sink, csv_sink, capture, plots],
        max_epochs=epochs,
    )
    trainer.run(steps=int(max_steps) if max_steps is not None else None)
    plots.close()

    network.save(model_path, trainer.progress)
    logger.info(
        "Trained %d samples; progress epoch=%d index=%d",
        trainer.steps,
        trainer.progress.trained,
        trainer.progress.data_index,
    )

    if train_cfg.get("evaluate", False) and "test" in dataset.splits:
        test_metrics = evaluate(network, dataset.split("test"))
        (run_dir / "metrics_test.json").write_text(json.dumps(test_metrics, indent=2))
        print(
            f"Test accuracy : {test_metrics['accuracy']:.4f} "
            f"(error {test_metrics['error']:.6f}, {test_metrics['count']} samples)"
        )

    safe_config = json.loads(json.dumps(config))
    safe_config["model"]["topology"] = network.topology
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=safe_config,
        dataset_provenance=dataset.provenance,
        model={
            "path": str(model_path),
            "topology": network.topology,
            "labels": network.output_labels,
            "trained": trainer.progress.trained,
            "data_index": trainer.progress.data_index,
            "final_metrics": dict(capture.last),
        },
    )
    summary_path = write_summary(
        epoch_sink.path, run_dir / "summary.json", tail=int(train_cfg.get("summary_tail", 32))
    )
    (run_dir / "config.json").write_text(json.dumps(safe_config, indent=2))

    return RunResult(
        steps=trainer.steps,
        epochs=trainer.progress.trained,
        model_path=str(model_path),
        metrics_path=str(epoch_sink.path),
        manifest_path=manifest,
        summary_path=summary_path,
    )


def _load_saved(config: Mapping[str, object]) -> Tuple[registry.DatasetSpec, Network]:
    _, _, train_cfg = _sections(config)
    dataset = resolve_dataset(config)
    model_path = resolve_model_path(train_cfg, resolve_run_dir(train_cfg, dataset.name))
    if not model_path.exists():
        raise IOFailure(f"no saved model at {model_path}; train the run first")
    network, _ = build_network(config, dataset, model_path, resume=True)
    return dataset, network


def evaluate_model(config: Mapping[str, object], split: str = "test") -> Dict[str, float]:
    """Evaluate the saved model of ``config`` on ``split``."""

    dataset, network = _load_saved(config)
    return evaluate(network, dataset.split(split))


def predict_sample(
    config: Mapping[str, object], index: int, split: str = "test"
) -> Mapping[str, object]:
    """Classify one dataset sample with the saved model of ``config``."""

    dataset, network = _load_saved(config)
    samples = dataset.split(split)
    prediction = network.predict(samples.get_input(index))
    expected = samples.get_output(index).argmax()
    return {
        "index": int(index),
        "split": split,
        "label": prediction.label,
        "confidence": prediction.confidence,
        "expected": network.output_labels[expected],
        "correct": prediction.index == expected,
    }


def _print_startup_summary(
    *,
    dataset_name: str,
    samples: int,
    topology: Sequence[int],
    learn_rate: float,
    epochs: int,
    param_count: int,
    progress: TrainingProgress,
) -> None:
    print("=== SigmaNet run ===")
    print(f"Dataset       : {dataset_name} ({samples} samples)")
    print(f"Topology      : {list(topology)}")
    print(f"Learning rate : {learn_rate}")
    print(f"Epochs        : {epochs}")
    print(f"Parameters    : {param_count}")
    print(f"Start         : epoch {progress.trained}, sample {progress.data_index}")
    print("====================")


__all__ = [
    "build_network",
    "evaluate_model",
    "load_preset",
    "predict_sample",
    "presets",
    "read_config_file",
    "resolve_dataset",
    "run_pipeline",
]
