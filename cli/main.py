"""Command line entry point for SigmaNet training runs."""

from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Iterable

from sigmanet.core.errors import SigmaNetError
from sigmanet.training import pipelines


def _format_result(result) -> str:
    payload = {
        "steps": result.steps,
        "epochs": result.epochs,
        "model": result.model_path,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
    }
    if getattr(result, "summary_path", ""):
        payload["summary"] = result.summary_path
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="mnist-784-20-10",
        help="Preset configuration to execute",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument("--epochs", type=int, help="Number of epochs to train for")
    parser.add_argument("--seed", type=int, help="Seed for weight initialisation")
    parser.add_argument("--learn-rate", type=float, help="Gradient descent step size")
    parser.add_argument("--run-dir", type=Path, help="Directory for run artifacts")
    parser.add_argument("--model", type=Path, help="Model file to write (and resume from)")
    parser.add_argument(
        "--mnist-dir",
        type=Path,
        help="Directory holding the MNIST IDX files (overrides the dataset)",
    )
    parser.add_argument(
        "--resume",
        action="store_true",
        help="Continue training from the saved model and its stored cursor",
    )
    parser.add_argument(
        "--evaluate",
        action="store_true",
        help="Only evaluate the saved model on the test split",
    )
    parser.add_argument(
        "--predict",
        type=int,
        metavar="INDEX",
        help="Only classify test sample INDEX with the saved model",
    )
    parser.add_argument(
        "--enable-plots", action="store_true", help="Write the training error curve"
    )
    parser.add_argument(
        "--offline",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Use offline dataset fixtures when no data directory is given",
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    return parser.parse_args(argv)


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def resolve_config(args: argparse.Namespace) -> dict:
    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = json.loads(json.dumps(pipelines.read_config_file(args.config)))
        if {"data", "model", "train"} <= set(override.keys()):
            config = override
        else:
            config = _merge(config, override)

    train = config.setdefault("train", {})
    if args.epochs is not None:
        train["epochs"] = int(args.epochs)
    if args.seed is not None:
        train["seed"] = int(args.seed)
    if args.run_dir is not None:
        train["run_dir"] = str(args.run_dir)
    if args.model is not None:
        train["model_path"] = str(args.model)
    if args.resume:
        train["resume"] = True
    if args.enable_plots:
        train["enable_plots"] = True
    if args.learn_rate is not None:
        config.setdefault("model", {})["learn_rate"] = float(args.learn_rate)
    if args.mnist_dir is not None:
        data = config.setdefault("data", {})
        data["name"] = "mnist"
        data.setdefault("options", {})["path"] = str(args.mnist_dir)

    config["offline"] = bool(args.offline)
    return config


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    config = resolve_config(args)
    os.environ["SIGMANET_DATA_OFFLINE"] = "1" if args.offline else "0"

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    try:
        if args.predict is not None:
            print(json.dumps(pipelines.predict_sample(config, args.predict), sort_keys=True))
        elif args.evaluate:
            print(json.dumps(pipelines.evaluate_model(config), sort_keys=True))
        else:
            print(_format_result(pipelines.run_pipeline(config)))
    except SigmaNetError as exc:
        logging.getLogger("sigmanet").error("%s", exc)
        raise SystemExit(f"error: {exc}") from exc


if __name__ == "__main__":
    main()
