"""Metrics sinks for training runs."""

from __future__ import annotations

import csv
import json
import subprocess
from pathlib import Path
from typing import Mapping


def git_sha() -> str:
    try:
        out = subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
        return out.decode().strip()
    except (OSError, subprocess.CalledProcessError):  # pragma: no cover - git may be unavailable
        return "unknown"


def _numeric(metrics: Mapping[str, object]) -> dict:
    return {
        k: float(v)
        for k, v in metrics.items()
        if isinstance(v, (int, float)) and not isinstance(v, bool)
    }


class JsonlSink:
    """Append-only JSONL writer.

    Per-sample records are keyed by ``step`` and only every ``every``-th
    step is written; per-epoch records are keyed by ``epoch``.  Either kind
    can be switched off with ``steps`` / ``epochs``.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        split: str = "train",
        seed: int | None = None,
        sha: str | None = None,
        every: int = 1,
        steps: bool = True,
        epochs: bool = True,
    ) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.split = split
        self.seed = seed
        self.sha = sha or git_sha()
        self.every = max(1, int(every))
        self.steps = steps
        self.epochs = epochs

    def _write(self, key: str, counter: int, metrics: Mapping[str, object]) -> None:
        record = {
            key: int(counter),
            "split": self.split,
            "seed": self.seed,
            "sha": self.sha,
        }
        record.update(_numeric(metrics))
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")

    def on_step(self, step: int, metrics: Mapping[str, object]) -> None:
        if self.steps and step % self.every == 0:
            self._write("step", step, metrics)

    def on_epoch(self, epoch: int, metrics: Mapping[str, object]) -> None:
        if self.epochs:
            self._write("epoch", epoch, metrics)


class CsvSink:
    """Write per-epoch metrics to CSV with a stable schema."""

    def __init__(self, path: str | Path, *, split: str = "train") -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.split = split

    def on_epoch(self, epoch: int, metrics: Mapping[str, object]) -> None:
        row = {"epoch": int(epoch), "split": self.split}
        row.update(_numeric(metrics))
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=sorted(row.keys()))
            if handle.tell() == 0:
                writer.writeheader()
            writer.writerow(row)


class MetricsCapture:
    """Keep epoch metrics in memory."""

    def __init__(self) -> None:
        self.history: list[tuple[int, Mapping[str, float]]] = []
        self.last: Mapping[str, float] = {}

    def on_epoch(self, epoch: int, metrics: Mapping[str, object]) -> None:
        payload = _numeric(metrics)
        self.history.append((int(epoch), payload))
        self.last = payload


__all__ = ["CsvSink", "JsonlSink", "MetricsCapture", "git_sha"]
