"""Headless-safe plotting of the training error curve."""

from __future__ import annotations

from pathlib import Path
from typing import List, Mapping, Tuple


class PlotAdapter:
    """Collect per-sample errors and optionally emit a matplotlib figure.

    ``window`` bounds how many recent points are kept, like a scrolling
    error graph.
    """

    def __init__(self, run_dir: str | Path, enable_plots: bool = False, window: int | None = None):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self.window = window
        self._history: List[Tuple[int, float]] = []
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    @property
    def history(self) -> List[Tuple[int, float]]:
        return list(self._history)

    def on_step(self, step: int, metrics: Mapping[str, float]) -> None:
        if not self.enable_plots:
            return
        self._history.append((step, float(metrics.get("error", 0.0))))
        if self.window is not None and len(self._history) > self.window:
            del self._history[0]

    def close(self) -> Path | None:
        if not self.enable_plots or not self._history:
            return None
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # imported lazily for headless safety

        steps, errors = zip(*self._history)
        fig, ax = plt.subplots()
        ax.plot(steps, errors, linewidth=0.8)
        ax.set_xlabel("Sample")
        ax.set_ylabel("Mean squared error")
        ax.set_title("Training error")
        plot_path = self.run_dir / "loss.png"
        fig.savefig(plot_path)
        plt.close(fig)
        return plot_path


__all__ = ["PlotAdapter"]
