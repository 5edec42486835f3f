"""Run artifact helpers."""

from __future__ import annotations

import json
import os
import platform
import time
from pathlib import Path
from typing import Mapping

import numpy as np

from .metrics import git_sha


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    dataset_provenance: Mapping[str, object],
    model: Mapping[str, object] | None = None,
) -> str:
    """Write a manifest JSON file capturing reproducibility metadata."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest = {
        "git_sha": git_sha(),
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "config": config,
        "dataset": dict(dataset_provenance),
        "model": dict(model or {}),
        "environment": {
            "python": platform.python_version(),
            "numpy": np.__version__,
            "offline": os.environ.get("SIGMANET_DATA_OFFLINE", "0"),
        },
    }
    path.write_text(json.dumps(manifest, indent=2, default=str))
    return str(path)


__all__ = ["write_manifest"]
