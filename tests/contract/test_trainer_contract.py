import json
from pathlib import Path

import pytest

from sigmanet.core.errors import IOFailure
from sigmanet.core.network import Network
from sigmanet.training import pipelines


def _xor_config(tmp_path, run="run", **train):
    config = {
        "data": {"name": "xor", "options": {}},
        "model": {"topology": [2, 3, 2], "learn_rate": 0.5},
        "train": {
            "epochs": 2,
            "seed": 11,
            "evaluate": True,
            "run_dir": str(tmp_path / run),
            "cache_dir": str(tmp_path / "cache"),
            "enable_plots": False,
        },
        "offline": True,
    }
    config["train"].update(train)
    return config


def test_trainer_pipeline_produces_artifacts(tmp_path, monkeypatch):
    monkeypatch.setenv("SIGMANET_DATA_OFFLINE", "1")
    config = _xor_config(tmp_path)

    result = pipelines.run_pipeline(config)
    run_dir = tmp_path / "run"
    assert result.steps == 8
    assert result.epochs == 2
    assert Path(result.model_path) == run_dir / "model.nn"
    for name in ("metrics_steps.jsonl", "metrics.csv", "metrics_test.json", "summary.json", "config.json"):
        assert (run_dir / name).exists(), name
    assert not (run_dir / "loss.png").exists()

    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["config"]["train"]["seed"] == 11
    assert manifest["dataset"]["type"] == "synthetic"
    assert manifest["model"]["trained"] == 2
    assert manifest["model"]["data_index"] == 0
    assert set(manifest["model"]["final_metrics"]) == {"error"}

    metrics = [json.loads(line) for line in Path(result.metrics_path).read_text().splitlines() if line]
    assert [entry["epoch"] for entry in metrics] == [1, 2]
    first = metrics[0]
    assert first["split"] == "train"
    assert "sha" in first and "seed" in first
    assert all("error" in entry for entry in metrics)

    network, progress = Network.from_file(result.model_path)
    assert network.topology == [2, 3, 2]
    assert (progress.trained, progress.data_index) == (2, 0)


def test_hidden_layers_resolve_against_dataset(tmp_path):
    config = _xor_config(tmp_path)
    config["model"] = {"hidden": [5], "learn_rate": 0.1}
    dataset = pipelines.resolve_dataset(config)
    network, _ = pipelines.build_network(config, dataset)
    assert network.topology == [2, 5, 2]
    assert network.output_labels == ["0", "1"]


def test_topology_must_match_dataset(tmp_path):
    config = _xor_config(tmp_path)
    config["model"]["topology"] = [3, 2]
    dataset = pipelines.resolve_dataset(config)
    try:
        pipelines.build_network(config, dataset)
    except ValueError as exc:
        assert "input width" in str(exc)
    else:  # pragma: no cover
        raise AssertionError("expected ValueError")


def test_pipeline_resumes_from_saved_cursor(tmp_path):
    partial = pipelines.run_pipeline(_xor_config(tmp_path, max_steps=3))
    assert partial.steps == 3
    assert partial.epochs == 0

    resumed = pipelines.run_pipeline(_xor_config(tmp_path, resume=True))
    assert resumed.steps == 5
    assert resumed.epochs == 2

    straight = pipelines.run_pipeline(_xor_config(tmp_path, run="straight"))
    a, _ = Network.from_file(resumed.model_path)
    b, _ = Network.from_file(straight.model_path)
    for la, lb in zip(a.layers, b.layers):
        assert (la.weights.data == lb.weights.data).all()


def test_mnist_smoke_preset_runs_offline(tmp_path, monkeypatch):
    monkeypatch.setenv("SIGMANET_DATA_OFFLINE", "1")
    config = json.loads(json.dumps(pipelines.load_preset("mnist-smoke")))
    config["train"]["run_dir"] = str(tmp_path / "mnist")
    config["train"]["cache_dir"] = str(tmp_path / "cache")
    config["train"]["enable_plots"] = True

    result = pipelines.run_pipeline(config)
    assert result.steps == 32
    assert result.epochs == 1
    assert (tmp_path / "mnist" / "loss.png").exists()
    test_metrics = json.loads((tmp_path / "mnist" / "metrics_test.json").read_text())
    assert test_metrics["count"] == 32
    assert 0.0 <= test_metrics["accuracy"] <= 1.0

    prediction = pipelines.predict_sample(config, 0)
    assert prediction["label"] in [str(i) for i in range(10)]
    assert isinstance(prediction["correct"], bool)


def test_presets_are_listed():
    names = set(pipelines.presets())
    assert {"mnist-784-20-10", "mnist-desktop", "mnist-smoke", "xor", "blobs"} <= names
    assert pipelines.load_preset("mnist-desktop")["model"]["topology"] == [784, 20, 10, 10]


def test_file_presets_and_yaml_configs(tmp_path):
    assert pipelines.load_preset("xor-wide")["model"]["topology"] == [2, 8, 2]

    override = tmp_path / "override.yaml"
    override.write_text("train:\n  epochs: 4\n")
    assert pipelines.read_config_file(override) == {"train": {"epochs": 4}}

    toml = tmp_path / "config.toml"
    toml.write_text("[train]\n")
    with pytest.raises(ValueError):
        pipelines.read_config_file(toml)


def test_evaluate_requires_saved_model(tmp_path):
    config = _xor_config(tmp_path, run="never-trained")
    with pytest.raises(IOFailure):
        pipelines.evaluate_model(config)
    with pytest.raises(IOFailure):
        pipelines.predict_sample(config, 0)
