import json
from pathlib import Path

import pytest

from cli.main import main


def _last_json(capsys):
    lines = [line for line in capsys.readouterr().out.splitlines() if line.startswith("{")]
    return json.loads(lines[-1])


def test_cli_train_evaluate_predict(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SIGMANET_DATA_OFFLINE", "1")
    run_dir = tmp_path / "xor-run"
    common = ["--preset", "xor", "--run-dir", str(run_dir)]

    main([*common, "--epochs", "2", "--seed", "3"])
    result = _last_json(capsys)
    assert result["epochs"] == 2
    assert result["steps"] == 8
    assert Path(result["model"]).exists()
    assert (run_dir / "manifest.json").exists()

    main([*common, "--evaluate"])
    metrics = _last_json(capsys)
    assert metrics["count"] == 4
    assert 0.0 <= metrics["accuracy"] <= 1.0

    main([*common, "--predict", "1"])
    prediction = _last_json(capsys)
    assert prediction["index"] == 1
    assert prediction["expected"] == "1"


def test_cli_dump_config_applies_overrides(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SIGMANET_DATA_OFFLINE", "1")
    dump = tmp_path / "resolved.json"
    main(
        [
            "--preset",
            "xor",
            "--epochs",
            "1",
            "--learn-rate",
            "0.25",
            "--run-dir",
            "out",
            "--dump-config",
            str(dump),
        ]
    )
    config = json.loads(dump.read_text())
    assert config["train"]["epochs"] == 1
    assert config["model"]["learn_rate"] == 0.25
    assert config["offline"] is True


def test_cli_list_presets(capsys):
    with pytest.raises(SystemExit) as info:
        main(["--list-presets"])
    assert info.value.code == 0
    assert "mnist-784-20-10" in capsys.readouterr().out.split()


def test_cli_reports_corrupt_model(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SIGMANET_DATA_OFFLINE", "1")
    run_dir = tmp_path / "broken"
    run_dir.mkdir()
    (run_dir / "model.nn").write_bytes(b"\x00\x01")
    with pytest.raises(SystemExit) as info:
        main(["--preset", "xor", "--run-dir", str(run_dir), "--evaluate"])
    assert str(info.value.code).startswith("error:")


def test_cli_evaluate_without_saved_model_fails(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SIGMANET_DATA_OFFLINE", "1")
    run_dir = tmp_path / "empty"
    run_dir.mkdir()
    for flags in (["--evaluate"], ["--predict", "0"]):
        with pytest.raises(SystemExit) as info:
            main(["--preset", "xor", "--run-dir", str(run_dir), *flags])
        assert str(info.value.code).startswith("error: no saved model")
