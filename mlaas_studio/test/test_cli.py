from __future__ import annotations

import json

import pandas as pd
import pytest
from numpy.random import default_rng

from mlaas_studio.cli.main import main
from mlaas_studio.cli.utils import parse_grid_args, parse_row, resolve_hidden_layers, split_names
from mlaas_studio.storage.writer import SQLiteModelStore


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    gen = default_rng(11)
    lines = ["sepal,petal,width,species"]
    for _ in range(30):
        a, b, c = gen.normal(size=3).round(3)
        lines.append(f"{a},{b},{c},{'setosa' if a > 0 else 'virginica'}")
    (tmp_path / "iris.csv").write_text("\n".join(lines) + "\n")
    return tmp_path


def _run(workspace, *argv):
    main(["--db", str(workspace / "models.db"), *argv])


def _stored(workspace):
    store = SQLiteModelStore(str(workspace / "models.db"))
    try:
        return store.fetch_all()
    finally:
        store.finish()


class TestTrain:

    def test_family_saved_to_registry(self, workspace, capsys):
        _run(workspace, "train", "--csv", "iris.csv", "--family", "clustering", "--fast", "--seed", "3")
        out = capsys.readouterr().out
        assert "Loaded 30 rows from iris.csv" in out
        assert "Best: " in out
        rows = _stored(workspace)
        assert sorted(r["algorithm"] for r in rows) == ["DBSCAN", "K-Means"]
        assert all(r["targets"] is None for r in rows)

    def test_single_supervised_algorithm_keeps_target(self, workspace):
        _run(workspace, "train", "--csv", "iris.csv", "--algorithm", "KNN", "--fast", "--seed", "3")
        (row,) = _stored(workspace)
        assert json.loads(row["targets"]) == ["species"]
        assert json.loads(row["parameters"])["problemType"] == "classification"

    def test_custom_layers(self, workspace):
        _run(workspace, "train", "--csv", "iris.csv", "--family", "dl", "--custom-layers", "16,8",
             "--epochs", "5", "--fast", "--seed", "1")
        (row,) = _stored(workspace)
        arch = json.loads(row["neural_network_architecture"])
        assert [layer["neurons"] for layer in arch] == [16, 8]
        assert json.loads(row["parameters"])["epochs"] == 5

    def test_no_save(self, workspace):
        _run(workspace, "train", "--csv", "iris.csv", "--algorithm", "SVM", "--fast", "--no-save")
        assert not (workspace / "models.db").exists()

    def test_missing_csv(self, workspace):
        with pytest.raises(SystemExit, match="Missing file"):
            _run(workspace, "train", "--csv", "nope.csv", "--fast")


class TestManage:

    @pytest.fixture
    def trained(self, workspace):
        _run(workspace, "train", "--csv", "iris.csv", "--family", "clustering", "--fast", "--seed", "5")
        return _stored(workspace)

    def test_list_and_csv_listing(self, workspace, trained, capsys):
        _run(workspace, "list", "--output", "listing")
        assert "2 model(s)" in capsys.readouterr().out
        df = pd.read_csv(workspace / "outputs" / "exports" / "listing.csv")
        assert sorted(df["algorithm"]) == ["DBSCAN", "K-Means"]
        assert "parameters" not in df.columns

    def test_list_filters(self, workspace, trained, capsys):
        _run(workspace, "list", "--search", "dbscan")
        assert "1 model(s)" in capsys.readouterr().out
        _run(workspace, "list", "--type", "ML")
        assert "0 model(s)" in capsys.readouterr().out

    def test_best(self, workspace, trained, capsys):
        top = max(trained, key=lambda r: r["accuracy"])
        _run(workspace, "best", "--dataset", "iris.csv")
        assert top["id"] in capsys.readouterr().out
        _run(workspace, "best", "--dataset", "other.csv")
        assert "No models found" in capsys.readouterr().out

    def test_export(self, workspace, trained, capsys):
        model_id = trained[0]["id"]
        _run(workspace, "export", model_id, "--format", "onnx", "--dir", "out")
        files = list((workspace / "out").glob("*.onnx"))
        assert len(files) == 1
        assert json.loads(files[0].read_text())["onnx_version"] == "1.12.0"
        _run(workspace, "export", model_id, "--recommended")
        assert capsys.readouterr().out.strip().endswith("json")

    def test_fine_tune_and_delete(self, workspace, trained, capsys):
        model_id = trained[0]["id"]
        _run(workspace, "fine-tune", model_id, "--epochs", "3")
        assert "(Fine-tuned)" in capsys.readouterr().out
        assert len(_stored(workspace)) == 3
        _run(workspace, "delete", model_id)
        assert model_id not in {r["id"] for r in _stored(workspace)}

    def test_predict_needs_rows(self, workspace, trained):
        with pytest.raises(SystemExit, match="--row"):
            _run(workspace, "predict", trained[0]["id"])

    def test_delete_unknown(self, workspace, trained):
        with pytest.raises(SystemExit, match="not found"):
            _run(workspace, "delete", "nope")


class TestUnreachableStore:

    def test_train_and_list_use_local_cache(self, workspace, capsys):
        (workspace / "blocker").write_text("")
        bad_db = str(workspace / "blocker" / "models.db")
        main(["--db", bad_db, "train", "--csv", "iris.csv", "--algorithm", "KNN", "--fast", "--seed", "3"])
        out = capsys.readouterr().out
        assert "Saved KNN as local-" in out
        assert "saved to the local cache" in out

        main(["--db", bad_db, "list"])
        out = capsys.readouterr().out
        assert "1 model(s)" in out
        assert "[local]" in out


class TestEvaluate:

    def test_cross_validate(self, workspace, capsys):
        _run(workspace, "cross-validate", "--folds", "3", "--seed", "1")
        out = capsys.readouterr().out
        assert "fold 3:" in out
        assert "fold 4:" not in out

    def test_too_few_folds(self, workspace):
        with pytest.raises(SystemExit):
            _run(workspace, "cross-validate", "--folds", "1")

    def test_tune_grid(self, workspace, capsys):
        _run(workspace, "tune", "--grid", "lr=0.1,0.01", "--grid", "layers=1,2", "--seed", "2")
        out = capsys.readouterr().out
        assert "trial 4:" in out
        assert "Best: trial" in out


class _Question:
    def __init__(self, answer):
        self.answer = answer

    def ask(self):
        return self.answer


def _script(monkeypatch, answers):
    import questionary

    queue = iter(answers)

    def next_answer(*args, **kwargs):
        return _Question(next(queue))

    for name in ("path", "select", "confirm", "text"):
        monkeypatch.setattr(questionary, name, next_answer)


class TestWizard:

    def test_train_then_fine_tune(self, workspace, monkeypatch, capsys):
        _script(monkeypatch, [
            "iris.csv", "species", "Clustering", "All", True, True,
            "Show best model", "Fine-tune best model", "Quit",
        ])
        _run(workspace, "wizard")
        out = capsys.readouterr().out
        assert "30 rows, features: sepal, petal, width" in out
        assert "(Fine-tuned)" in out
        assert len(_stored(workspace)) == 3

    def test_cancel(self, workspace, monkeypatch):
        _script(monkeypatch, [None])
        with pytest.raises(SystemExit, match="Cancelled"):
            _run(workspace, "wizard")


def test_serve_runs_uvicorn(monkeypatch):
    import uvicorn

    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    main(["serve", "--port", "9001"])
    (app, kwargs), = calls
    assert kwargs == {"host": "127.0.0.1", "port": 9001, "log_level": "info"}
    assert any(getattr(r, "path", None) == "/health-check" for r in app.routes)


def test_no_command_prints_help(capsys):
    main([])
    assert "usage" in capsys.readouterr().out


class TestArgHelpers:

    def test_grid(self):
        assert parse_grid_args(["lr=0.1,0.01", "deep=true", "opt=adam,sgd"]) == {
            "lr": [0.1, 0.01], "deep": [True], "opt": ["adam", "sgd"],
        }
        assert parse_grid_args(None) == {}
        with pytest.raises(SystemExit):
            parse_grid_args(["lr"])

    def test_row(self):
        assert parse_row("1, 2.5,red") == [1, 2.5, "red"]

    def test_names_and_layers(self):
        assert split_names("a, b,,c") == ["a", "b", "c"]
        assert split_names("") is None
        assert resolve_hidden_layers("64,32") == [64, 32]
        assert resolve_hidden_layers(None, [8]) == [8]
