from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from mlaas_studio.models.export import (
    JSON_SIMULATION_NOTE,
    SIMULATION_NOTE,
    create_model_export_data,
    download_filename,
    get_recommended_extensions,
    simulated_layers,
)
from mlaas_studio.models.records import (
    FineTuneOptions,
    Model,
    is_local_id,
    model_from_columns,
    parse_timestamp,
    to_columns,
)

CREATED = datetime(2024, 3, 5, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def nn_model():
    return Model(
        id="0f8e2a9c-1111-2222-3333-444455556666",
        name="Churn net",
        type="DL",
        algorithm="Neural Network",
        accuracy=0.91,
        created=CREATED,
        dataset_name="churn.csv",
        parameters={"epochs": 40, "learningRate": 0.01, "problemType": "regression"},
        neural_network_architecture=[
            {"neurons": 64, "activation": "ReLU", "dropout": 0.2},
            {"neurons": 1, "activation": "Linear", "dropout": 0.0},
        ],
        targets=["churned"],
    )


class TestModel:

    def test_accuracy_must_be_a_fraction(self):
        with pytest.raises(ValueError):
            Model(id="x", name="x", type="ML", algorithm="SVM", accuracy=1.2,
                  created=CREATED, dataset_name="d.csv")

    def test_timestamp_with_z_suffix(self):
        assert parse_timestamp("2024-03-05T12:30:00Z") == CREATED

    def test_naive_timestamp_is_utc(self):
        assert parse_timestamp("2024-03-05T12:30:00") == CREATED

    def test_row_round_trip(self, nn_model):
        row = nn_model.to_row()
        assert isinstance(row["parameters"], str)
        assert Model.from_row(row) == nn_model

    def test_typed_parameter_views(self, nn_model):
        nn_model.parameters.update({"fineTuned": True, "feature_importance": {"age": "0.5"}})
        assert nn_model.is_fine_tuned
        assert nn_model.feature_importance == {"age": 0.5}
        assert nn_model.metrics == {}

    def test_local_ids(self):
        assert is_local_id("local-abc")
        assert is_local_id("mock-1")
        assert not is_local_id("0f8e2a9c")

    def test_to_columns_maps_and_rejects(self):
        cols = to_columns({"datasetName": "a.csv", "id": "ignored", "isTrained": True})
        assert cols == {"dataset_name": "a.csv", "is_trained": True}
        with pytest.raises(ValueError):
            to_columns({"colour": "red"})

    def test_model_from_columns(self):
        m = model_from_columns("pending", CREATED, {
            "name": "n", "type": "ML", "algorithm": "KNN", "accuracy": 0.5, "dataset_name": "d.csv",
        })
        assert m.parameters == {}

    def test_fine_tune_options_dict(self):
        assert FineTuneOptions(epochs=3).to_dict() == {
            "epochs": 3, "learningRate": 0.001, "batchSize": 32, "optimizer": "adam",
        }


class TestExport:

    def test_json_export_reads_back_to_same_model(self, nn_model):
        payload = json.loads(create_model_export_data(nn_model, "json"))
        assert payload.pop("simulation_note") == JSON_SIMULATION_NOTE
        assert Model.from_dict(payload) == nn_model

    def test_pickle_shape(self, nn_model):
        payload = json.loads(create_model_export_data(nn_model, "pkl"))
        assert payload["_sklearn_version"] == "1.2.0"
        assert payload["feature_names"] == ["churned"]
        assert payload["metadata"] == {"is_fitted": True, "simulation_note": SIMULATION_NOTE}

    def test_keras_shape(self, nn_model):
        payload = json.loads(create_model_export_data(nn_model, ".H5"))
        layers = payload["model_config"]["config"]["layers"]
        assert [l["config"]["units"] for l in layers] == [64, 1]
        assert layers[0]["config"]["activation"] == "relu"
        training = payload["training_config"]
        assert training["loss"] == "mse"
        assert training["epochs"] == 40
        assert training["optimizer_config"]["config"]["learning_rate"] == 0.01

    def test_keras_default_layer_without_architecture(self, nn_model):
        nn_model.neural_network_architecture = None
        payload = json.loads(create_model_export_data(nn_model, "keras"))
        assert payload["model_config"]["config"]["layers"][0]["config"]["units"] == 64

    def test_torch_and_onnx(self, nn_model):
        torch = json.loads(create_model_export_data(nn_model, "pt"))
        assert torch["optimizer_state_dict"]["param_groups"][0]["lr"] == 0.01
        onnx = json.loads(create_model_export_data(nn_model, "onnx"))
        assert onnx["graph"]["name"] == "Churn net"
        assert [n["name"] for n in onnx["graph"]["nodes"]] == ["input", "layer1", "output"]

    def test_unknown_extension_falls_back_to_json(self, nn_model):
        payload = json.loads(create_model_export_data(nn_model, "zip"))
        assert payload["id"] == nn_model.id

    def test_legacy_neuron_counts(self):
        layers = simulated_layers([16, 8, 1])
        assert [l["config"]["activation"] for l in layers] == ["relu", "relu", "linear"]

    @pytest.mark.parametrize("type_,algorithm,expected", [
        ("DL", "Neural Network", ["h5", "keras", "pb", "pt", "onnx", "json"]),
        ("ML", "Random Forest", ["pkl", "joblib", "json"]),
        ("ML", "SVM", ["pkl", "joblib", "json", "onnx"]),
        ("ML", "KNN", ["pkl", "joblib", "json"]),
        ("Clustering", "K-Means", ["json"]),
    ])
    def test_recommended_extensions(self, nn_model, type_, algorithm, expected):
        nn_model.type, nn_model.algorithm = type_, algorithm
        assert get_recommended_extensions(nn_model) == expected

    def test_download_filename(self, nn_model):
        assert download_filename(nn_model, "H5") == "Churn_net_0f8e2a9c.h5"

    def test_download_filename_strips_path_characters(self, nn_model):
        name = download_filename(nn_model, "../../etc/x")
        assert "/" not in name and ".." not in name
        assert name == "Churn_net_0f8e2a9c.etcx"
        assert download_filename(nn_model, "./") == "Churn_net_0f8e2a9c.json"
