"""Serialise a Model into file-format-shaped JSON for download.

None of these are real binary artifacts: the ``pkl``/``h5``/``pt``/``onnx``
variants are JSON documents carrying the metadata fields those formats use.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List

from ..algorithms import LINEAR_ALGORITHMS, TREE_BASED_ALGORITHMS, ModelType
from .records import Model, format_timestamp

SIMULATION_NOTE = "This is a simulated model structure for demonstration purposes only."
JSON_SIMULATION_NOTE = (
    SIMULATION_NOTE + " To use actual models, implement training with ML libraries "
    "like TensorFlow, PyTorch or scikit-learn."
)

SUPPORTED_EXTENSIONS = ["json", "pkl", "pickle", "h5", "hdf5", "keras", "pt", "pth", "onnx"]


def _base_metadata(model: Model) -> Dict[str, Any]:
    return {
        "name": model.name,
        "algorithm": model.algorithm,
        "accuracy": model.accuracy,
        "created": format_timestamp(model.created),
        "type": model.type,
    }


def simulated_layers(architecture: List[Any]) -> List[Dict[str, Any]]:
    """Keras-style Dense layer configs for either architecture form."""
    if architecture and isinstance(architecture[0], (int, float)):
        last = len(architecture) - 1
        return [
            {
                "class_name": "Dense",
                "config": {
                    "units": int(neurons),
                    "activation": "linear" if i == last else "relu",
                    "use_bias": True,
                },
            }
            for i, neurons in enumerate(architecture)
        ]
    return [
        {
            "class_name": "Dense",
            "config": {
                "units": int(layer["neurons"]),
                "activation": str(layer.get("activation", "ReLU")).lower(),
                "use_bias": True,
                "dropout": layer.get("dropout") or 0,
            },
        }
        for layer in architecture
    ]


def _pickle_shape(model: Model) -> Dict[str, Any]:
    return {
        **_base_metadata(model),
        "_sklearn_version": "1.2.0",
        "parameters": model.parameters,
        "feature_names": model.targets,
        "metadata": {"is_fitted": True, "simulation_note": SIMULATION_NOTE},
    }


def _keras_shape(model: Model) -> Dict[str, Any]:
    params = model.parameters or {}
    if model.neural_network_architecture:
        layers = simulated_layers(model.neural_network_architecture)
    else:
        layers = [{"class_name": "Dense", "config": {"units": 64, "activation": "relu"}}]
    return {
        **_base_metadata(model),
        "format": "Keras H5",
        "keras_version": "2.11.0",
        "backend": "tensorflow",
        "model_config": {
            "class_name": "Sequential",
            "config": {"name": "sequential", "layers": layers},
        },
        "training_config": {
            "optimizer_config": {
                "class_name": "Adam",
                "config": {"learning_rate": params.get("learningRate") or 0.001},
            },
            "loss": "mse" if params.get("problemType") == "regression" else "binary_crossentropy",
            "metrics": ["accuracy"],
            "weighted_metrics": None,
            "epochs": params.get("epochs") or 100,
        },
        "simulation_note": SIMULATION_NOTE,
    }


def _torch_shape(model: Model) -> Dict[str, Any]:
    params = model.parameters or {}
    return {
        **_base_metadata(model),
        "torch_version": "1.13.0",
        "model_state_dict": {
            "layers.0.weight": "[simulated tensor data]",
            "layers.0.bias": "[simulated tensor data]",
            "layers.1.weight": "[simulated tensor data]",
            "layers.1.bias": "[simulated tensor data]",
        },
        "optimizer_state_dict": {
            "state": {},
            "param_groups": [
                {"lr": params.get("learningRate") or 0.001, "momentum": 0.9, "weight_decay": 0.0001}
            ],
        },
        "simulation_note": SIMULATION_NOTE,
    }


def _onnx_shape(model: Model) -> Dict[str, Any]:
    return {
        **_base_metadata(model),
        "onnx_version": "1.12.0",
        "graph": {
            "name": model.name,
            "nodes": [
                {"name": "input", "op_type": "Input", "inputs": [], "outputs": ["features"]},
                {"name": "layer1", "op_type": "Dense", "inputs": ["features"], "outputs": ["hidden1"]},
                {"name": "output", "op_type": "Output", "inputs": ["hidden1"], "outputs": ["predictions"]},
            ],
        },
        "simulation_note": SIMULATION_NOTE,
    }


def create_model_export_data(model: Model, file_extension: str | None = "json") -> str:
    ext = re.sub(r"[^a-z0-9]+", "", (file_extension or "").lower()) or "json"
    if ext in ("pkl", "pickle"):
        payload = _pickle_shape(model)
    elif ext in ("h5", "hdf5", "keras"):
        payload = _keras_shape(model)
    elif ext in ("pt", "pth"):
        payload = _torch_shape(model)
    elif ext == "onnx":
        payload = _onnx_shape(model)
    else:
        payload = {**model.to_dict(), "simulation_note": JSON_SIMULATION_NOTE}
    return json.dumps(payload, indent=2)


def get_recommended_extensions(model: Model) -> List[str]:
    if model.type == ModelType.DL.value:
        return ["h5", "keras", "pb", "pt", "onnx", "json"]
    if model.type == ModelType.ML.value:
        if model.algorithm in TREE_BASED_ALGORITHMS:
            return ["pkl", "joblib", "json"]
        if model.algorithm in LINEAR_ALGORITHMS:
            return ["pkl", "joblib", "json", "onnx"]
        return ["pkl", "joblib", "json"]
    return ["json"]


def download_filename(model: Model, file_extension: str | None = "json") -> str:
    ext = re.sub(r"[^a-z0-9]+", "", (file_extension or "").lower()) or "json"
    stem = re.sub(r"[^A-Za-z0-9._-]+", "_", model.name).strip("_") or "model"
    return f"{stem}_{str(model.id)[:8]}.{ext}"
