"""The persisted Model record and its JSON / table conversions."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

LOCAL_ID_PREFIXES = ("local-", "mock-")


def is_local_id(model_id: str) -> bool:
    return str(model_id).startswith(LOCAL_ID_PREFIXES)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        ts = value
    else:
        raw = str(value)
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        ts = datetime.fromisoformat(raw)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def format_timestamp(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat()


def _json_or(value, default=None):
    """Decode a JSON column that may come back as text or as a decoded value."""
    if value is None:
        return default
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


@dataclass
class Model:
    id: str
    name: str
    type: str
    algorithm: str
    accuracy: float
    created: datetime
    dataset_name: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    neural_network_architecture: Optional[List[Any]] = None
    targets: Optional[List[str]] = None
    is_trained: Optional[bool] = None
    model_data: Optional[str] = None
    model_predictions: Optional[Any] = None

    def __post_init__(self):
        self.accuracy = float(self.accuracy)
        if not 0.0 <= self.accuracy <= 1.0:
            raise ValueError(f"accuracy must be in [0, 1], got {self.accuracy}")
        self.type = str(getattr(self.type, "value", self.type))
        self.created = parse_timestamp(self.created)
        if self.parameters is None:
            self.parameters = {}

    # typed views over the open parameters bag
    @property
    def metrics(self) -> Dict[str, Any]:
        return dict(self.parameters.get("metrics") or {})

    @property
    def feature_importance(self) -> Dict[str, float]:
        return {k: float(v) for k, v in (self.parameters.get("feature_importance") or {}).items()}

    @property
    def confusion_matrix(self) -> List[List[int]]:
        return [list(r) for r in (self.parameters.get("confusion_matrix") or [])]

    @property
    def is_fine_tuned(self) -> bool:
        return bool(self.parameters.get("fineTuned", False))

    @property
    def is_local(self) -> bool:
        return is_local_id(self.id)

    def to_dict(self) -> Dict[str, Any]:
        """camelCase JSON form used by the local cache and the JSON export."""
        out = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "algorithm": self.algorithm,
            "accuracy": self.accuracy,
            "created": format_timestamp(self.created),
            "datasetName": self.dataset_name,
            "parameters": self.parameters,
        }
        optional = {
            "neuralNetworkArchitecture": self.neural_network_architecture,
            "targets": self.targets,
            "isTrained": self.is_trained,
            "modelData": self.model_data,
            "modelPredictions": self.model_predictions,
        }
        out.update({k: v for k, v in optional.items() if v is not None})
        return out

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Model":
        return cls(
            id=d["id"],
            name=d["name"],
            type=d["type"],
            algorithm=d["algorithm"],
            accuracy=d["accuracy"],
            created=d["created"],
            dataset_name=d["datasetName"],
            parameters=d.get("parameters") or {},
            neural_network_architecture=d.get("neuralNetworkArchitecture"),
            targets=d.get("targets"),
            is_trained=d.get("isTrained"),
            model_data=d.get("modelData"),
            model_predictions=d.get("modelPredictions"),
        )

    def to_row(self) -> Dict[str, Any]:
        """snake_case form matching the ``models`` table."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "algorithm": self.algorithm,
            "accuracy": self.accuracy,
            "created_at": format_timestamp(self.created),
            "dataset_name": self.dataset_name,
            **encode_row_fields(
                {
                    "parameters": self.parameters,
                    "neural_network_architecture": self.neural_network_architecture,
                    "targets": self.targets,
                    "is_trained": self.is_trained,
                    "model_data": self.model_data,
                    "model_predictions": self.model_predictions,
                }
            ),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Model":
        is_trained = row.get("is_trained")
        return cls(
            id=str(row["id"]),
            name=row["name"],
            type=row["type"],
            algorithm=row["algorithm"],
            accuracy=float(row["accuracy"]),
            created=row["created_at"],
            dataset_name=row["dataset_name"],
            parameters=_json_or(row.get("parameters"), {}) or {},
            neural_network_architecture=_json_or(row.get("neural_network_architecture")),
            targets=_json_or(row.get("targets")),
            is_trained=None if is_trained is None else bool(is_trained),
            model_data=row.get("model_data"),
            model_predictions=_json_or(row.get("model_predictions")),
        )


# camelCase attribute names accepted by add/update -> table column
FIELD_TO_COLUMN = {
    "name": "name",
    "type": "type",
    "algorithm": "algorithm",
    "accuracy": "accuracy",
    "datasetName": "dataset_name",
    "dataset_name": "dataset_name",
    "parameters": "parameters",
    "neuralNetworkArchitecture": "neural_network_architecture",
    "neural_network_architecture": "neural_network_architecture",
    "targets": "targets",
    "isTrained": "is_trained",
    "is_trained": "is_trained",
    "modelData": "model_data",
    "model_data": "model_data",
    "modelPredictions": "model_predictions",
    "model_predictions": "model_predictions",
}
JSON_COLUMNS = {"parameters", "neural_network_architecture", "targets", "model_predictions"}


def to_columns(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map caller-facing field names to column names, rejecting unknown keys."""
    out = {}
    for key, value in data.items():
        if key in ("id", "created", "created_at"):
            continue
        if key not in FIELD_TO_COLUMN:
            raise ValueError(f"Unknown model field '{key}'")
        out[FIELD_TO_COLUMN[key]] = getattr(value, "value", value)
    return out


def encode_row_fields(columns: Dict[str, Any]) -> Dict[str, Any]:
    out = {}
    for key, value in columns.items():
        if key in JSON_COLUMNS and value is not None:
            out[key] = json.dumps(value)
        elif key == "is_trained" and value is not None:
            out[key] = 1 if value else 0
        else:
            out[key] = value
    return out


def model_from_columns(model_id: str, created: datetime, columns: Dict[str, Any]) -> Model:
    return Model(
        id=model_id,
        name=columns["name"],
        type=columns["type"],
        algorithm=columns["algorithm"],
        accuracy=columns["accuracy"],
        created=created,
        dataset_name=columns["dataset_name"],
        parameters=columns.get("parameters") or {},
        neural_network_architecture=columns.get("neural_network_architecture"),
        targets=columns.get("targets"),
        is_trained=columns.get("is_trained"),
        model_data=columns.get("model_data"),
        model_predictions=columns.get("model_predictions"),
    )


@dataclass
class FineTuneOptions:
    epochs: int = 10
    learning_rate: float = 0.001
    batch_size: int = 32
    optimizer: str = "adam"
    targets: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "epochs": self.epochs,
            "learningRate": self.learning_rate,
            "batchSize": self.batch_size,
            "optimizer": self.optimizer,
        }
