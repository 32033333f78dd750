"""The model registry: the one owner of the model collection.

Writes go to the backing store while it is reachable. After
``failure_threshold`` consecutive backend failures the registry switches to
``ConnectionState.OFFLINE`` and serves reads and writes from the local cache,
tagging new records with ``local-`` ids and queueing edits to stored
records. Any later successful fetch or ping switches it back online and
replays the queue.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import threading
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from numpy.random import default_rng, Generator

from ..config import CONFIG
from ..errors import DatasetError, ModelNotFoundError, RegistryError, ServiceError, StoreError
from ..models.export import create_model_export_data, download_filename
from ..models.records import (
    FineTuneOptions,
    Model,
    encode_row_fields,
    is_local_id,
    model_from_columns,
    to_columns,
    utcnow,
)
from ..models.selection import best_model, best_model_by_type
from ..path_resolver import resolve_download_path

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("name", "type", "algorithm", "accuracy", "dataset_name")
MAX_FINE_TUNED_ACCURACY = 0.99


class ConnectionState(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


@dataclass
class PredictionResult:
    success: bool
    predictions: Optional[List[Any]] = None
    probabilities: Optional[List[Any]] = None
    explanation: Optional[str] = None
    error: Optional[str] = None


def _seed(rng):
    return rng if isinstance(rng, Generator) else default_rng()


class ModelRegistry:
    def __init__(self, store, cache=None, client=None, failure_threshold: int | None = None, rng=None):
        self.store = store
        self.cache = cache
        self.client = client
        self.failure_threshold = int(failure_threshold or CONFIG["offline_failure_threshold"])
        self.rng = _seed(rng)

        self.state = ConnectionState.ONLINE
        self.consecutive_failures = 0
        self.last_error: str | None = None
        self._warned = False
        self._lock = threading.RLock()
        # records from earlier runs, incl. ones created offline
        self._models: List[Model] = cache.load() if cache is not None else []
        self._pending: List[Dict[str, Any]] = cache.load_pending() if cache is not None else []

    # --- state machine ---------------------------------------------------

    @property
    def is_offline(self) -> bool:
        return self.state is ConnectionState.OFFLINE

    @property
    def models(self) -> List[Model]:
        with self._lock:
            return list(self._models)

    def _record_failure(self, err: Exception) -> None:
        self.consecutive_failures += 1
        self.last_error = str(err)
        if self.consecutive_failures >= self.failure_threshold and not self.is_offline:
            self.go_offline(err)
        else:
            logger.debug("Backend failure %d/%d: %s", self.consecutive_failures, self.failure_threshold, err)

    def go_offline(self, err) -> None:
        """Switch to the local cache without waiting for more failures."""
        with self._lock:
            self.state = ConnectionState.OFFLINE
            self.last_error = str(err)
            if not self._warned:
                logger.warning("Model store unavailable, working offline: %s", err)
                self._warned = True
            if not self._models and self.cache is not None:
                self._models = self.cache.load()

    def _record_success(self) -> None:
        if self.is_offline:
            logger.info("Model store reachable again, back online")
        self.state = ConnectionState.ONLINE
        self.consecutive_failures = 0
        self.last_error = None
        self._warned = False

    def _save_cache(self) -> None:
        if self.cache is not None:
            self.cache.save(self._models)
            self.cache.save_pending(self._pending)

    def _queue(self, op: str, model_id: str, changes: Dict[str, Any] | None = None) -> None:
        logger.warning("Model store unavailable: %s of %s queued until it is reachable", op, model_id)
        self._pending.append({"op": op, "id": model_id, "changes": changes or {}})

    def _replay_pending(self) -> None:
        """Apply queued offline writes in order; raises StoreError on the first one that fails."""
        while self._pending:
            op = self._pending[0]
            if op["op"] == "delete":
                self.store.delete(op["id"])
            elif self.store.update(op["id"], op["changes"]) is None:
                logger.warning("Dropping queued update of %s: no longer in the store", op["id"])
            self._pending.pop(0)
            self._save_cache()
            logger.info("Replayed offline %s of %s", op["op"], op["id"])

    def _replace(self, model: Model) -> None:
        for i, m in enumerate(self._models):
            if m.id == model.id:
                self._models[i] = model
                return
        self._models.insert(0, model)

    # --- reads -----------------------------------------------------------

    def refresh_models(self) -> List[Model]:
        """Replay queued offline writes, then re-fetch from the store, newest first.

        Records created offline (``local-`` ids) are kept.
        """
        with self._lock:
            try:
                self._replay_pending()
                rows = self.store.fetch_all()
            except StoreError as e:
                self._record_failure(e)
                return list(self._models)
            self._record_success()
            local = [m for m in self._models if m.is_local]
            fetched = [Model.from_row(r) for r in rows]
            self._models = sorted(local + fetched, key=lambda m: m.created, reverse=True)
            self._save_cache()
            return list(self._models)

    def get_model_by_id(self, model_id: str) -> Model | None:
        with self._lock:
            for m in self._models:
                if m.id == model_id:
                    return m
        return None

    def _require(self, model_id: str) -> Model:
        model = self.get_model_by_id(model_id)
        if model is None:
            raise ModelNotFoundError(model_id)
        return model

    def get_models_by_dataset(self, dataset_name: str) -> List[Model]:
        return [m for m in self.models if m.dataset_name == dataset_name]

    def get_best_model(self, dataset_name: str) -> Model | None:
        return best_model(self.models, dataset_name)

    def get_best_model_by_type(self, dataset_name: str, model_type) -> Model | None:
        return best_model_by_type(self.models, dataset_name, model_type)

    def search(self, term: str = "", model_type=None) -> List[Model]:
        """Case-insensitive match on name, algorithm or dataset, optionally filtered by type."""
        needle = (term or "").lower()
        wanted = getattr(model_type, "value", model_type)
        out = []
        for m in self.models:
            if wanted and m.type != wanted:
                continue
            if needle and not any(needle in s.lower() for s in (m.name, m.algorithm, m.dataset_name)):
                continue
            out.append(m)
        return out

    # --- writes ----------------------------------------------------------

    def _add_local(self, columns: Dict[str, Any]) -> Model:
        model = model_from_columns(f"local-{uuid.uuid4()}", utcnow(), columns)
        self._models.insert(0, model)
        self._save_cache()
        logger.info("Saved model '%s' locally as %s", model.name, model.id)
        return model

    def add_model(self, data: Dict[str, Any]) -> Model:
        columns = to_columns(data)
        missing = [c for c in REQUIRED_COLUMNS if columns.get(c) is None]
        if missing:
            raise ValueError(f"Missing model fields: {missing}")
        # validates accuracy before anything is written
        model_from_columns("pending", utcnow(), columns)

        with self._lock:
            if self.is_offline:
                return self._add_local(columns)
            try:
                row = self.store.insert(encode_row_fields(columns))
            except StoreError as e:
                self._record_failure(e)
                if self.is_offline:
                    return self._add_local(columns)
                raise RegistryError(f"Failed to save model '{columns['name']}': {e}") from e
            self._record_success()
            model = Model.from_row(row)
            self._models.insert(0, model)
            self._save_cache()
            return model

    def delete_model(self, model_id: str) -> None:
        with self._lock:
            model = self.get_model_by_id(model_id)
            if model is not None and (model.is_local or self.is_offline):
                self._delete_local(model)
                return
            if model is None and (is_local_id(model_id) or self.is_offline):
                raise ModelNotFoundError(model_id)
            try:
                deleted = self.store.delete(model_id)
            except StoreError as e:
                self._record_failure(e)
                if self.is_offline and model is not None:
                    self._delete_local(model)
                    return
                raise RegistryError(f"Failed to delete model {model_id}: {e}") from e
            self._record_success()
            if not deleted and model is None:
                raise ModelNotFoundError(model_id)
            if model is not None:
                self._models.remove(model)
                self._save_cache()

    def _delete_local(self, model: Model) -> None:
        self._models.remove(model)
        if not model.is_local:
            self._queue("delete", model.id)
        self._save_cache()

    def _update_local(self, model: Model, columns: Dict[str, Any]) -> Model:
        updated = dataclasses.replace(model, **columns)
        self._replace(updated)
        if not model.is_local:
            self._queue("update", model.id, encode_row_fields(columns))
        self._save_cache()
        return updated

    def update_model(self, model_id: str, changes: Dict[str, Any]) -> Model:
        columns = to_columns(changes)
        with self._lock:
            model = self.get_model_by_id(model_id)
            if model is not None:
                # validates before anything is written
                dataclasses.replace(model, **columns)
            if model is not None and (model.is_local or self.is_offline):
                return self._update_local(model, columns)
            if model is None and (is_local_id(model_id) or self.is_offline):
                raise ModelNotFoundError(model_id)
            try:
                row = self.store.update(model_id, encode_row_fields(columns))
            except StoreError as e:
                self._record_failure(e)
                if self.is_offline and model is not None:
                    return self._update_local(model, columns)
                raise RegistryError(f"Failed to update model {model_id}: {e}") from e
            self._record_success()
            if row is None:
                raise ModelNotFoundError(model_id)
            updated = Model.from_row(row)
            self._replace(updated)
            self._save_cache()
            return updated

    def fine_tune_model(self, model_id: str, options: FineTuneOptions | None = None) -> Model:
        """Create a ``"<name> (Fine-tuned)"`` copy with a small accuracy bump.

        The original record is never modified. The new accuracy is never
        above 0.99 and never below the original, except that an original
        above 0.99 yields a copy capped at 0.99.
        """
        original = self._require(model_id)
        options = options or FineTuneOptions()

        bump = float(self.rng.uniform(0.0, 0.05))
        bumped = round(min(MAX_FINE_TUNED_ACCURACY, original.accuracy + bump), 4)
        accuracy = min(MAX_FINE_TUNED_ACCURACY, max(original.accuracy, bumped))
        if original.accuracy > MAX_FINE_TUNED_ACCURACY:
            logger.warning("%s has accuracy %.4f; the fine-tuned copy is capped at %.2f",
                           original.name, original.accuracy, MAX_FINE_TUNED_ACCURACY)

        parameters = copy.deepcopy(original.parameters)
        parameters.update({
            "fineTuned": True,
            "fineTuneOptions": options.to_dict(),
            "originalModelId": original.id,
        })
        data = {
            "name": f"{original.name} (Fine-tuned)",
            "type": original.type,
            "algorithm": original.algorithm,
            "accuracy": accuracy,
            "datasetName": original.dataset_name,
            "parameters": parameters,
            "neuralNetworkArchitecture": copy.deepcopy(original.neural_network_architecture),
            "targets": list(options.targets or original.targets or []) or None,
        }
        logger.info("Fine-tuned %s: %.4f -> %.4f", original.name, original.accuracy, accuracy)
        return self.add_model(data)

    # --- export / prediction --------------------------------------------

    def download_model(self, model_id: str, extension: str | None = None, directory=None) -> Path:
        """Write the export document for ``model_id`` to disk and return its path."""
        model = self._require(model_id)
        path = resolve_download_path(download_filename(model, extension), directory)
        path.write_text(create_model_export_data(model, extension), encoding="utf-8")
        return path

    def predict_with_model(self, model_id: str, input_rows: List[List[Any]]) -> PredictionResult:
        if not input_rows:
            raise DatasetError("No input rows to predict on")
        if self.client is None:
            return PredictionResult(success=False, error="No prediction service configured")
        try:
            resp = self.client.predict(model_id, input_rows)
        except ServiceError as e:
            logger.warning("Prediction for %s failed: %s", model_id, e)
            return PredictionResult(success=False, error=str(e))
        if not isinstance(resp, dict):
            logger.warning("Prediction for %s returned %s instead of an object", model_id, type(resp).__name__)
            return PredictionResult(success=False, error="Malformed prediction response")
        return PredictionResult(
            success=bool(resp.get("success", True)),
            predictions=resp.get("predictions"),
            probabilities=resp.get("probabilities"),
            explanation=resp.get("explanation"),
        )

    def check_connection(self) -> bool:
        """Ping the store; a success while offline refreshes and returns online."""
        with self._lock:
            was_offline = self.is_offline
            try:
                self.store.ping()
            except StoreError as e:
                self._record_failure(e)
                return False
            self._record_success()
        if was_offline:
            self.refresh_models()
        return True
