"""Optional HTTP training/prediction service.

Real training is attempted first; any ``TrainingError`` falls back to
simulated results so callers always get a usable answer.
"""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from numpy.random import default_rng, Generator
from pydantic import BaseModel

from ..algorithms import validate_algorithm
from ..errors import DatasetError, StudioError, TrainingError
from ..training.trainers import (
    SklearnTrainer,
    TrainOutcome,
    simulate_predictions,
    simulate_training_accuracy,
)

logger = logging.getLogger(__name__)


class TrainModelRequest(BaseModel):
    data: List[Dict[str, Any]]
    features: List[str]
    target: Optional[str] = None
    algorithm: str
    modelId: Optional[str] = None
    datasetName: Optional[str] = None
    neuralNetworkArchitecture: Optional[List[Any]] = None
    epochs: Optional[int] = None
    learningRate: Optional[float] = None


class PredictRequest(BaseModel):
    modelId: str
    inputData: List[List[Any]]


def _error(exc, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": str(exc)})


def create_app(trainer: SklearnTrainer | None = None, rng: Generator | None = None) -> FastAPI:
    app = FastAPI(title="MLaaS Studio service", version="0.1.0")
    app.state.trainer = trainer if trainer is not None else SklearnTrainer()
    app.state.rng = rng if isinstance(rng, Generator) else default_rng()
    rng_lock = threading.Lock()

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError):
        return _error(f"Invalid request: {exc.errors()}")

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return _error(exc)

    @app.get("/health-check")
    def health_check():
        return {"status": "ok"}

    @app.post("/train-model")
    def train_model(req: TrainModelRequest):
        logger.info("Starting model training for %s with modelId %s", req.algorithm, req.modelId)
        logger.info("Dataset: %s, Features: %d, Rows: %d", req.datasetName, len(req.features), len(req.data))
        model_id = req.modelId or str(uuid.uuid4())
        try:
            validate_algorithm(req.algorithm)
            if not req.data:
                raise DatasetError("No rows to train on")
            try:
                outcome = app.state.trainer.train(
                    req.data, req.features, req.target, req.algorithm,
                    model_id=model_id,
                    architecture=req.neuralNetworkArchitecture,
                    epochs=req.epochs,
                    learning_rate=req.learningRate,
                )
                message = f"Model {req.algorithm} trained successfully"
                simulated = False
            except TrainingError as e:
                logger.warning("Falling back to simulation for %s: %s", req.algorithm, e)
                with rng_lock:
                    outcome = TrainOutcome(accuracy=simulate_training_accuracy(req.algorithm, app.state.rng))
                message = f"Model {req.algorithm} trained successfully (simulated fallback)"
                simulated = True
        except (StudioError, ValueError) as e:
            logger.error("Error training model: %s", e)
            return _error(e)

        body: Dict[str, Any] = {
            "success": True,
            "accuracy": outcome.accuracy,
            "modelId": model_id,
            "message": message,
            "simulated": simulated,
        }
        if outcome.metrics:
            body["metrics"] = outcome.metrics
        if outcome.confusion_matrix is not None:
            body["confusion_matrix"] = outcome.confusion_matrix
        if outcome.feature_importance is not None:
            body["feature_importance"] = outcome.feature_importance
        return body

    @app.post("/predict-with-model")
    def predict_with_model(req: PredictRequest):
        logger.info("Making prediction with model %s", req.modelId)
        if not req.inputData:
            return _error(DatasetError("inputData is empty"))
        if app.state.trainer.has_model(req.modelId):
            try:
                return {"success": True, **app.state.trainer.predict(req.modelId, req.inputData)}
            except TrainingError as e:
                logger.warning("Falling back to simulated predictions: %s", e)
        with rng_lock:
            predictions = simulate_predictions(req.inputData, app.state.rng)
        return {
            "success": True,
            "predictions": predictions,
            "explanation": "Simulated predictions: no trained estimator is loaded for this model.",
        }

    return app
