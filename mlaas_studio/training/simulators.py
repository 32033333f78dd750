"""Randomised training simulators.

No learning happens here: each algorithm draws an accuracy from its band in
``algorithms.ACCURACY_BANDS`` after an artificial delay. Every simulator
takes a seeded ``numpy.random.Generator`` so results are reproducible.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from numpy.random import default_rng, Generator

from ..algorithms import (
    ANOMALY_DETECTION_ALGORITHMS,
    CLUSTERING_ALGORITHMS,
    DEFAULT_PARAMS,
    DIMENSIONALITY_REDUCTION_ALGORITHMS,
    FAMILIES,
    MAX_SIMULATED_ACCURACY,
    ML_ALGORITHMS,
    ModelType,
    accuracy_band,
    model_type_for,
    validate_algorithm,
)
from ..config import CONFIG
from ..models.selection import best_of
from .evaluation import analyze_feature_importance, simulate_metrics
from .problem_type import detect_problem_type

logger = logging.getLogger(__name__)


@dataclass
class TrainingResult:
    algorithm: str
    accuracy: float
    parameters: Dict[str, Any] = field(default_factory=dict)
    neural_network_architecture: Optional[List[Any]] = None

    @property
    def model_type(self) -> ModelType:
        return model_type_for(self.algorithm)

    def to_model_data(self, dataset_name: str, name: str | None = None, targets: List[str] | None = None) -> Dict[str, Any]:
        """Fields for ``ModelRegistry.add_model``."""
        data = {
            "name": name or self.algorithm,
            "type": self.model_type.value,
            "algorithm": self.algorithm,
            "accuracy": self.accuracy,
            "datasetName": dataset_name,
            "parameters": self.parameters,
        }
        if self.neural_network_architecture is not None:
            data["neuralNetworkArchitecture"] = self.neural_network_architecture
        if targets:
            data["targets"] = list(targets)
        return data


def best_result(results: Sequence[TrainingResult]) -> TrainingResult | None:
    return best_of(results)


def simulated_accuracy(algorithm: str, rng: Generator) -> float:
    low, width = accuracy_band(algorithm)
    return round(min(MAX_SIMULATED_ACCURACY, low + rng.random() * width), 4)


class TrainingSimulator:
    def __init__(self, config: dict | None = None, rng: Generator | None = None):
        self.config = CONFIG.copy()
        if config:
            self.config.update(config)
        self.latency_scale = float(self.config.get("latency_scale") or 0.0)
        self.max_workers = int(self.config.get("max_workers", 8) or 1)
        self.test_size = float(self.config.get("test_size", 0.2))
        self.rng = rng if isinstance(rng, Generator) else default_rng(self.config.get("seed"))

    def _sleep(self, low: float, high: float, rng: Generator) -> None:
        delay = (low + rng.random() * (high - low)) * self.latency_scale
        if delay > 0:
            time.sleep(delay)

    def _spawn(self, n: int) -> List[Generator]:
        """One child generator per concurrent job so results don't depend on thread timing."""
        seeds = self.rng.integers(0, 2**32 - 1, size=n)
        return [default_rng(int(s)) for s in seeds]

    def _n_test(self, n_rows: int) -> int:
        return max(1, int(round(n_rows * self.test_size)))

    def train_ml_model(self, data, features, target, algorithm: str, params: dict | None = None, rng: Generator | None = None) -> TrainingResult:
        seed = rng if rng is not None else self.rng
        validate_algorithm(algorithm)
        self._sleep(1.0, 3.0, seed)

        accuracy = simulated_accuracy(algorithm, seed)

        model_type = model_type_for(algorithm)
        parameters = dict(DEFAULT_PARAMS.get(algorithm, {}) if params is None else params)
        problem_type = None
        if target and model_type == ModelType.ML:
            problem_type = detect_problem_type([row.get(target) for row in data])
            parameters["problemType"] = problem_type
        parameters.update(simulate_metrics(model_type, problem_type, accuracy, self._n_test(len(data)), rng=seed))
        if features and model_type == ModelType.ML:
            ranked = analyze_feature_importance(features, rng=seed)
            parameters["feature_importance"] = {d["feature"]: d["importance"] for d in ranked}
        parameters["availableFeatures"] = list(features or [])

        logger.debug("Simulated %s: accuracy=%.4f", algorithm, accuracy)
        return TrainingResult(algorithm=algorithm, accuracy=accuracy, parameters=parameters)

    def _train_many(self, algorithms: Sequence[str], data, features, target) -> List[TrainingResult]:
        rngs = self._spawn(len(algorithms))
        workers = max(1, min(self.max_workers, len(algorithms)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self.train_ml_model, data, features, target, alg, None, r)
                for alg, r in zip(algorithms, rngs)
            ]
            return [f.result() for f in futures]

    def train_all_ml_models(self, data, features, target) -> List[TrainingResult]:
        return self._train_many(ML_ALGORITHMS, data, features, target)

    def train_clustering_models(self, data, features) -> List[TrainingResult]:
        return self._train_many(CLUSTERING_ALGORITHMS, data, features, None)

    def train_dimensionality_reduction_models(self, data, features) -> List[TrainingResult]:
        return self._train_many(DIMENSIONALITY_REDUCTION_ALGORITHMS, data, features, None)

    def train_anomaly_detection_models(self, data, features) -> List[TrainingResult]:
        return self._train_many(ANOMALY_DETECTION_ALGORITHMS, data, features, None)

    def train_family(self, family: str, data, features, target, algorithm: str | None = None, **nn_kwargs) -> List[TrainingResult]:
        """Dispatch used by the CLI and the service: one family, or one algorithm of it."""
        family = family.lower()
        if family not in FAMILIES:
            raise ValueError(f"Unknown family '{family}'. Choices: {sorted(FAMILIES)}")
        if family == "dl":
            from .neural import NeuralNetworkSimulator
            nn = NeuralNetworkSimulator(config=self.config, rng=self.rng)
            if nn_kwargs.get("architecture"):
                return [nn.train_neural_network(data, features, target, **nn_kwargs)]
            return [nn.optimize_neural_network(data, features, target)]
        if algorithm:
            if algorithm not in FAMILIES[family]:
                raise ValueError(f"'{algorithm}' is not in the {family} family")
            return [self.train_ml_model(data, features, target if family == "ml" else None, algorithm)]
        if family == "ml":
            return self.train_all_ml_models(data, features, target)
        if family == "clustering":
            return self.train_clustering_models(data, features)
        if family == "dimensionality_reduction":
            return self.train_dimensionality_reduction_models(data, features)
        return self.train_anomaly_detection_models(data, features)
