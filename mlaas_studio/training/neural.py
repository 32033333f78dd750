"""Neural-network training simulation and the small architecture search around it."""

from __future__ import annotations

import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Sequence

from numpy.random import Generator

from ..algorithms import ModelType
from ..data.splitters import subsample_rows
from ..models.selection import best_of
from .evaluation import simulate_metrics
from .problem_type import detect_problem_type
from .simulators import TrainingResult, TrainingSimulator

logger = logging.getLogger(__name__)

__all__ = [
    "NeuralNetworkLayer",
    "NeuralNetworkSimulator",
    "detect_problem_type",
    "normalize_architecture",
    "neural_accuracy",
]

MAX_NEURAL_ACCURACY = 0.98

CANDIDATE_ARCHITECTURES = [[32], [64, 32], [128, 64, 32], [256, 128, 64, 32]]
CANDIDATE_LEARNING_RATES = [0.001, 0.01, 0.1]


@dataclass
class NeuralNetworkLayer:
    neurons: int
    activation: str = "ReLU"
    dropout: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


DEFAULT_ARCHITECTURE = [
    NeuralNetworkLayer(64, "ReLU", 0.2),
    NeuralNetworkLayer(32, "ReLU", 0.1),
]


def normalize_architecture(architecture) -> List[NeuralNetworkLayer]:
    """Accept layer objects, layer dicts or a legacy list of neuron counts."""
    if not architecture:
        return []
    layers = []
    for layer in architecture:
        if isinstance(layer, NeuralNetworkLayer):
            layers.append(layer)
        elif isinstance(layer, dict):
            layers.append(NeuralNetworkLayer(
                neurons=int(layer["neurons"]),
                activation=str(layer.get("activation") or "ReLU"),
                dropout=float(layer.get("dropout") or 0.0),
            ))
        else:
            layers.append(NeuralNetworkLayer(int(layer)))
    return layers


def total_neurons(architecture) -> int:
    return sum(layer.neurons for layer in normalize_architecture(architecture))


def scale_architecture(sizes: Sequence[int], n_rows: int) -> List[int]:
    """Halve candidate widths for small datasets (< 1000 rows), floor of 8 neurons."""
    factor = 0.5 if n_rows < 1000 else 1.0
    return [max(8, int(s * factor)) for s in sizes]


def neural_accuracy(architecture, n_features: int, n_rows: int, learning_rate: float, rng: Generator) -> float:
    neurons = total_neurons(architecture)
    width = max(n_features, 1)

    arch_factor = min(0.15, neurons / 100 * 0.1)
    feature_factor = min(0.03, n_features * 0.005)
    size_factor = min(0.03, math.log10(max(n_rows, 1)) * 0.0075)

    # wide networks on a handful of features overfit
    penalty = 0.0
    if n_features < 5 and neurons > 100 * width:
        penalty = min(0.1, 0.02 + (neurons / (100 * width) - 1) * 0.02)
    lr_penalty = min(0.05, abs(math.log10(learning_rate) + 3) * 0.015) if learning_rate > 0 else 0.05

    accuracy = (0.80 + arch_factor + rng.random() * 0.05 + feature_factor + size_factor
                - penalty - lr_penalty)
    return round(min(MAX_NEURAL_ACCURACY, max(0.0, accuracy)), 4)


class NeuralNetworkSimulator(TrainingSimulator):

    def train_neural_network(self, data, features, target, architecture=None, epochs=None,
                             learning_rate=None, rng: Generator | None = None) -> TrainingResult:
        seed = rng if rng is not None else self.rng
        layers = normalize_architecture(architecture) or list(DEFAULT_ARCHITECTURE)
        epochs = int(epochs or self.config.get("epochs", 100))
        learning_rate = float(learning_rate or self.config.get("learning_rate", 0.001))

        self._sleep(2.0, 5.0, seed)
        if self.latency_scale > 0 and data:
            extra = min(2.0, len(data) / 10000) * self.latency_scale
            if extra > 0:
                time.sleep(extra)

        problem_type = detect_problem_type([row.get(target) for row in data]) if target else "classification"
        accuracy = neural_accuracy(layers, len(features), len(data), learning_rate, seed)

        parameters: Dict[str, Any] = {
            "epochs": epochs,
            "learningRate": learning_rate,
            "batchSize": 32,
            "optimizer": "adam",
            "problemType": problem_type,
            "availableFeatures": list(features),
        }
        parameters.update(simulate_metrics(ModelType.DL, problem_type, accuracy, self._n_test(len(data)), rng=seed))

        logger.debug("Simulated Neural Network %s lr=%s: accuracy=%.4f",
                     [layer.neurons for layer in layers], learning_rate, accuracy)
        return TrainingResult(
            algorithm="Neural Network",
            accuracy=accuracy,
            parameters=parameters,
            neural_network_architecture=[layer.to_dict() for layer in layers],
        )

    def optimize_neural_network(self, data, features, target) -> TrainingResult:
        """Simulate every architecture x learning-rate candidate and keep the best."""
        n_rows = len(data)
        threshold = int(self.config.get("large_dataset_threshold", 10000))
        large = n_rows > threshold

        architectures = CANDIDATE_ARCHITECTURES[:3] if large else CANDIDATE_ARCHITECTURES
        learning_rates = CANDIDATE_LEARNING_RATES[:2] if large else CANDIDATE_LEARNING_RATES
        epochs = 50 if large else 100
        rows = subsample_rows(data, threshold, rng=self.rng) if large else list(data)
        if large:
            logger.info("Large dataset (%d rows): searching a reduced grid on %d sampled rows", n_rows, len(rows))

        candidates = [(scale_architecture(a, n_rows), lr) for a in architectures for lr in learning_rates]
        rngs = self._spawn(len(candidates))
        workers = max(1, min(self.max_workers, len(candidates)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self.train_neural_network, rows, features, target, arch, epochs, lr, r)
                for (arch, lr), r in zip(candidates, rngs)
            ]
            results = [f.result() for f in futures]

        best = best_of(results)
        best.parameters["searchedCandidates"] = len(candidates)
        if large:
            best.parameters["sampledRows"] = len(rows)
        return best
