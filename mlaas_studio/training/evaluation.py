"""Simulated evaluation outputs: metrics, cross-validation folds and tuning trials."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

import numpy as np
from numpy.random import default_rng, Generator

from ..algorithms import ModelType
from ..models.selection import best_of


def _seed(rng):
    return rng if isinstance(rng, Generator) else default_rng()


def _clip01(v: float) -> float:
    return float(min(1.0, max(0.0, v)))


def simulated_confusion_matrix(accuracy: float, n_test: int, rng=None) -> List[List[int]]:
    """2x2 matrix whose diagonal holds ``round(accuracy * n_test)`` samples."""
    seed = _seed(rng)
    n_test = max(int(n_test), 2)
    correct = int(round(accuracy * n_test))
    wrong = n_test - correct
    tp = int(seed.integers(0, correct + 1))
    fp = int(seed.integers(0, wrong + 1))
    return [[correct - tp, fp], [wrong - fp, tp]]


def simulate_metrics(model_type, problem_type: str | None, accuracy: float, n_test: int = 20, rng=None) -> Dict[str, Any]:
    """Return ``{"metrics": ..., "confusion_matrix"?: ...}`` shaped for the model type."""
    seed = _seed(rng)
    mt = getattr(model_type, "value", model_type)

    def jitter():
        return float(seed.uniform(-0.03, 0.03))

    if mt == ModelType.CLUSTERING.value:
        return {"metrics": {
            "silhouette_score": round(_clip01(accuracy - 0.2 + jitter()), 4),
            "n_clusters": int(seed.integers(2, 6)),
        }}
    if mt == ModelType.DIMENSIONALITY_REDUCTION.value:
        return {"metrics": {"explained_variance": round(_clip01(accuracy + jitter()), 4)}}
    if mt == ModelType.ANOMALY_DETECTION.value:
        return {"metrics": {
            "contamination": 0.1,
            "anomalies_detected": int(round(0.1 * max(n_test, 1))),
            "precision": round(_clip01(accuracy + jitter()), 4),
        }}
    if problem_type == "regression":
        return {"metrics": {
            "r2_score": round(_clip01(accuracy + jitter()), 4),
            "mse": round(float((1.0 - accuracy) * seed.uniform(0.5, 1.5)), 4),
            "mae": round(float((1.0 - accuracy) * seed.uniform(0.3, 1.0)), 4),
        }}

    precision = round(_clip01(accuracy + jitter()), 4)
    recall = round(_clip01(accuracy + jitter()), 4)
    f1 = round(2 * precision * recall / (precision + recall), 4) if (precision + recall) > 0 else 0.0
    return {
        "metrics": {"accuracy": accuracy, "precision": precision, "recall": recall, "f1_score": f1},
        "confusion_matrix": simulated_confusion_matrix(accuracy, n_test, rng=seed),
    }


def analyze_feature_importance(features: Sequence[str], rng=None) -> List[Dict[str, Any]]:
    """Random importances per feature, most important first."""
    seed = _seed(rng)
    scored = [{"feature": f, "importance": round(float(seed.random()), 4)} for f in features]
    return sorted(scored, key=lambda d: d["importance"], reverse=True)


@dataclass
class FoldResult:
    fold: int
    train_accuracy: float
    validation_accuracy: float
    train_loss: float
    validation_loss: float


@dataclass
class CrossValidationReport:
    folds: List[FoldResult]
    avg_train_accuracy: float
    avg_validation_accuracy: float
    std_validation_accuracy: float
    overfitting: bool


def simulate_cross_validation(folds: int = 5, rng=None) -> CrossValidationReport:
    if folds < 2:
        raise ValueError("folds must be >= 2.")
    seed = _seed(rng)
    results = [
        FoldResult(
            fold=i + 1,
            train_accuracy=float(0.88 + seed.random() * 0.07),
            validation_accuracy=float(0.80 + seed.random() * 0.10),
            train_loss=float(0.15 + seed.random() * 0.15),
            validation_loss=float(0.25 + seed.random() * 0.20),
        )
        for i in range(folds)
    ]
    train_acc = np.array([r.train_accuracy for r in results])
    val_acc = np.array([r.validation_accuracy for r in results])
    return CrossValidationReport(
        folds=results,
        avg_train_accuracy=float(train_acc.mean()),
        avg_validation_accuracy=float(val_acc.mean()),
        std_validation_accuracy=float(val_acc.std()),
        overfitting=bool(train_acc.mean() - val_acc.mean() > 0.1),
    )


@dataclass
class TuningTrial:
    id: int
    params: Dict[str, Any]
    accuracy: float
    loss: float
    training_time: float


@dataclass
class TuningReport:
    trials: List[TuningTrial] = field(default_factory=list)

    @property
    def best(self) -> TuningTrial | None:
        return best_of(self.trials)


def simulate_tuning(param_grid: Dict[str, Sequence[Any]], rng=None) -> TuningReport:
    """One simulated trial per combination in ``param_grid``."""
    seed = _seed(rng)
    keys = sorted(param_grid)
    report = TuningReport()
    for i, combo in enumerate(itertools.product(*(param_grid[k] for k in keys)), start=1):
        report.trials.append(
            TuningTrial(
                id=i,
                params=dict(zip(keys, combo)),
                accuracy=float(0.80 + seed.random() * 0.15),
                loss=float(0.40 - seed.random() * 0.20),
                training_time=float(5 + seed.random() * 10),
            )
        )
    return report
