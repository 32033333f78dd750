from __future__ import annotations

import pytest
from numpy.random import default_rng

from mlaas_studio.algorithms import ModelType
from mlaas_studio.training.evaluation import (
    analyze_feature_importance,
    simulate_cross_validation,
    simulate_metrics,
    simulate_tuning,
    simulated_confusion_matrix,
)


def test_confusion_matrix_counts():
    m = simulated_confusion_matrix(0.8, 20, rng=default_rng(0))
    assert sum(sum(r) for r in m) == 20
    assert m[0][0] + m[1][1] == 16
    assert all(v >= 0 for r in m for v in r)


@pytest.mark.parametrize("model_type,problem_type,keys", [
    (ModelType.CLUSTERING, None, {"silhouette_score", "n_clusters"}),
    (ModelType.DIMENSIONALITY_REDUCTION, None, {"explained_variance"}),
    (ModelType.ANOMALY_DETECTION, None, {"contamination", "anomalies_detected", "precision"}),
    (ModelType.ML, "regression", {"r2_score", "mse", "mae"}),
    (ModelType.DL, "multiclass", {"accuracy", "precision", "recall", "f1_score"}),
])
def test_metrics_shape(model_type, problem_type, keys):
    out = simulate_metrics(model_type, problem_type, 0.85, 20, rng=default_rng(1))
    assert set(out["metrics"]) == keys
    assert ("confusion_matrix" in out) == (keys == {"accuracy", "precision", "recall", "f1_score"})


def test_feature_importance_sorted():
    ranked = analyze_feature_importance(["a", "b", "c", "d"], rng=default_rng(3))
    scores = [d["importance"] for d in ranked]
    assert scores == sorted(scores, reverse=True)
    assert {d["feature"] for d in ranked} == {"a", "b", "c", "d"}


class TestCrossValidation:

    def test_fold_ranges(self):
        report = simulate_cross_validation(5, rng=default_rng(4))
        assert [f.fold for f in report.folds] == [1, 2, 3, 4, 5]
        for f in report.folds:
            assert 0.88 <= f.train_accuracy <= 0.95
            assert 0.80 <= f.validation_accuracy <= 0.90
            assert 0.15 <= f.train_loss <= 0.30
            assert 0.25 <= f.validation_loss <= 0.45
        assert report.overfitting == (report.avg_train_accuracy - report.avg_validation_accuracy > 0.1)

    def test_needs_two_folds(self):
        with pytest.raises(ValueError):
            simulate_cross_validation(1)


class TestTuning:

    def test_one_trial_per_combination(self):
        report = simulate_tuning({"lr": [0.1, 0.01], "batch": [16, 32, 64]}, rng=default_rng(5))
        assert len(report.trials) == 6
        assert report.trials[0].params == {"batch": 16, "lr": 0.1}
        for t in report.trials:
            assert 0.80 <= t.accuracy <= 0.95
            assert 0.20 <= t.loss <= 0.40
            assert 5 <= t.training_time <= 15

    def test_best_is_max_accuracy(self):
        report = simulate_tuning({"lr": [0.1, 0.01, 0.001]}, rng=default_rng(6))
        assert report.best.accuracy == max(t.accuracy for t in report.trials)

    def test_empty_grid_runs_a_single_default_trial(self):
        report = simulate_tuning({}, rng=default_rng(0))
        assert [t.params for t in report.trials] == [{}]
        assert report.best is report.trials[0]
