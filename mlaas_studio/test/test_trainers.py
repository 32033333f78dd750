from __future__ import annotations

import pytest
from numpy.random import default_rng

from mlaas_studio.errors import TrainingError
from mlaas_studio.training.trainers import (
    SIMULATED_CLASSES,
    SklearnTrainer,
    make_estimator,
    simulate_predictions,
    simulate_training_accuracy,
)


@pytest.fixture
def trainer():
    return SklearnTrainer(random_state=0)


class TestSupervised:

    def test_random_forest_classification(self, trainer, small_dataset):
        rows, features, target = small_dataset
        outcome = trainer.train(rows, features, target, "Random Forest", model_id="rf")
        assert 0.0 <= outcome.accuracy <= 0.99
        assert outcome.metrics["problemType"] == "classification"
        assert sum(sum(r) for r in outcome.confusion_matrix) == 10
        assert set(outcome.feature_importance) == set(features)
        assert trainer.has_model("rf")

    def test_string_labels(self, trainer, small_dataset):
        rows, features, target = small_dataset
        labelled = [{**r, target: "yes" if r[target] else "no"} for r in rows]
        outcome = trainer.train(labelled, features, target, "Logistic Regression", model_id="lr")
        assert len(outcome.confusion_matrix) == 2
        preds = trainer.predict("lr", [[0.5, 0.5, 0.0]])["predictions"]
        assert preds[0] in ("yes", "no")

    def test_regression(self, trainer):
        gen = default_rng(3)
        rows = [{"x": float(x), "y": float(2 * x + gen.normal(scale=0.1))} for x in gen.uniform(0, 10, 60)]
        outcome = trainer.train(rows, ["x"], "y", "Linear Regression", model_id="lin")
        assert outcome.metrics["problemType"] == "regression"
        assert outcome.accuracy > 0.9
        assert outcome.confusion_matrix is None
        prediction = trainer.predict("lin", [[5.0]])["predictions"][0]
        assert prediction == pytest.approx(10.0, abs=0.5)

    def test_missing_target(self, trainer, small_dataset):
        rows, features, _ = small_dataset
        with pytest.raises(TrainingError):
            trainer.train(rows, features, None, "SVM")

    def test_non_numeric_features(self, trainer):
        rows = [{"a": "red", "y": i % 2} for i in range(20)]
        with pytest.raises(TrainingError):
            trainer.train(rows, ["a"], "y", "KNN")

    def test_empty_data(self, trainer):
        with pytest.raises(TrainingError):
            trainer.train([], ["a"], "y", "KNN")


class TestUnsupervised:

    def test_kmeans_silhouette(self, trainer, small_dataset):
        rows, features, _ = small_dataset
        outcome = trainer.train(rows, features, None, "K-Means")
        assert outcome.metrics["n_clusters"] == 3
        assert -1.0 <= outcome.metrics["silhouette_score"] <= 1.0

    def test_pca_explained_variance(self, trainer, small_dataset):
        rows, features, _ = small_dataset
        outcome = trainer.train(rows, features, None, "PCA")
        assert 0.0 < outcome.accuracy <= 0.99

    def test_isolation_forest(self, trainer, small_dataset):
        rows, features, _ = small_dataset
        outcome = trainer.train(rows, features, None, "Isolation Forest")
        detected = outcome.metrics["anomalies_detected"]
        assert 1 <= detected <= 10
        assert outcome.accuracy == round(1 - detected / 50, 4)


def test_predict_unknown_model(trainer):
    with pytest.raises(TrainingError):
        trainer.predict("missing", [[1.0]])


def test_boosting_labels_share_an_estimator():
    assert type(make_estimator("XGBoost", "classification")).__name__ == "GradientBoostingClassifier"
    assert type(make_estimator("Unheard Of", "regression")).__name__ == "RandomForestRegressor"


class TestSimulatedFallbacks:

    def test_training_accuracy_ranges(self):
        gen = default_rng(0)
        for _ in range(1000):
            assert 0.81 <= simulate_training_accuracy("Neural Network", gen) <= 0.96
            assert 0.75 <= simulate_training_accuracy("SVM", gen) <= 0.95

    def test_predictions(self):
        out = simulate_predictions([[0.0, 1], ["blue", 2], [True]], default_rng(0))
        assert 3.0 <= out[0] <= 4.0
        assert out[1] in SIMULATED_CLASSES
        assert out[2] in SIMULATED_CLASSES
