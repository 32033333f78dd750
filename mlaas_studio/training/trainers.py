"""Real training behind the narrow ``train(request) -> outcome | TrainingError`` interface.

Estimators come from scikit-learn; ``Neural Network`` builds a Keras
``Sequential`` model and imports Keras only when it is asked for. Any
failure is raised as ``TrainingError`` so callers can fall back to the
simulators.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from numpy.random import default_rng, Generator
from sklearn.cluster import DBSCAN, KMeans
from sklearn.decomposition import PCA
from sklearn.discriminant_analysis import LinearDiscriminantAnalysis
from sklearn.ensemble import (
    AdaBoostClassifier,
    AdaBoostRegressor,
    GradientBoostingClassifier,
    GradientBoostingRegressor,
    IsolationForest,
    RandomForestClassifier,
    RandomForestRegressor,
)
from sklearn.gaussian_process import GaussianProcessClassifier, GaussianProcessRegressor
from sklearn.linear_model import BayesianRidge, LinearRegression, LogisticRegression
from sklearn.metrics import confusion_matrix, r2_score, silhouette_score
from sklearn.model_selection import train_test_split
from sklearn.naive_bayes import GaussianNB
from sklearn.neighbors import KNeighborsClassifier, KNeighborsRegressor
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.svm import SVC, SVR
from sklearn.tree import DecisionTreeClassifier, DecisionTreeRegressor

from ..algorithms import ModelType, model_type_for
from ..errors import TrainingError
from .neural import normalize_architecture
from .problem_type import detect_problem_type

logger = logging.getLogger(__name__)

MAX_REAL_ACCURACY = 0.99
SIMULATED_CLASSES = ["class_a", "class_b", "class_c"]


def _seed(rng):
    return rng if isinstance(rng, Generator) else default_rng()


def _clip(score: float) -> float:
    if score is None or not math.isfinite(score):
        raise TrainingError(f"Non-finite score: {score}")
    return round(float(min(MAX_REAL_ACCURACY, max(0.0, score))), 4)


def make_random_forest(task_type: str, **kwargs):
    if task_type == "regression":
        return RandomForestRegressor(**kwargs)
    return RandomForestClassifier(**kwargs)


def make_estimator(algorithm: str, task_type: str, random_state: int | None = None):
    """scikit-learn estimator for a supervised label; unknown labels get a Random Forest."""
    reg = task_type == "regression"
    rs = {"random_state": random_state}
    if algorithm == "Linear Regression":
        return Pipeline([("scaler", StandardScaler()), ("model", LinearRegression())])
    if algorithm == "Logistic Regression":
        if reg:
            return Pipeline([("scaler", StandardScaler()), ("model", LinearRegression())])
        return Pipeline([("scaler", StandardScaler()), ("model", LogisticRegression(max_iter=1000, **rs))])
    if algorithm == "Decision Tree":
        return DecisionTreeRegressor(max_depth=10, **rs) if reg else DecisionTreeClassifier(max_depth=10, **rs)
    if algorithm == "SVM":
        return Pipeline([("scaler", StandardScaler()), ("model", SVR(kernel="rbf") if reg else SVC(kernel="rbf"))])
    if algorithm == "KNN":
        return KNeighborsRegressor(n_neighbors=5) if reg else KNeighborsClassifier(n_neighbors=5)
    if algorithm in ("Gradient Boosting", "XGBoost", "LightGBM", "CatBoost"):
        return GradientBoostingRegressor(n_estimators=100, **rs) if reg else GradientBoostingClassifier(n_estimators=100, **rs)
    if algorithm == "AdaBoost":
        return AdaBoostRegressor(n_estimators=50, **rs) if reg else AdaBoostClassifier(n_estimators=50, **rs)
    if algorithm == "Naive Bayes":
        return BayesianRidge() if reg else GaussianNB()
    if algorithm == "Gaussian Process":
        return GaussianProcessRegressor(**rs) if reg else GaussianProcessClassifier(**rs)
    return make_random_forest(task_type, n_estimators=100, **rs)


def _make_optimizer(optimizers, name: str, lr: float):
    name = name.lower()
    if name == "sgd":     return optimizers.SGD(learning_rate=lr, momentum=0.0)
    if name == "rmsprop": return optimizers.RMSprop(learning_rate=lr)
    if name == "adagrad": return optimizers.Adagrad(learning_rate=lr)
    return optimizers.Adam(learning_rate=lr)


class KerasAdapter:
    """Holds a compiled Keras model plus the label encoding needed to decode its outputs."""

    def __init__(self, architecture, n_features: int, task_type: str, classes: Sequence[Any],
                 learning_rate: float = 0.001, optimizer: str = "adam"):
        from keras import layers, models, optimizers

        self.task_type = task_type
        self.classes = list(classes)
        is_regression = task_type == "regression"
        out_units = 1 if is_regression else max(len(self.classes), 2)

        model = models.Sequential(name="mlaas_mlp")
        model.add(layers.Input(shape=(n_features,)))
        for layer in normalize_architecture(architecture):
            model.add(layers.Dense(layer.neurons, activation=layer.activation.lower()))
            if layer.dropout and layer.dropout > 0:
                model.add(layers.Dropout(layer.dropout))
        model.add(layers.Dense(out_units, activation="linear" if is_regression else "softmax"))
        model.compile(
            optimizer=_make_optimizer(optimizers, optimizer, learning_rate),
            loss="mse" if is_regression else "sparse_categorical_crossentropy",
            metrics=["mse"] if is_regression else ["accuracy"],
        )
        self.model = model

    def _encode(self, y):
        if self.task_type == "regression":
            return np.asarray(y, dtype="float32")
        index = {c: i for i, c in enumerate(self.classes)}
        return np.asarray([index[v] for v in y], dtype="int32")

    def fit(self, X, y, epochs: int = 10, batch_size: int = 32):
        self.model.fit(np.asarray(X, dtype="float32"), self._encode(y),
                       epochs=epochs, batch_size=batch_size, verbose=0)
        return self

    def predict(self, X):
        out = self.model.predict(np.asarray(X, dtype="float32"), verbose=0)
        if self.task_type == "regression":
            return out.reshape(-1)
        return np.asarray([self.classes[i] for i in out.argmax(axis=1)], dtype=object)

    def predict_proba(self, X):
        if self.task_type == "regression":
            raise AttributeError("predict_proba")
        return self.model.predict(np.asarray(X, dtype="float32"), verbose=0)

    def score(self, X, y):
        if self.task_type == "regression":
            return float(r2_score(np.asarray(y, dtype=float), self.predict(X)))
        return float(np.mean(self.predict(X) == np.asarray(y, dtype=object)))


@dataclass
class TrainOutcome:
    accuracy: float
    metrics: Dict[str, Any] = field(default_factory=dict)
    confusion_matrix: Optional[List[List[int]]] = None
    feature_importance: Optional[Dict[str, float]] = None


def _feature_importance(estimator, features: Sequence[str]) -> Dict[str, float] | None:
    model = estimator.named_steps.get("model", estimator) if isinstance(estimator, Pipeline) else estimator
    if hasattr(model, "feature_importances_"):
        importances = np.asarray(model.feature_importances_, dtype=float)
    elif hasattr(model, "coef_"):
        coef = np.asarray(model.coef_, dtype=float)
        importances = np.abs(coef).mean(axis=0) if coef.ndim > 1 else np.abs(coef)
    else:
        return None
    if importances.shape[0] != len(features):
        return None
    ranked = sorted(zip(features, importances.tolist()), key=lambda kv: kv[1], reverse=True)
    return {f: round(float(v), 4) for f, v in ranked}


def _feature_frame(data, features) -> np.ndarray:
    df = pd.DataFrame.from_records(list(data))
    missing = [f for f in features if f not in df.columns]
    if missing:
        raise TrainingError(f"Missing feature columns: {missing}")
    X = df[list(features)].apply(pd.to_numeric, errors="coerce")
    if X.isna().all().any():
        raise TrainingError("Every feature column must contain numeric values")
    return X.fillna(X.mean()).to_numpy(dtype=float)


class SklearnTrainer:
    """Trains real estimators and keeps them in memory for ``predict``."""

    def __init__(self, test_size: float = 0.2, random_state: int | None = 42, nn_epochs: int = 10):
        self.test_size = test_size
        self.random_state = random_state
        self.nn_epochs = nn_epochs
        self._estimators: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def has_model(self, model_id: str) -> bool:
        with self._lock:
            return model_id in self._estimators

    def train(self, data, features, target, algorithm: str, model_id: str | None = None,
              architecture=None, epochs: int | None = None, learning_rate: float | None = None) -> TrainOutcome:
        if not data:
            raise TrainingError("No rows to train on")
        try:
            X = _feature_frame(data, features)
            model_type = model_type_for(algorithm)
            if model_type in (ModelType.ML, ModelType.DL):
                estimator, outcome = self._train_supervised(X, data, features, target, algorithm,
                                                            architecture, epochs, learning_rate)
            else:
                estimator, outcome = self._train_unsupervised(X, data, target, algorithm)
        except TrainingError:
            raise
        except Exception as e:
            raise TrainingError(f"{algorithm} training failed: {e}") from e

        if model_id:
            with self._lock:
                self._estimators[model_id] = {"estimator": estimator, "features": list(features)}
        logger.info("Trained %s for real: accuracy=%.4f", algorithm, outcome.accuracy)
        return outcome

    def _train_supervised(self, X, data, features, target, algorithm, architecture, epochs, learning_rate):
        if not target:
            raise TrainingError(f"{algorithm} needs a target column")
        y_raw = [row.get(target) for row in data]
        problem_type = detect_problem_type(y_raw)
        task_type = "regression" if problem_type == "regression" else "classification"
        numeric = all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in y_raw)
        if numeric:
            y = np.asarray(y_raw, dtype=float)
        elif task_type == "regression":
            raise TrainingError(f"Target '{target}' is not numeric")
        else:
            y = np.asarray([str(v) for v in y_raw], dtype=object)

        X_train, X_test, y_train, y_test = train_test_split(
            X, y, test_size=self.test_size, random_state=self.random_state
        )
        if algorithm == "Neural Network":
            estimator = KerasAdapter(
                architecture or [64, 32], X.shape[1], task_type, sorted(set(y.tolist())),
                learning_rate=learning_rate or 0.001,
            )
            estimator.fit(X_train, y_train, epochs=epochs or self.nn_epochs)
        else:
            estimator = make_estimator(algorithm, task_type, self.random_state)
            estimator.fit(X_train, y_train)

        accuracy = _clip(estimator.score(X_test, y_test))
        outcome = TrainOutcome(accuracy=accuracy, metrics={"accuracy": accuracy, "problemType": problem_type})
        if task_type == "classification":
            labels = sorted(set(y.tolist()))
            outcome.confusion_matrix = confusion_matrix(y_test, estimator.predict(X_test), labels=labels).tolist()
        else:
            outcome.metrics["r2_score"] = accuracy
        outcome.feature_importance = _feature_importance(estimator, features)
        return estimator, outcome

    def _train_unsupervised(self, X, data, target, algorithm):
        Xs = StandardScaler().fit_transform(X)
        if algorithm in ("K-Means", "DBSCAN"):
            estimator = KMeans(n_clusters=3, n_init=10, random_state=self.random_state) if algorithm == "K-Means" else DBSCAN()
            labels = estimator.fit_predict(Xs)
            n_labels = len(set(labels.tolist()))
            if not 2 <= n_labels < Xs.shape[0]:
                raise TrainingError(f"{algorithm} found {n_labels} cluster(s); silhouette is undefined")
            score = float(silhouette_score(Xs, labels))
            return estimator, TrainOutcome(accuracy=_clip(score), metrics={"silhouette_score": round(score, 4), "n_clusters": n_labels})
        if algorithm == "LDA" and target:
            y = np.asarray([str(row.get(target)) for row in data], dtype=object)
            estimator = LinearDiscriminantAnalysis().fit(Xs, y)
            score = float(estimator.explained_variance_ratio_.sum()) if hasattr(estimator, "explained_variance_ratio_") else float(estimator.score(Xs, y))
            return estimator, TrainOutcome(accuracy=_clip(score), metrics={"explained_variance": round(score, 4)})
        if algorithm in ("PCA", "LDA"):
            estimator = PCA(n_components=min(2, Xs.shape[1])).fit(Xs)
            score = float(estimator.explained_variance_ratio_.sum())
            return estimator, TrainOutcome(accuracy=_clip(score), metrics={"explained_variance": round(score, 4)})
        estimator = IsolationForest(contamination=0.1, random_state=self.random_state).fit(Xs)
        preds = estimator.predict(Xs)
        inliers = float(np.mean(preds == 1))
        return estimator, TrainOutcome(
            accuracy=_clip(inliers),
            metrics={"contamination": 0.1, "anomalies_detected": int(np.sum(preds == -1))},
        )

    def predict(self, model_id: str, rows: List[List[Any]]) -> Dict[str, Any]:
        with self._lock:
            entry = self._estimators.get(model_id)
        if entry is None:
            raise TrainingError(f"No trained estimator for model {model_id}")
        try:
            X = np.asarray(rows, dtype=float)
            if X.ndim == 1:
                X = X.reshape(1, -1)
            estimator = entry["estimator"]
            preds = estimator.predict(X)
            out: Dict[str, Any] = {"predictions": [p.item() if hasattr(p, "item") else p for p in preds]}
            if hasattr(estimator, "predict_proba"):
                try:
                    out["probabilities"] = np.asarray(estimator.predict_proba(X)).round(4).tolist()
                except AttributeError:
                    pass
        except Exception as e:
            raise TrainingError(f"Prediction failed: {e}") from e
        return out


def simulate_training_accuracy(algorithm: str, rng=None) -> float:
    seed = _seed(rng)
    if algorithm == "Neural Network":
        return round(0.81 + seed.random() * 0.15, 4)
    return round(0.75 + seed.random() * 0.20, 4)


def simulate_predictions(rows: List[List[Any]], rng=None) -> List[Any]:
    """Stand-in predictions: a numeric first value maps to ``sin(x)*5 + 3 + U``, anything else to a class label."""
    seed = _seed(rng)
    out = []
    for row in rows:
        first = row[0] if isinstance(row, (list, tuple)) and row else row
        if isinstance(first, (int, float)) and not isinstance(first, bool) and math.isfinite(first):
            out.append(round(math.sin(first) * 5 + 3 + float(seed.random()), 2))
        else:
            out.append(SIMULATED_CLASSES[int(seed.integers(0, len(SIMULATED_CLASSES)))])
    return out
