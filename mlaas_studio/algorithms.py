"""Algorithm catalogue: labels, model types, accuracy bands and defaults."""

from __future__ import annotations

from enum import Enum


class ModelType(str, Enum):
    ML = "ML"
    DL = "DL"
    CLUSTERING = "Clustering"
    DIMENSIONALITY_REDUCTION = "Dimensionality Reduction"
    ANOMALY_DETECTION = "Anomaly Detection"


ALGORITHMS = [
    "Linear Regression",
    "Logistic Regression",
    "Decision Tree",
    "Random Forest",
    "SVM",
    "KNN",
    "Neural Network",
    "Gradient Boosting",
    "AdaBoost",
    "Naive Bayes",
    "XGBoost",
    "K-Means",
    "DBSCAN",
    "PCA",
    "LDA",
    "Gaussian Process",
    "Isolation Forest",
    "LightGBM",
    "CatBoost",
]

# (low, width): simulated accuracy is low + U[0, 1) * width
ACCURACY_BANDS = {
    "Linear Regression": (0.75, 0.15),
    "Logistic Regression": (0.78, 0.12),
    "Decision Tree": (0.82, 0.10),
    "Random Forest": (0.85, 0.10),
    "SVM": (0.80, 0.15),
    "KNN": (0.76, 0.14),
    "Gradient Boosting": (0.87, 0.08),
    "AdaBoost": (0.83, 0.09),
    "Naive Bayes": (0.77, 0.13),
    "XGBoost": (0.88, 0.07),
    "K-Means": (0.72, 0.18),
    "DBSCAN": (0.74, 0.16),
    "PCA": (0.65, 0.25),
    "LDA": (0.68, 0.22),
    "Gaussian Process": (0.79, 0.15),
    "Isolation Forest": (0.81, 0.12),
    "LightGBM": (0.89, 0.06),
    "CatBoost": (0.90, 0.05),
}
DEFAULT_BAND = (0.70, 0.20)

MAX_SIMULATED_ACCURACY = 0.99

DEFAULT_PARAMS = {
    "Linear Regression": {"fitIntercept": True},
    "Logistic Regression": {"regularization": "l2", "C": 1.0},
    "Decision Tree": {"maxDepth": 10},
    "Random Forest": {"nEstimators": 100},
    "SVM": {"kernel": "rbf", "C": 1.0},
    "KNN": {"nNeighbors": 5},
    "Gradient Boosting": {"learningRate": 0.1, "nEstimators": 100},
    "Naive Bayes": {"alpha": 1.0},
    "AdaBoost": {"learningRate": 1.0, "nEstimators": 50},
    "XGBoost": {"learningRate": 0.1, "maxDepth": 6, "nEstimators": 100},
    "LightGBM": {"learningRate": 0.1, "maxDepth": 8, "nEstimators": 100},
    "CatBoost": {"learningRate": 0.05, "depth": 6, "iterations": 100},
    "Gaussian Process": {"kernel": "rbf"},
    "K-Means": {"nClusters": 3, "maxIter": 300},
    "DBSCAN": {"eps": 0.5, "minSamples": 5},
    "PCA": {"nComponents": 2},
    "LDA": {"nComponents": 2},
    "Isolation Forest": {"contamination": 0.1, "maxSamples": 100},
}

ML_ALGORITHMS = [
    "Linear Regression",
    "Logistic Regression",
    "Decision Tree",
    "Random Forest",
    "SVM",
    "KNN",
    "Gradient Boosting",
    "Naive Bayes",
    "AdaBoost",
    "XGBoost",
    "LightGBM",
    "CatBoost",
]
CLUSTERING_ALGORITHMS = ["K-Means", "DBSCAN"]
DIMENSIONALITY_REDUCTION_ALGORITHMS = ["PCA", "LDA"]
ANOMALY_DETECTION_ALGORITHMS = ["Isolation Forest"]

TREE_BASED_ALGORITHMS = {
    "Decision Tree", "Random Forest", "Gradient Boosting", "XGBoost", "LightGBM", "CatBoost",
}
LINEAR_ALGORITHMS = {"Linear Regression", "Logistic Regression", "SVM"}

FAMILIES = {
    "ml": ML_ALGORITHMS,
    "clustering": CLUSTERING_ALGORITHMS,
    "dimensionality_reduction": DIMENSIONALITY_REDUCTION_ALGORITHMS,
    "anomaly_detection": ANOMALY_DETECTION_ALGORITHMS,
    "dl": ["Neural Network"],
}


def validate_algorithm(algorithm: str) -> str:
    if algorithm not in ALGORITHMS:
        raise ValueError(f"Unknown algorithm '{algorithm}'. Choices: {ALGORITHMS}")
    return algorithm


def accuracy_band(algorithm: str) -> tuple[float, float]:
    return ACCURACY_BANDS.get(algorithm, DEFAULT_BAND)


def is_clustering_algorithm(algorithm: str) -> bool:
    return algorithm in CLUSTERING_ALGORITHMS


def is_dimensionality_reduction_algorithm(algorithm: str) -> bool:
    return algorithm in DIMENSIONALITY_REDUCTION_ALGORITHMS


def is_anomaly_detection_algorithm(algorithm: str) -> bool:
    return algorithm in ANOMALY_DETECTION_ALGORITHMS


def model_type_for(algorithm: str) -> ModelType:
    """Route a trained algorithm to the ``type`` tag it is saved under."""
    if algorithm == "Neural Network":
        return ModelType.DL
    if is_clustering_algorithm(algorithm):
        return ModelType.CLUSTERING
    if is_dimensionality_reduction_algorithm(algorithm):
        return ModelType.DIMENSIONALITY_REDUCTION
    if is_anomaly_detection_algorithm(algorithm):
        return ModelType.ANOMALY_DETECTION
    return ModelType.ML


def is_supervised(algorithm: str) -> bool:
    return model_type_for(algorithm) in (ModelType.ML, ModelType.DL)
