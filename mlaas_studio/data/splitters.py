from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, List, Sequence

import numpy as np
from numpy.random import default_rng, Generator


def _seed(rng):
    return rng if isinstance(rng, Generator) else default_rng()


def _take(x, idx):
    if isinstance(x, np.ndarray):
        return x[idx]
    idx_list = idx.tolist() if isinstance(idx, np.ndarray) else list(idx)
    return [x[i] for i in idx_list]


@dataclass
class TrainTestSplit:
    train_features: List[List[Any]]
    train_target: List[Any]
    test_features: List[List[Any]]
    test_target: List[Any]

    @property
    def n_train(self) -> int:
        return len(self.train_target)

    @property
    def n_test(self) -> int:
        return len(self.test_target)


def split_data(rows: Sequence[dict], features: Sequence[str], target: str, test_size: float = 0.2, rng=None) -> TrainTestSplit:
    """Shuffle ``rows`` and cut the last ``round(n * test_size)`` into the test set."""
    if not 0.0 <= test_size <= 1.0:
        raise ValueError("test_size must be in [0, 1].")
    seed = _seed(rng)
    n = len(rows)
    shuffled = _take(list(rows), seed.permutation(n))
    test_count = int(round(n * test_size))
    train_count = n - test_count
    train, test = shuffled[:train_count], shuffled[train_count:]
    return TrainTestSplit(
        train_features=[[row[f] for f in features] for row in train],
        train_target=[row[target] for row in train],
        test_features=[[row[f] for f in features] for row in test],
        test_target=[row[target] for row in test],
    )


def subsample_rows(rows: Sequence[dict], limit: int, rng=None) -> List[dict]:
    if len(rows) <= limit:
        return list(rows)
    seed = _seed(rng)
    idx = np.sort(seed.choice(len(rows), size=limit, replace=False))
    return _take(list(rows), idx)


def sample_every_nth(values: Sequence[Any], limit: int) -> List[Any]:
    """Keep every Nth value so that at most ``limit`` remain."""
    n = len(values)
    if n <= limit:
        return list(values)
    step = math.ceil(n / limit)
    return list(values[::step])
