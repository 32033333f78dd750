"""Shared fixtures: seeded generators, a 50-row dataset and a store that can be made to fail."""

from __future__ import annotations

import pytest
from numpy.random import default_rng

from mlaas_studio.errors import StoreError
from mlaas_studio.registry.registry import ModelRegistry
from mlaas_studio.storage.cache import LocalModelCache
from mlaas_studio.storage.writer import SQLiteModelStore

FAST = {"latency_scale": 0.0, "max_workers": 4, "seed": 7}


@pytest.fixture
def rng():
    return default_rng(1234)


@pytest.fixture
def fast_config():
    return dict(FAST)


@pytest.fixture
def small_dataset():
    """50 rows, 3 numeric features, binary target."""
    gen = default_rng(99)
    rows = []
    for _ in range(50):
        f1, f2, f3 = (float(round(v, 3)) for v in gen.normal(size=3))
        rows.append({"f1": f1, "f2": f2, "f3": f3, "label": int(f1 + f2 > 0)})
    return rows, ["f1", "f2", "f3"], "label"


class FlakyStore:
    """Wraps a real store; while ``failing`` is set every call raises StoreError."""

    def __init__(self, inner):
        self.inner = inner
        self.failing = False
        self.calls = []

    def _call(self, name, *args):
        self.calls.append((name, args[0] if args else None))
        if self.failing:
            raise StoreError(f"{name}: connection refused")
        return getattr(self.inner, name)(*args)

    def fetch_all(self):
        return self._call("fetch_all")

    def insert(self, row):
        return self._call("insert", row)

    def update(self, model_id, changes):
        return self._call("update", model_id, changes)

    def delete(self, model_id):
        return self._call("delete", model_id)

    def ping(self):
        return self._call("ping")


@pytest.fixture
def store(tmp_path):
    s = SQLiteModelStore(str(tmp_path / "models.db"))
    s.start()
    yield s
    s.finish()


@pytest.fixture
def flaky_store(store):
    return FlakyStore(store)


@pytest.fixture
def cache(tmp_path):
    return LocalModelCache(tmp_path / "cache" / "models.json")


@pytest.fixture
def registry(flaky_store, cache, rng):
    return ModelRegistry(flaky_store, cache=cache, failure_threshold=3, rng=rng)


@pytest.fixture
def model_data():
    def make(**overrides):
        data = {
            "name": "Random Forest",
            "type": "ML",
            "algorithm": "Random Forest",
            "accuracy": 0.9,
            "datasetName": "iris.csv",
            "parameters": {"nEstimators": 100},
            "targets": ["species"],
        }
        data.update(overrides)
        return data
    return make
