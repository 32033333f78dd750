from __future__ import annotations

import pytest
from numpy.random import default_rng

from mlaas_studio.data.splitters import sample_every_nth, split_data, subsample_rows


def _rows(n):
    return [{"x": i, "y": i % 2} for i in range(n)]


def test_split_sizes_follow_rounding():
    split = split_data(_rows(50), ["x"], "y", test_size=0.2, rng=default_rng(0))
    assert split.n_test == 10
    assert split.n_train == 40


def test_split_is_a_partition():
    split = split_data(_rows(23), ["x"], "y", test_size=0.3, rng=default_rng(1))
    seen = sorted(r[0] for r in split.train_features + split.test_features)
    assert seen == list(range(23))


def test_split_is_reproducible():
    a = split_data(_rows(30), ["x"], "y", rng=default_rng(5))
    b = split_data(_rows(30), ["x"], "y", rng=default_rng(5))
    assert a == b


def test_split_rejects_bad_test_size():
    with pytest.raises(ValueError):
        split_data(_rows(5), ["x"], "y", test_size=1.5)


def test_subsample_keeps_small_inputs():
    rows = _rows(5)
    assert subsample_rows(rows, 10) == rows


def test_subsample_without_replacement():
    out = subsample_rows(_rows(100), 10, rng=default_rng(2))
    xs = [r["x"] for r in out]
    assert len(xs) == 10
    assert len(set(xs)) == 10
    assert xs == sorted(xs)


def test_sample_every_nth():
    assert sample_every_nth(list(range(10)), 20) == list(range(10))
    assert sample_every_nth(list(range(10)), 4) == [0, 3, 6, 9]
