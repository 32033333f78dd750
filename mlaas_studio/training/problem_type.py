from __future__ import annotations

import numbers
from typing import Any, Sequence

from ..data.splitters import sample_every_nth

SAMPLE_LIMIT = 10000


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, bool)


def detect_problem_type(values: Sequence[Any], sample_limit: int = SAMPLE_LIMIT) -> str:
    """Classify a target column as ``classification``, ``multiclass`` or ``regression``.

    Numeric targets with at most 5 distinct values are classification (2 or
    fewer) or multiclass (3-5); more than 5 is regression. Non-numeric
    targets are classification. Long vectors are thinned to every Nth value
    before counting, so the count is approximate above ``sample_limit``.
    """
    sample = sample_every_nth(list(values), sample_limit)
    if not sample:
        return "classification"
    if all(_is_number(v) for v in sample):
        uniques = len({float(v) for v in sample})
        if uniques <= 5:
            return "classification" if uniques <= 2 else "multiclass"
        return "regression"
    return "classification"
