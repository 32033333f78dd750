"""Best-model selection over registry records or training results."""

from __future__ import annotations

from typing import Callable, Iterable, Optional, TypeVar

T = TypeVar("T")


def _accuracy(item) -> float:
    return float(item.accuracy)


def best_of(items: Iterable[T], key: Callable[[T], float] = _accuracy) -> Optional[T]:
    """Return the highest-scoring item.

    Strict ``>`` comparison: on a tie the first item in input order wins.
    Returns ``None`` for an empty input.
    """
    best = None
    for item in items:
        if best is None or key(item) > key(best):
            best = item
    return best


def best_model(models, dataset_name: str):
    return best_of(m for m in models if m.dataset_name == dataset_name)


def best_model_by_type(models, dataset_name: str, model_type):
    wanted = getattr(model_type, "value", model_type)
    return best_of(m for m in models if m.dataset_name == dataset_name and m.type == wanted)
