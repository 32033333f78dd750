"""CSV ingestion into row dicts, feature columns and one target column."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

import numpy as np
import pandas as pd

from ..errors import DatasetError

logger = logging.getLogger(__name__)

# Leading-number prefix, the way parseFloat reads "12.5kg" as 12.5
_FLOAT_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INFINITY = re.compile(r"^[+-]?Infinity")


def coerce_cell(raw: str) -> Union[float, int, str]:
    """Return ``raw`` as a number when a leading number parses, else the string."""
    value = raw.strip()
    match = _FLOAT_PREFIX.match(value)
    if match:
        number = float(match.group(0))
        if number.is_integer() and re.fullmatch(r"[+-]?\d+", match.group(0)):
            return int(match.group(0))
        return number
    if _INFINITY.match(value):
        return float("-inf") if value.startswith("-") else float("inf")
    return value


@dataclass
class DatasetView:
    rows: List[Dict[str, Any]]
    features: List[str]
    target: str
    name: str
    columns: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.columns:
            self.columns = list(self.features) + [self.target]

    @property
    def n_rows(self) -> int:
        return len(self.rows)

    @property
    def n_features(self) -> int:
        return len(self.features)

    @property
    def frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows, columns=self.columns)

    def column_types(self) -> Dict[str, str]:
        df = self.frame
        types = {}
        for col in self.columns:
            series = df[col]
            numeric = len(series) > 0 and pd.api.types.is_numeric_dtype(series) \
                and not pd.api.types.is_bool_dtype(series)
            types[col] = "numeric" if numeric else "string"
        return types

    def feature_matrix(self) -> List[List[Any]]:
        return [[row[f] for f in self.features] for row in self.rows]

    def target_vector(self) -> np.ndarray:
        return np.asarray([row[self.target] for row in self.rows], dtype=object)

    def with_target(self, target: str) -> "DatasetView":
        if target not in self.columns:
            raise DatasetError(f"Target column '{target}' not found in {self.columns}")
        features = [c for c in self.columns if c != target]
        return DatasetView(rows=self.rows, features=features, target=target, name=self.name, columns=self.columns)


def _parse_header(line: str) -> List[str]:
    headers = [h.strip() for h in line.split(",")]
    if not any(headers):
        raise DatasetError("CSV header is empty")
    if any(not h for h in headers):
        raise DatasetError(f"CSV header has a blank column name: {headers}")
    if len(set(headers)) != len(headers):
        raise DatasetError(f"CSV header has duplicate column names: {headers}")
    return headers


def parse_csv_text(text: str, target: str | None = None, name: str = "dataset.csv") -> DatasetView:
    """Parse raw CSV text.

    Rows whose column count differs from the header are skipped and logged.
    The last column is the default target; ``target`` overrides it.
    """
    if text is None or not text.strip():
        raise DatasetError("CSV file is empty")

    lines = text.split("\n")
    headers = _parse_header(lines[0].rstrip("\r"))
    target = target or headers[-1]
    if target not in headers:
        raise DatasetError(f"Target column '{target}' not found in {headers}")

    rows = []
    skipped = 0
    for i, raw_line in enumerate(lines[1:], start=1):
        line = raw_line.rstrip("\r")
        if not line.strip():
            continue
        values = line.split(",")
        if len(values) != len(headers):
            logger.warning("Skipping row %d: expected %d columns, got %d", i, len(headers), len(values))
            skipped += 1
            continue
        rows.append({h: coerce_cell(v) for h, v in zip(headers, values)})

    features = [h for h in headers if h != target]
    logger.info("Parsed %s: %d rows, %d features, target=%s (%d skipped)",
                name, len(rows), len(features), target, skipped)
    return DatasetView(rows=rows, features=features, target=target, name=name, columns=headers)


def load_csv(path: Union[str, Path], target: str | None = None) -> DatasetView:
    path = Path(path)
    if path.suffix.lower() != ".csv":
        raise DatasetError("Please upload a CSV file")
    if not path.exists():
        raise DatasetError(f"Missing file: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DatasetError(f"Error processing the CSV file: {exc}") from exc
    return parse_csv_text(text, target=target, name=path.name)
