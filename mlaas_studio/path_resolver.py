"""Path resolver logic for downloads and listing exports"""

from __future__ import annotations
from pathlib import Path
from typing import Union
from .config import DOWNLOADS_DIR, EXPORTS_DIR


def ensure_dirs() -> None:
    DOWNLOADS_DIR.mkdir(parents=True, exist_ok=True)
    EXPORTS_DIR.mkdir(parents=True, exist_ok=True)


def resolve_download_path(filename: str, directory: Union[str, Path, None] = None) -> Path:
    """Where a downloaded model file is written; only the file name part of ``filename`` is kept."""
    if directory is None:
        ensure_dirs()
        base = DOWNLOADS_DIR
    else:
        base = Path(directory)
        base.mkdir(parents=True, exist_ok=True)
    return base / Path(filename).name


def resolve_export_path(filename: str = "models") -> Path:
    ensure_dirs()
    fname = Path(filename).name
    if not fname.lower().endswith(".csv"):
        fname += ".csv"
    return EXPORTS_DIR / fname
