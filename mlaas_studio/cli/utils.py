# cli/utils.py
from __future__ import annotations
from typing import List, Dict, Any

from ..config import CONFIG
from ..data.ingest import coerce_cell


def _coerce_value(raw: str):
    raw = raw.strip()
    if raw.lower() in {"true", "false"}:
        return raw.lower() == "true"
    try:
        return int(raw)
    except ValueError:
        try:
            return float(raw)
        except ValueError:
            return raw


def parse_grid_args(pairs: List[str] | None) -> Dict[str, List[Any]]:
    """``KEY=v1,v2,...`` pairs into a parameter grid."""
    grid: Dict[str, List[Any]] = {}
    if not pairs:
        return grid
    for raw in pairs:
        if "=" not in raw:
            raise SystemExit(f"Invalid grid argument '{raw}'. Expected KEY=V1,V2 format.")
        key, values = raw.split("=", 1)
        key = key.strip()
        if not key:
            raise SystemExit(f"Invalid grid argument '{raw}'. Key cannot be empty.")
        grid[key] = [_coerce_value(v) for v in values.split(",") if v.strip()]
    return grid


def parse_row(raw: str) -> List[Any]:
    return [coerce_cell(cell) for cell in raw.split(",")]


def split_names(raw: str | None) -> List[str] | None:
    if not raw:
        return None
    return [x.strip() for x in raw.split(",") if x.strip()]


def resolve_hidden_layers(raw: str | None, fallback: list[int] | None = None) -> list[int] | None:
    if not raw: return fallback
    return [int(x) for x in raw.split(",") if x.strip()]


def cli_config(args) -> dict:
    config = CONFIG.copy()
    if getattr(args, "db", None):
        config["db_path"] = args.db
    if getattr(args, "seed", None) is not None:
        config["seed"] = int(args.seed)
    if getattr(args, "fast", False):
        config["latency_scale"] = 0.0
    return config


def open_registry(args, config: dict | None = None):
    """Registry over the configured SQLite store, local cache and service client."""
    from ..registry.registry import ModelRegistry
    from ..service.client import ServiceClient
    from ..storage.cache import LocalModelCache
    from ..storage.writer import make_store

    config = config or cli_config(args)
    registry = ModelRegistry(
        make_store("sqlite", db_path=config["db_path"]),
        cache=LocalModelCache(config["cache_path"]),
        client=ServiceClient(config["service_url"], config["service_timeout"]),
        failure_threshold=config["offline_failure_threshold"],
    )
    registry.refresh_models()
    if registry.last_error is not None and not registry.is_offline:
        registry.go_offline(registry.last_error)
    return registry


def format_model(m) -> str:
    flag = " [local]" if m.is_local else ""
    return f"{m.id}  {m.name:<32} {m.type:<24} {m.accuracy:.4f}  {m.dataset_name}{flag}"
