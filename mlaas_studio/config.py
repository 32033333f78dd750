"""Configuration for the MLaaS studio."""
from pathlib import Path

BASE_OUTPUT_DIR = Path("outputs")
DOWNLOADS_DIR = BASE_OUTPUT_DIR / "downloads"
EXPORTS_DIR = BASE_OUTPUT_DIR / "exports"

import os
OVERRIDE = os.getenv("MLAAS_STUDIO_HOME")
if OVERRIDE:
    BASE_OUTPUT_DIR = Path(OVERRIDE)
    DOWNLOADS_DIR = BASE_OUTPUT_DIR / "downloads"
    EXPORTS_DIR = BASE_OUTPUT_DIR / "exports"

CONFIG = {
    "db_path": os.getenv("MLAAS_STUDIO_DB", str(BASE_OUTPUT_DIR / "models.db")),
    "cache_path": str(BASE_OUTPUT_DIR / "models_cache.json"),
    "downloads_dir": str(DOWNLOADS_DIR),
    "offline_failure_threshold": 3,
    "health_check_interval": 30.0,
    "latency_scale": float(os.getenv("MLAAS_STUDIO_LATENCY_SCALE", "1.0")),
    "service_url": os.getenv("MLAAS_STUDIO_SERVICE_URL", "http://127.0.0.1:8000"),
    "service_timeout": 30.0,
    "large_dataset_threshold": 10000,
    "test_size": 0.2,
    "epochs": 100,
    "learning_rate": 0.001,
    "max_workers": 8,
    "seed": None,
}
