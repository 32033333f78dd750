from __future__ import annotations

import logging
import threading

from ..config import CONFIG

logger = logging.getLogger(__name__)


class HealthMonitor:
    """Background thread that calls ``registry.check_connection()`` every ``interval`` seconds."""

    def __init__(self, registry, interval: float | None = None):
        self.registry = registry
        self.interval = float(interval if interval is not None else CONFIG["health_check_interval"])
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="mlaas-health", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            online = self.registry.check_connection()
            logger.debug("Health check: %s", "online" if online else "offline")

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.stop()
