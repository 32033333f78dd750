"""Local JSON cache of model records, used while the store is unreachable.

Next to the records file the cache keeps the store writes made while
offline (``<stem>.pending.json``) so they can be replayed on reconnect.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from ..models.records import Model

logger = logging.getLogger(__name__)

PENDING_OPS = ("update", "delete")


class LocalModelCache:
    def __init__(self, path):
        self.path = Path(path)
        self.pending_path = self.path.with_name(self.path.stem + ".pending.json")

    def _read(self, path: Path):
        if not path.exists():
            return []
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable model cache %s: %s", path, e)
            return []

    def _write(self, path: Path, payload) -> bool:
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            tmp.replace(path)
        except OSError as e:
            logger.warning("Could not write model cache %s: %s", path, e)
            return False
        return True

    def load(self) -> List[Model]:
        try:
            return [Model.from_dict(d) for d in self._read(self.path)]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring unreadable model cache %s: %s", self.path, e)
            return []

    def save(self, models: List[Model]) -> bool:
        return self._write(self.path, [m.to_dict() for m in models])

    def load_pending(self) -> List[Dict[str, Any]]:
        raw = self._read(self.pending_path)
        if not isinstance(raw, list):
            logger.warning("Ignoring unreadable pending writes %s", self.pending_path)
            return []
        return [op for op in raw if isinstance(op, dict) and op.get("op") in PENDING_OPS and op.get("id")]

    def save_pending(self, ops: List[Dict[str, Any]]) -> bool:
        return self._write(self.pending_path, list(ops))

    def clear(self) -> None:
        for path in (self.path, self.pending_path):
            if path.exists():
                path.unlink()
