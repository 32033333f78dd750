from __future__ import annotations

import logging
from typing import Any, Dict, List

import requests

from ..config import CONFIG
from ..errors import ServiceError

logger = logging.getLogger(__name__)


class ServiceClient:
    """HTTP client for the training/prediction service."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None, session: requests.Session | None = None):
        self.base_url = (base_url or CONFIG["service_url"]).rstrip("/")
        self.timeout = float(timeout if timeout is not None else CONFIG["service_timeout"])
        self.session = session or requests.Session()

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.post(url, json=payload, timeout=self.timeout)
            body = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise ServiceError(f"POST {path} failed: {e}") from e
        if not isinstance(body, dict):
            raise ServiceError(f"POST {path} returned a non-object body (HTTP {resp.status_code})")
        if resp.status_code >= 400 or body.get("success") is False:
            raise ServiceError(body.get("error") or f"POST {path} returned HTTP {resp.status_code}")
        return body

    def train(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._post("/train-model", payload)

    def predict(self, model_id: str, input_rows: List[List[Any]]) -> Dict[str, Any]:
        return self._post("/predict-with-model", {"modelId": model_id, "inputData": input_rows})

    def health(self) -> bool:
        try:
            resp = self.session.get(f"{self.base_url}/health-check", timeout=self.timeout)
            return resp.status_code < 400 and resp.json().get("status") == "ok"
        except (requests.RequestException, ValueError) as e:
            logger.debug("Health check failed: %s", e)
            return False
