import logging
import time
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class JsonHttpClient:
    """Thin JSON-over-HTTP GET wrapper shared by the registry and signature loaders.

    One attempt by default. ``max_retries`` > 1 re-issues requests that hit a
    5xx or a rate-limit payload, sleeping ``backoff_seconds * attempt`` in between.
    """

    def __init__(
        self,
        timeout: int = 10,
        max_retries: int = 1,
        backoff_seconds: float = 0.5,
        headers: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max(1, int(max_retries))
        self.backoff_seconds = float(backoff_seconds)
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if headers:
            self.session.headers.update(dict(headers))

    def _is_rate_limit_payload(self, payload: Any) -> bool:
        if not isinstance(payload, dict):
            return False

        candidates: list[str] = []
        for key in ("message", "result"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                candidates.append(value)

        error_obj = payload.get("error")
        if isinstance(error_obj, dict):
            for key in ("message", "data"):
                value = error_obj.get(key)
                if isinstance(value, str) and value:
                    candidates.append(value)

        haystack = " ".join(candidates).lower()
        if not haystack:
            return False

        return (
            "rate limit" in haystack
            or "max calls per sec" in haystack
            or "max calls per second" in haystack
            or "too many requests" in haystack
        )

    def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        allow_not_found: bool = False,
    ) -> Any:
        """GET ``url`` and decode JSON. Returns None on 404 when ``allow_not_found``."""
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                response = self.session.get(url, params=params or {}, timeout=self.timeout)
                if allow_not_found and response.status_code == 404:
                    return None
                if (response.status_code == 429 or response.status_code >= 500) and attempt < self.max_retries:
                    logger.debug("GET %s returned %s, retrying (attempt %d)", url, response.status_code, attempt)
                    time.sleep(self.backoff_seconds * attempt)
                    continue

                response.raise_for_status()
                payload = response.json()
                if self._is_rate_limit_payload(payload) and attempt < self.max_retries:
                    time.sleep(self.backoff_seconds * attempt)
                    continue
                return payload
            except requests.RequestException as exc:
                last_error = exc
                if attempt < self.max_retries:
                    time.sleep(self.backoff_seconds * attempt)
                else:
                    raise
            except ValueError as exc:
                last_error = exc
                if attempt < self.max_retries:
                    time.sleep(self.backoff_seconds * attempt)
                else:
                    raise ValueError(f"Failed to parse JSON response from {url}.") from exc

        if last_error:
            raise last_error

        raise RuntimeError("Request failed without raising an exception.")
