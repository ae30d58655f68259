"""
app/connectors/base.py

Shared outbound HTTP mechanics for connectors that fetch remote resources.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

import requests

from app.config import ExternalHTTPSettings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
MAX_RETRY_AFTER_SECONDS = 30.0


class ConnectorRequestError(RuntimeError):
    """
    Raised when a remote resource cannot be fetched after retries.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BaseConnector:
    """
    Requests session wrapper with a process-wide rate limit and exponential backoff.

    Safe to share between import worker threads; only the rate limiter holds state.
    """

    def __init__(
        self,
        *,
        source: str,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        self.source = source
        self._settings = http_settings
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", http_settings.user_agent)
        self._min_interval = (
            1.0 / http_settings.rate_limit_per_second if http_settings.rate_limit_per_second > 0 else 0.0
        )
        self._next_slot = 0.0
        self._rate_lock = threading.Lock()

    def _request(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        stream: bool = False,
    ) -> requests.Response:
        """
        Send one request, retrying 429/5xx responses, timeouts and connection errors.

        The caller owns the returned response and must close it when streaming.
        """

        attempts = self._settings.max_retries + 1
        last_error: Exception | None = None
        for attempt in range(attempts):
            self._wait_for_slot()
            retry_after: float | None = None
            try:
                response = self._session.request(
                    method=method,
                    url=url,
                    params=params,
                    headers=headers,
                    timeout=self._settings.timeout_seconds,
                    stream=stream,
                )
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = exc
            else:
                if response.status_code not in RETRYABLE_STATUS_CODES:
                    return self._raise_for_status(response, url)
                retry_after = _retry_after_seconds(response)
                response.close()
                last_error = requests.HTTPError(f"HTTP {response.status_code}", response=response)

            if attempt + 1 >= attempts:
                break
            delay = retry_after if retry_after is not None else self._backoff_seconds(attempt)
            logger.warning(
                "Connector retry source=%s attempt=%s/%s wait_seconds=%.2f url=%s error=%s",
                self.source,
                attempt + 1,
                self._settings.max_retries,
                delay,
                url,
                last_error,
            )
            time.sleep(delay)

        logger.error("Connector retries exhausted source=%s url=%s error=%s", self.source, url, last_error)
        status_code = _status_of(last_error)
        raise ConnectorRequestError(
            f"{self.source}: request failed after {attempts} attempt(s).",
            status_code=status_code,
        ) from last_error

    def _raise_for_status(self, response: requests.Response, url: str) -> requests.Response:
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            response.close()
            logger.error(
                "Connector request rejected source=%s status=%s url=%s",
                self.source,
                response.status_code,
                url,
            )
            raise ConnectorRequestError(
                f"{self.source}: HTTP {response.status_code}.",
                status_code=response.status_code,
            ) from exc
        return response

    def _backoff_seconds(self, attempt: int) -> float:
        return self._settings.backoff_initial_seconds * (self._settings.backoff_multiplier**attempt)

    def _wait_for_slot(self) -> None:
        if self._min_interval <= 0:
            return
        with self._rate_lock:
            now = time.monotonic()
            if self._next_slot > now:
                time.sleep(self._next_slot - now)
                now = self._next_slot
            self._next_slot = now + self._min_interval


def _retry_after_seconds(response: requests.Response) -> float | None:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        seconds = float(raw)
    except ValueError:
        # HTTP-date form is not honoured; fall back to backoff
        return None
    return min(max(seconds, 0.0), MAX_RETRY_AFTER_SECONDS)


def _status_of(error: Exception | None) -> int | None:
    if isinstance(error, requests.HTTPError) and error.response is not None:
        return error.response.status_code
    return None
