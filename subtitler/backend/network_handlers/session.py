from __future__ import annotations

from typing import Any, Collection, Dict, Optional
import random
import socket
import time

import requests
from requests.adapters import HTTPAdapter

from subtitler.backend.common.errors import NetworkError
from subtitler.backend.common.logging import get_logger
from subtitler.backend.network_handlers.url_manager import URLManager
from subtitler.config.settings import get_retry_config, get_settings

log = get_logger(__name__)


# ---------------- Exceptions ----------------

class NetError(NetworkError): ...
class RequestTimeout(NetError): ...
class DNSFailure(NetError): ...
class ConnectionFailed(NetError): ...
class BadRequest(NetError): ...
class Forbidden(NetError): ...
class NotFound(NetError): ...
class RateLimited(NetError): ...
class Upstream5xx(NetError): ...
class Client4xx(NetError): ...


def _map_http_error(status: int) -> NetError:
    if status == 400: return BadRequest("400 Bad Request")
    if status == 403: return Forbidden("403 Forbidden")
    if status == 404: return NotFound("404 Not Found")
    if status == 429: return RateLimited("429 Too Many Requests")
    if 500 <= status < 600: return Upstream5xx(f"{status} Upstream error")

    return Client4xx(f"{status} HTTP error")

def _sleep_with_jitter(base_ms: int, attempt: int, max_ms: int, jitter_ms: int):
    backoff = min(max_ms, int((2 ** (attempt - 1)) * base_ms))
    jitter = random.randint(0, max(0, jitter_ms))
    time.sleep((backoff + jitter) / 1000.0)


# ---------------- Main Session ----------------

class HttpSession:
    """
    Central HTTP client for metadata services:
      - URL building + per-service headers via URLManager
      - Exponential backoff + jitter on timeouts, 408 and 5xx
      - 429 Retry-After support
      - Typed error mapping
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        *,
        url_manager: Optional[URLManager] = None,
        session: Optional[requests.Session] = None,
    ):
        self.urlm = url_manager or URLManager()
        self.timeout = timeout if timeout is not None else get_settings().http_timeout

        self._session = session or requests.Session()
        self._session.mount("http://", HTTPAdapter(pool_connections=4, pool_maxsize=8))
        self._session.mount("https://", HTTPAdapter(pool_connections=4, pool_maxsize=8))

        retry_cfg = get_retry_config()
        self.retry_max_attempts = max(1, int(retry_cfg.get("max_attempts", 3)))
        self.base_backoff_ms = int(retry_cfg.get("base_backoff_ms", 300))
        self.max_backoff_ms = int(retry_cfg.get("max_backoff_ms", 4000))
        self.jitter_ms = int(retry_cfg.get("jitter_ms", 200))

    # -------- public API --------

    def get_json(
        self,
        service: str,
        endpoint: str,
        *,
        fmt_args: Optional[tuple[Any, ...]] = None,
        params: Optional[Dict[str, Any]] = None,
        allowed_statuses: Optional[Collection[int]] = None,
    ) -> Any:
        url, headers = self.urlm.build_from_endpoint(service, endpoint, fmt_args=fmt_args, params=params)
        resp = self._request("GET", service, url, headers=headers, allowed_statuses=allowed_statuses)
        try:
            return resp.json()
        except ValueError as e:
            raise NetError(f"Invalid JSON from {service}: {e}") from e

    def close(self) -> None:
        self._session.close()

    # -------- internals --------

    def _request(
        self,
        method: str,
        service: str,
        url: str,
        *,
        headers: Dict[str, str],
        allowed_statuses: Optional[Collection[int]] = None,
    ) -> requests.Response:
        allowed = set(allowed_statuses or ())
        attempt = 1

        while True:
            try:
                resp = self._session.request(method=method, url=url, headers=headers, timeout=self.timeout)
                status = resp.status_code

                if status < 400 or status in allowed:
                    return resp

                if status == 429:
                    if attempt >= self.retry_max_attempts:
                        raise _map_http_error(status)
                    if self.urlm.should_respect_retry_after(service):
                        ra = resp.headers.get("Retry-After")
                        if ra:
                            try:
                                time.sleep(min(int(float(ra)), 30))
                            except (ValueError, TypeError):
                                pass  # HTTP-date form
                    attempt += 1
                    _sleep_with_jitter(self.base_backoff_ms, attempt, self.max_backoff_ms, self.jitter_ms)
                    continue

                if status == 408 or 500 <= status < 600:
                    if attempt >= self.retry_max_attempts:
                        raise _map_http_error(status)
                    log.warning("http_retry", service=service, status=status, attempt=attempt)
                    attempt += 1
                    _sleep_with_jitter(self.base_backoff_ms, attempt, self.max_backoff_ms, self.jitter_ms)
                    continue

                # Non-retryable 4xx
                raise _map_http_error(status)

            except requests.exceptions.Timeout as e:
                if attempt >= self.retry_max_attempts:
                    raise RequestTimeout(str(e)) from e
                attempt += 1
                _sleep_with_jitter(self.base_backoff_ms, attempt, self.max_backoff_ms, self.jitter_ms)

            except requests.exceptions.ConnectionError as e:
                if attempt >= self.retry_max_attempts:
                    if isinstance(getattr(e, "__cause__", None), socket.gaierror):
                        raise DNSFailure(str(e)) from e
                    raise ConnectionFailed(str(e)) from e
                attempt += 1
                _sleep_with_jitter(self.base_backoff_ms, attempt, self.max_backoff_ms, self.jitter_ms)
