from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

import requests
from requests.adapters import HTTPAdapter

from steam_errors import GatewayTimeoutError, UpstreamError
from steam_settings import FEED_PAGE_WORKERS, REVIEWER_WORKERS, USER_AGENT

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.INFO)


@dataclass
class RequestStats:
    started_at: float = field(default_factory=time.time)
    requests_total: int = 0
    requests_ok: int = 0
    requests_failed: int = 0
    failures_by_code: dict[str, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record_request(self) -> None:
        with self._lock:
            self.requests_total += 1

    def record_success(self) -> None:
        with self._lock:
            self.requests_ok += 1

    def record_failure(self, key: str) -> None:
        with self._lock:
            self.requests_failed += 1
            self.failures_by_code[key] = self.failures_by_code.get(key, 0) + 1

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            elapsed = max(0.001, time.time() - self.started_at)
            return {
                "started_at": self.started_at,
                "elapsed_seconds": round(elapsed, 3),
                "requests_total": self.requests_total,
                "requests_ok": self.requests_ok,
                "requests_failed": self.requests_failed,
                "failures_by_code": dict(self.failures_by_code),
                "failure_rate": round((self.requests_failed / self.requests_total), 6)
                if self.requests_total
                else 0.0,
            }


def short_url(url: str) -> str:
    try:
        parts = urlsplit(url)
        path = parts.path or "/"
        if len(path) > 80:
            path = path[:77] + "..."
        base = f"{parts.scheme}://{parts.netloc}{path}"
        return f"{base}?..." if parts.query else base
    except Exception:
        return url[:120]


def create_session(pool_maxsize: int = REVIEWER_WORKERS * FEED_PAGE_WORKERS) -> requests.Session:
    # Every reviewer worker may run a full page pool against the same host.
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=4, pool_maxsize=max(10, pool_maxsize))
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update({"User-Agent": USER_AGENT})
    return session


def http_get_text(
    session: requests.Session,
    url: str,
    timeout: float,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    stats: RequestStats | None = None,
) -> str:
    """
    Single GET with a hard timeout and no retries.

    Raises GatewayTimeoutError when the upstream does not answer in time and
    UpstreamError for transport failures and non-2xx responses.
    """
    if stats is not None:
        stats.record_request()

    try:
        resp = session.get(url, params=params, headers=headers, timeout=timeout)
    except requests.Timeout as exc:
        if stats is not None:
            stats.record_failure("timeout")
        LOGGER.error("HTTP timeout (timeout=%ss, url=%s): %s", timeout, short_url(url), exc)
        raise GatewayTimeoutError(f"Request to {short_url(url)} timed out after {timeout}s") from exc
    except requests.RequestException as exc:
        if stats is not None:
            stats.record_failure("network")
        LOGGER.error("HTTP failed (network=%s, url=%s)", type(exc).__name__, short_url(url))
        raise UpstreamError(f"Failed to fetch {short_url(url)}: {exc}") from exc

    if not 200 <= resp.status_code < 300:
        if stats is not None:
            stats.record_failure(str(resp.status_code))
        LOGGER.error("HTTP failed (code=%s, url=%s)", resp.status_code, short_url(url))
        raise UpstreamError(
            f"Steam responded with {resp.status_code}: {resp.reason or 'error'}",
            status=resp.status_code,
        )

    if stats is not None:
        stats.record_success()
    return resp.text
