from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlsplit

import requests

from steam_errors import ForbiddenTargetError, InvalidRequestError
from steam_http import RequestStats, create_session, http_get_text, short_url
from steam_settings import (
    ACCEPT_LANGUAGE,
    COMMUNITY_ORIGIN,
    HTTP_TIMEOUT_SECONDS,
    PROXY_CACHE_TTL_SECONDS,
    USER_AGENT,
)
from steam_ttl_cache import TTLCache

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.INFO)


@dataclass(frozen=True)
class ProxiedContent:
    content: str
    served_from_cache: bool


def is_trusted_target(target_url: str, origin: str = COMMUNITY_ORIGIN) -> bool:
    if not target_url.startswith(origin):
        return False
    parts = urlsplit(target_url)
    allowed = urlsplit(origin)
    return parts.scheme == "https" and parts.netloc == allowed.netloc


class ContentGateway:
    """Fetches Steam Community pages for the rest of the app, behind an allow-list and a short cache."""

    def __init__(
        self,
        session: requests.Session | None = None,
        cache: TTLCache | None = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        trusted_origin: str = COMMUNITY_ORIGIN,
        accept_language: str = ACCEPT_LANGUAGE,
        stats: RequestStats | None = None,
    ) -> None:
        self.session = session or create_session()
        self.cache = cache if cache is not None else TTLCache(PROXY_CACHE_TTL_SECONDS)
        self.timeout = timeout
        self.trusted_origin = trusted_origin
        self.stats = stats or RequestStats()
        self._headers = {
            "User-Agent": USER_AGENT,
            "Accept-Language": accept_language,
        }

    def fetch_proxied(self, target_url: str) -> ProxiedContent:
        if not target_url:
            raise InvalidRequestError("URL parameter is required")
        if not is_trusted_target(target_url, self.trusted_origin):
            LOGGER.warning("Rejected proxy target outside %s: %s", self.trusted_origin, short_url(target_url))
            raise ForbiddenTargetError("Only Steam Community URLs are allowed")

        cached = self.cache.get(target_url)
        if cached is not None:
            return ProxiedContent(content=cached, served_from_cache=True)

        content = http_get_text(
            self.session,
            target_url,
            timeout=self.timeout,
            headers=self._headers,
            stats=self.stats,
        )
        self.cache.set(target_url, content)
        return ProxiedContent(content=content, served_from_cache=False)

    def fetch_text(self, target_url: str) -> str:
        return self.fetch_proxied(target_url).content

    def reset_cache(self) -> None:
        self.cache.clear()
