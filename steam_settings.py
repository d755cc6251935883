from __future__ import annotations

import os

STORE_APPREVIEWS_URL = "https://store.steampowered.com/appreviews/{appid}"
PLAYER_SUMMARIES_URL = "https://api.steampowered.com/ISteamUser/GetPlayerSummaries/v0002/"
COMMUNITY_ORIGIN = "https://steamcommunity.com/"

MAX_STEAM_IDS_PER_REQUEST = 100
PROFILE_URL_UNAVAILABLE = "#"


def _env_str(name: str, default: str) -> str:
    return (os.getenv(name, default) or default).strip() or default


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        return default
    return value if value >= minimum else default


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip().isdigit():
        return default
    value = int(raw.strip())
    return value if value >= minimum else default


def steam_api_key() -> str | None:
    key = (os.getenv("STEAM_API_KEY") or "").strip()
    return key or None


USER_AGENT = _env_str("STEAM_USER_AGENT", "Steam Review Explorer")
ACCEPT_LANGUAGE = _env_str("STEAM_ACCEPT_LANGUAGE", "uk,uk-UA;q=0.9,en;q=0.8")

HTTP_TIMEOUT_SECONDS = _env_float("STEAM_HTTP_TIMEOUT_SECONDS", 5.0, minimum=0.1)
PROXY_CACHE_TTL_SECONDS = _env_float("STEAM_PROXY_CACHE_TTL_SECONDS", 60.0)
REVIEW_CACHE_TTL_SECONDS = _env_float("STEAM_REVIEW_CACHE_TTL_SECONDS", 5 * 60.0)
PLAYER_CACHE_TTL_SECONDS = _env_float("STEAM_PLAYER_CACHE_TTL_SECONDS", 10 * 60.0)

REVIEWER_WORKERS = _env_int("STEAM_REVIEWER_WORKERS", 5)
FEED_PAGE_WORKERS = _env_int("STEAM_FEED_PAGE_WORKERS", 4)
DEFAULT_MAX_PAGES_PER_REVIEWER = 10
