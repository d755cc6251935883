from __future__ import annotations

import json
import logging
import re
from typing import Any

import requests
from pydantic import BaseModel, Field, ValidationError

from steam_errors import InvalidRequestError, MissingApiKeyError, UpstreamError
from steam_http import RequestStats, create_session, http_get_text
from steam_models import PlayerProfile, ReviewPage
from steam_settings import (
    HTTP_TIMEOUT_SECONDS,
    MAX_STEAM_IDS_PER_REQUEST,
    PLAYER_CACHE_TTL_SECONDS,
    PLAYER_SUMMARIES_URL,
    REVIEW_CACHE_TTL_SECONDS,
    STORE_APPREVIEWS_URL,
    steam_api_key,
)
from steam_ttl_cache import TTLCache

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.INFO)

STEAM_ID_RE = re.compile(r"^\d{17}$")


class ReviewQueryOptions(BaseModel):
    filter: str = Field(default="recent", min_length=1)
    language: str = Field(default="all", min_length=1)
    day_range: int = Field(default=0, ge=0)
    cursor: str | None = Field(default=None)
    review_type: str = Field(default="all", pattern="^(all|positive|negative)$")
    purchase_type: str = Field(default="all", pattern="^(all|steam|non_steam_purchase)$")
    num_per_page: int = Field(default=20, ge=1, le=100)

    def cache_key(self, app_id: str) -> str:
        return (
            f"{app_id}-{self.filter}-{self.language}-{self.day_range}-{self.cursor}-"
            f"{self.review_type}-{self.purchase_type}-{self.num_per_page}"
        )

    def to_query(self) -> dict[str, str]:
        query = {
            "json": "1",
            "filter": self.filter,
            "language": self.language,
            "day_range": str(self.day_range),
            "review_type": self.review_type,
            "purchase_type": self.purchase_type,
            "num_per_page": str(self.num_per_page),
        }
        if self.cursor:
            query["cursor"] = self.cursor
        return query


def coerce_review_options(options: ReviewQueryOptions | dict[str, Any] | None = None, **overrides: Any) -> ReviewQueryOptions:
    if isinstance(options, ReviewQueryOptions):
        data = options.model_dump()
    else:
        data = {k: v for k, v in (options or {}).items() if v is not None}
    data.update(overrides)
    try:
        return ReviewQueryOptions(**data)
    except ValidationError as exc:
        raise InvalidRequestError(f"Incorrect query parameters: {exc}") from None


def chunked(items: list[str], size: int) -> list[list[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def _load_json(text: str, what: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise UpstreamError(f"Steam API returned malformed {what} payload: {exc}") from None


class SteamReviewClient:
    """
    Client for the store review listing API and the player summaries API.

    Both calls are cached per client instance: review pages by the full query,
    player batches by the comma-joined id list.
    """

    def __init__(
        self,
        api_key: str | None = None,
        session: requests.Session | None = None,
        review_cache: TTLCache | None = None,
        player_cache: TTLCache | None = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        stats: RequestStats | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else steam_api_key()
        self.session = session or create_session()
        self.review_cache = review_cache if review_cache is not None else TTLCache(REVIEW_CACHE_TTL_SECONDS)
        self.player_cache = player_cache if player_cache is not None else TTLCache(PLAYER_CACHE_TTL_SECONDS)
        self.timeout = timeout
        self.stats = stats or RequestStats()

    def reset_caches(self) -> None:
        self.review_cache.clear()
        self.player_cache.clear()

    def get_game_reviews(
        self,
        app_id: str | int,
        options: ReviewQueryOptions | dict[str, Any] | None = None,
    ) -> ReviewPage:
        app_id = str(app_id).strip()
        if not app_id:
            raise InvalidRequestError("App ID is required")
        opts = coerce_review_options(options)

        cache_key = opts.cache_key(app_id)
        cached = self.review_cache.get(cache_key)
        if cached is not None:
            return cached

        text = http_get_text(
            self.session,
            STORE_APPREVIEWS_URL.format(appid=app_id),
            timeout=self.timeout,
            params=opts.to_query(),
            stats=self.stats,
        )
        payload = _load_json(text, "review")
        if not isinstance(payload, dict) or str(payload.get("success")) not in {"1", "True"}:
            success = payload.get("success") if isinstance(payload, dict) else None
            LOGGER.error("appreviews returned success=%s for appid=%s", success, app_id)
            raise UpstreamError("Steam API returned an error or incomplete data")

        page = ReviewPage.from_api(payload)
        self.review_cache.set(cache_key, page)
        return page

    def _fetch_player_chunk(self, chunk: list[str]) -> list[PlayerProfile]:
        cache_key = ",".join(chunk)
        cached = self.player_cache.get(cache_key)
        if cached is not None:
            return cached

        text = http_get_text(
            self.session,
            PLAYER_SUMMARIES_URL,
            timeout=self.timeout,
            params={"key": self.api_key, "steamids": cache_key},
            stats=self.stats,
        )
        payload = _load_json(text, "player")
        response = payload.get("response") if isinstance(payload, dict) else None
        players = response.get("players") if isinstance(response, dict) else None
        if not isinstance(players, list):
            raise UpstreamError("Steam API returned invalid player data")

        profiles = [PlayerProfile.from_api(item) for item in players if isinstance(item, dict)]
        self.player_cache.set(cache_key, profiles)
        return profiles

    def get_player_profiles(self, steam_ids: list[str]) -> list[PlayerProfile]:
        if not steam_ids:
            return []

        ids = [str(x).strip() for x in steam_ids]
        invalid = [x for x in ids if not STEAM_ID_RE.match(x)]
        if invalid:
            raise InvalidRequestError(
                f"Invalid Steam ID format ({', '.join(invalid[:3])}). Each ID must be a 17-digit number"
            )
        if not self.api_key:
            raise MissingApiKeyError("STEAM_API_KEY is not configured")

        profiles: list[PlayerProfile] = []
        for chunk in chunked(ids, MAX_STEAM_IDS_PER_REQUEST):
            profiles.extend(self._fetch_player_chunk(chunk))
        return profiles

    def get_enriched_review_page(
        self,
        app_id: str | int,
        options: ReviewQueryOptions | dict[str, Any] | None = None,
    ) -> ReviewPage:
        page = self.get_game_reviews(app_id, options)

        steam_ids = list(dict.fromkeys(r.author.steamid for r in page.reviews if r.author.steamid))
        profiles = self.get_player_profiles(steam_ids)
        by_id = {p.steamid: p for p in profiles}

        return ReviewPage(
            success=page.success,
            query_summary=page.query_summary,
            reviews=[r.with_profile(by_id.get(r.author.steamid)) for r in page.reviews],
            cursor=page.cursor,
        )

    def collect_reviews(
        self,
        app_id: str | int,
        options: ReviewQueryOptions | dict[str, Any] | None = None,
        pages: int = 1,
        fetch_all: bool = False,
        limit: int = 500,
    ) -> ReviewPage:
        """
        Walk the review cursor through enriched pages.

        Stops on an empty cursor, an empty page or a repeated cursor. With
        fetch_all the walk is bounded by `limit` reviews, otherwise by `pages`.
        """
        if pages < 1:
            raise InvalidRequestError("pages must be >= 1")
        if limit < 1:
            raise InvalidRequestError("limit must be >= 1")

        opts = coerce_review_options(options)
        first = self.get_enriched_review_page(app_id, opts)
        reviews = list(first.reviews)
        cursor = first.cursor
        seen_cursors = {opts.cursor or "*"}
        fetched_pages = 1

        while cursor and cursor not in seen_cursors:
            if fetch_all:
                if len(reviews) >= limit:
                    break
            elif fetched_pages >= pages:
                break

            seen_cursors.add(cursor)
            page = self.get_enriched_review_page(app_id, coerce_review_options(opts, cursor=cursor))
            fetched_pages += 1
            if not page.reviews:
                break
            reviews.extend(page.reviews)
            cursor = page.cursor

        if fetch_all:
            reviews = reviews[:limit]

        LOGGER.info("Collected %s reviews for appid=%s over %s page(s)", len(reviews), app_id, fetched_pages)
        return ReviewPage(
            success=first.success,
            query_summary=first.query_summary,
            reviews=reviews,
            cursor=cursor,
        )
