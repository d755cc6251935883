from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Protocol

from steam_errors import InvalidRequestError
from steam_feed_parser import parse_review_page
from steam_http import short_url
from steam_models import ParsedReviewEntry, UserReviewsResult
from steam_settings import DEFAULT_MAX_PAGES_PER_REVIEWER, FEED_PAGE_WORKERS

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.INFO)


class FeedSource(Protocol):
    def fetch_text(self, target_url: str) -> str: ...


def build_recommended_url(profile_url: str, page: int = 1) -> str:
    base = profile_url if profile_url.endswith("/") else f"{profile_url}/"
    url = f"{base}recommended/"
    return f"{url}?p={page}" if page > 1 else url


def _fetch_page_entries(source: FeedSource, profile_url: str, page: int) -> list[ParsedReviewEntry]:
    html = source.fetch_text(build_recommended_url(profile_url, page))
    return parse_review_page(html).entries


def fetch_user_reviews(
    source: FeedSource,
    profile_url: str,
    max_pages: int = DEFAULT_MAX_PAGES_PER_REVIEWER,
    page_workers: int = FEED_PAGE_WORKERS,
) -> UserReviewsResult:
    """
    Load a reviewer's /recommended/ feed.

    Page 1 is fetched first because it carries the page count; pages
    2..min(total_pages, max_pages) are then fetched in parallel and appended in
    page order. Any page failure propagates to the caller.
    """
    if not profile_url:
        raise InvalidRequestError("profile_url must not be empty")
    if max_pages < 1:
        raise InvalidRequestError("max_pages must be >= 1")

    first = parse_review_page(source.fetch_text(build_recommended_url(profile_url)))
    total_pages = first.pagination.total_pages
    pages_to_fetch = min(total_pages, max_pages)

    reviews = list(first.entries)
    if pages_to_fetch > 1:
        LOGGER.info(
            "Fetching feed pages 2..%s of %s for %s",
            pages_to_fetch,
            total_pages,
            short_url(profile_url),
        )
        by_page: dict[int, list[ParsedReviewEntry]] = {}
        workers = max(1, min(page_workers, pages_to_fetch - 1))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(_fetch_page_entries, source, profile_url, page): page
                for page in range(2, pages_to_fetch + 1)
            }
            for future in as_completed(futures):
                by_page[futures[future]] = future.result()
        for page in sorted(by_page):
            reviews.extend(by_page[page])

    return UserReviewsResult(reviews=reviews, total_pages=total_pages)


def fetch_user_reviews_page(
    source: FeedSource,
    profile_url: str,
    page: int = 1,
    max_pages: int = 3,
) -> UserReviewsResult:
    if page < 1:
        raise InvalidRequestError("page must be >= 1")
    if max_pages < 1:
        raise InvalidRequestError("max_pages must be >= 1")

    # The feed can only be walked from page 1, so load enough pages to cover the request.
    effective_max_pages = max(page, max_pages)
    result = fetch_user_reviews(source, profile_url, max_pages=effective_max_pages)
    return UserReviewsResult(reviews=result.reviews, total_pages=result.total_pages, current_page=page)
