from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable

from steam_errors import InvalidRequestError
from steam_feed_parser import parse_review_date
from steam_models import (
    AggregationResult,
    ReviewAuthor,
    ReviewerAggregate,
    ReviewerProfile,
    ReviewerReview,
    ReviewRecord,
    UserReviewsResult,
)
from steam_proxy_gateway import ContentGateway
from steam_settings import DEFAULT_MAX_PAGES_PER_REVIEWER, PROFILE_URL_UNAVAILABLE, REVIEWER_WORKERS
from steam_user_reviews import fetch_user_reviews

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.INFO)

PROFILE_URL_NOT_AVAILABLE = "Profile URL not available"

ProgressCB = Callable[[int, int], None]
FeedFetcher = Callable[[str, int], UserReviewsResult]


def unique_positive_reviewers(reviews: Iterable[ReviewRecord]) -> list[ReviewAuthor]:
    authors: dict[str, ReviewAuthor] = {}
    for review in reviews:
        if not review.voted_up:
            continue
        authors.setdefault(review.author.steamid, review.author)
    return list(authors.values())


class _ProgressReporter:
    """Serializes progress callbacks coming from worker threads."""

    def __init__(self, total: int, on_progress: ProgressCB | None) -> None:
        self.total = total
        self.processed = 0
        self._on_progress = on_progress
        self._lock = threading.Lock()

    def tick(self) -> None:
        with self._lock:
            self.processed += 1
            if self._on_progress is None:
                return
            try:
                self._on_progress(self.processed, self.total)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Progress callback failed at %s/%s", self.processed, self.total)


def _merge_positive_entries(
    aggregate: ReviewerAggregate,
    feed: UserReviewsResult,
    exclude_app_id: str | None,
) -> None:
    for entry in feed.reviews:
        if not entry.app_id or not entry.is_positive:
            continue
        if exclude_app_id is not None and entry.app_id == exclude_app_id:
            continue
        aggregate.reviews[entry.app_id] = ReviewerReview(
            app_id=entry.app_id,
            app_title=entry.app_title,
            capsule_image_url=entry.capsule_image_url,
            recommendation=entry.recommendation,
            review_text=entry.review_text,
            review_date=entry.review_date,
            review_timestamp=parse_review_date(entry.review_date),
            review_url=entry.review_url,
            playtime=entry.hours_total,
            playtime_at_review=entry.hours_at_review,
        )


def _process_reviewer(
    aggregate: ReviewerAggregate,
    fetch_feed: FeedFetcher,
    max_pages: int,
    exclude_app_id: str | None,
    progress: _ProgressReporter,
) -> None:
    steam_id = aggregate.profile.steamid
    profile_url = aggregate.profile.profileurl
    try:
        if not profile_url or profile_url == PROFILE_URL_UNAVAILABLE:
            aggregate.error = PROFILE_URL_NOT_AVAILABLE
            return

        feed = fetch_feed(profile_url, max_pages)
        aggregate.total_pages = feed.total_pages
        _merge_positive_entries(aggregate, feed, exclude_app_id)
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("Error parsing reviews for %s: %s", steam_id, exc)
        aggregate.error = str(exc) or type(exc).__name__
    finally:
        progress.tick()


def aggregate_reviewer_data(
    initial_reviews: list[ReviewRecord],
    max_pages_per_reviewer: int = DEFAULT_MAX_PAGES_PER_REVIEWER,
    on_progress: ProgressCB | None = None,
    exclude_app_id: str | int | None = None,
    *,
    gateway: ContentGateway | None = None,
    feed_fetcher: FeedFetcher | None = None,
    max_workers: int = REVIEWER_WORKERS,
) -> AggregationResult:
    """
    Visit the public review feed of every distinct positive reviewer.

    One worker task per reviewer, at most `max_workers` running at once. A
    reviewer whose feed fails gets its `error` set; the run itself only raises
    for invalid arguments. `on_progress(processed, total)` fires once per
    reviewer, failures included.
    """
    if max_pages_per_reviewer < 1:
        raise InvalidRequestError("max_pages_per_reviewer must be >= 1")
    if max_workers < 1:
        raise InvalidRequestError("max_workers must be >= 1")

    result = AggregationResult()
    authors = unique_positive_reviewers(initial_reviews or [])
    if not authors:
        return result

    fetch_feed = feed_fetcher
    if fetch_feed is None:
        source = gateway or ContentGateway()

        def fetch_feed(profile_url: str, max_pages: int) -> UserReviewsResult:
            return fetch_user_reviews(source, profile_url, max_pages=max_pages)

    exclude = str(exclude_app_id) if exclude_app_id is not None else None
    for author in authors:
        result.reviewers[author.steamid] = ReviewerAggregate(profile=ReviewerProfile.from_author(author))

    total = len(authors)
    progress = _ProgressReporter(total, on_progress)
    LOGGER.info("Aggregating %s reviewer(s) with %s worker(s)", total, min(max_workers, total))

    with ThreadPoolExecutor(max_workers=min(max_workers, total)) as executor:
        futures = [
            executor.submit(
                _process_reviewer,
                aggregate,
                fetch_feed,
                max_pages_per_reviewer,
                exclude,
                progress,
            )
            for aggregate in result.reviewers.values()
        ]
        for future in as_completed(futures):
            future.result()

    failed = len(result.failed())
    LOGGER.info("Reviewer aggregation done: ok=%s failed=%s", total - failed, failed)
    return result


def rank_shared_titles(result: AggregationResult, min_reviewers: int = 1) -> list[dict[str, object]]:
    """Cross-reference the aggregate: which apps are recommended by how many reviewers."""
    counts: dict[str, int] = {}
    titles: dict[str, str] = {}
    for aggregate in result.reviewers.values():
        for app_id, review in aggregate.reviews.items():
            counts[app_id] = counts.get(app_id, 0) + 1
            if review.app_title and app_id not in titles:
                titles[app_id] = review.app_title

    rows = [
        {"app_id": app_id, "app_title": titles.get(app_id), "reviewers": n}
        for app_id, n in counts.items()
        if n >= min_reviewers
    ]
    rows.sort(key=lambda row: (-int(row["reviewers"]), str(row["app_id"])))
    return rows
