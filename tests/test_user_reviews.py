import threading

import pytest

from steam_errors import InvalidRequestError, UpstreamError
from steam_user_reviews import build_recommended_url, fetch_user_reviews, fetch_user_reviews_page

PROFILE = "https://steamcommunity.com/id/tester/"
FEED = PROFILE + "recommended/"


def _page_url(page):
    return FEED if page == 1 else f"{FEED}?p={page}"


def _feed_pages(feed_html, review_box, total_pages, per_page=2):
    pages = {}
    for page in range(1, total_pages + 1):
        boxes = [review_box(str(page * 100 + i)) for i in range(per_page)]
        pages[_page_url(page)] = feed_html(boxes, current_page=page, total_pages=total_pages)
    return pages


@pytest.mark.parametrize(
    "profile_url, page, expected",
    [
        (PROFILE, 1, FEED),
        ("https://steamcommunity.com/id/tester", 1, FEED),
        (PROFILE, 3, FEED + "?p=3"),
    ],
)
def test_build_recommended_url(profile_url, page, expected):
    assert build_recommended_url(profile_url, page) == expected


def test_single_page_feed(fake_feed_source, feed_html, review_box):
    source = fake_feed_source({FEED: feed_html([review_box("620")])})

    result = fetch_user_reviews(source, PROFILE)

    assert result.total_pages == 1
    assert [e.app_id for e in result.reviews] == ["620"]
    assert source.requested == [FEED]


def test_remaining_pages_are_appended_in_page_order(fake_feed_source, feed_html, review_box):
    source = fake_feed_source(_feed_pages(feed_html, review_box, total_pages=4))

    result = fetch_user_reviews(source, PROFILE, max_pages=10, page_workers=3)

    assert result.total_pages == 4
    assert [e.app_id for e in result.reviews] == ["100", "101", "200", "201", "300", "301", "400", "401"]
    assert source.requested[0] == FEED
    assert sorted(source.requested) == sorted(_page_url(p) for p in range(1, 5))


def test_max_pages_bounds_the_walk(fake_feed_source, feed_html, review_box):
    source = fake_feed_source(_feed_pages(feed_html, review_box, total_pages=6))

    result = fetch_user_reviews(source, PROFILE, max_pages=2)

    assert result.total_pages == 6
    assert len(source.requested) == 2
    assert [e.app_id for e in result.reviews] == ["100", "101", "200", "201"]


def test_failing_page_propagates(fake_feed_source, feed_html, review_box):
    pages = _feed_pages(feed_html, review_box, total_pages=3)
    pages[_page_url(3)] = UpstreamError("Steam responded with 500: error", status=500)
    source = fake_feed_source(pages)

    with pytest.raises(UpstreamError):
        fetch_user_reviews(source, PROFILE)


def test_invalid_arguments(fake_feed_source):
    source = fake_feed_source({})

    with pytest.raises(InvalidRequestError):
        fetch_user_reviews(source, "")
    with pytest.raises(InvalidRequestError):
        fetch_user_reviews(source, PROFILE, max_pages=0)
    assert source.requested == []


def test_fetch_page_covers_requested_page(fake_feed_source, feed_html, review_box):
    source = fake_feed_source(_feed_pages(feed_html, review_box, total_pages=5))

    result = fetch_user_reviews_page(source, PROFILE, page=4, max_pages=2)

    assert result.current_page == 4
    assert result.total_pages == 5
    assert len(source.requested) == 4


def test_fetch_page_rejects_page_zero(fake_feed_source):
    with pytest.raises(InvalidRequestError):
        fetch_user_reviews_page(fake_feed_source({}), PROFILE, page=0)


class GatedFeedSource:
    """Holds pages 2..N at a barrier and records the order of fetch events."""

    def __init__(self, pages, parties):
        self.pages = pages
        self.barrier = threading.Barrier(parties, timeout=5)
        self.events = []
        self.in_flight = 0
        self.peak = 0
        self._lock = threading.Lock()

    def fetch_text(self, target_url):
        with self._lock:
            self.events.append(("start", target_url))
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
        try:
            if target_url != FEED:
                self.barrier.wait()
            return self.pages[target_url]
        finally:
            with self._lock:
                self.in_flight -= 1
                self.events.append(("end", target_url))


def test_remaining_pages_are_fetched_concurrently_after_first(feed_html, review_box):
    source = GatedFeedSource(_feed_pages(feed_html, review_box, total_pages=4), parties=3)

    result = fetch_user_reviews(source, PROFILE, max_pages=10, page_workers=3)

    assert source.events[:2] == [("start", FEED), ("end", FEED)]
    assert source.peak == 3
    assert len(result.reviews) == 8


def test_page_workers_caps_concurrent_page_fetches(feed_html, review_box):
    source = GatedFeedSource(_feed_pages(feed_html, review_box, total_pages=5), parties=2)

    result = fetch_user_reviews(source, PROFILE, max_pages=10, page_workers=2)

    assert source.peak == 2
    assert len(result.reviews) == 10
