"""
Shared fixtures: fake HTTP sessions, fake feed sources and feed HTML builders.

Nothing in the test suite touches the network.
"""

import json

import pytest
import requests

THUMBS_UP = "https://community.cloudflare.steamstatic.com/public/shared/images/userreviews/icon_thumbsUp.png?v=1"
THUMBS_DOWN = "https://community.cloudflare.steamstatic.com/public/shared/images/userreviews/icon_thumbsDown.png?v=1"


class FakeResponse:
    def __init__(self, text="", status_code=200, reason="OK"):
        self.text = text
        self.status_code = status_code
        self.reason = reason


class FakeSession:
    """Duck-typed requests.Session: answers GETs from a handler and records every call."""

    def __init__(self, handler):
        self.handler = handler
        self.calls = []
        self.headers = {}

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": dict(params or {}), "headers": headers, "timeout": timeout})
        result = self.handler(url, params or {})
        if isinstance(result, BaseException):
            raise result
        if isinstance(result, FakeResponse):
            return result
        if isinstance(result, (dict, list)):
            return FakeResponse(json.dumps(result))
        return FakeResponse(result)


class FakeFeedSource:
    """Maps feed URLs to HTML strings or exceptions."""

    def __init__(self, pages):
        self.pages = pages
        self.requested = []

    def fetch_text(self, target_url):
        self.requested.append(target_url)
        result = self.pages.get(target_url)
        if result is None:
            raise KeyError(f"unexpected url {target_url}")
        if isinstance(result, BaseException):
            raise result
        return result


def _review_box(
    app_id="620",
    positive=True,
    hours="12.5 год. загалом (10.1 год на момент рецензування)",
    posted="Додано 5 березня 2023 р.",
    content="Great puzzle game",
    title="Portal 2",
    review_url=None,
):
    thumb = THUMBS_UP if positive else THUMBS_DOWN
    label = "Рекомендовано" if positive else "Не рекомендовано"
    app_link = f'<a href="https://steamcommunity.com/app/{app_id}"><img class="game_capsule" src="https://cdn.example/{app_id}.jpg" alt="{title}"></a>' if app_id is not None else ""
    hours_div = f'<div class="hours">{hours}</div>' if hours is not None else ""
    url = review_url or f"https://steamcommunity.com/id/tester/recommended/{app_id}/"
    return f"""
    <div class="review_box">
      <div class="leftcol">{app_link}</div>
      <div class="rightcol">
        <div class="vote_header">
          <div class="thumb"><a href="{url}"><img src="{thumb}" width="40" height="40"></a></div>
          <div class="title"><a href="{url}">{label}</a></div>
          {hours_div}
        </div>
        <div class="posted">{posted}</div>
        <div class="content">
          {content}
        </div>
      </div>
    </div>
    """


def _feed_html(boxes=(), current_page=None, total_pages=None):
    paging = ""
    if current_page is not None:
        links = ""
        if total_pages is not None:
            links = "".join(
                f'<a class="pagelink" href="https://steamcommunity.com/id/tester/recommended/?p={p}">{p}</a>&nbsp;'
                for p in range(2, total_pages + 1)
            )
        paging = f'<div class="workshopBrowsePagingControls">&lt;&nbsp;{current_page}&nbsp;{links}&gt;</div>'
    return f"<html><body><div id='leftContents'>{paging}{''.join(boxes)}</div></body></html>"


@pytest.fixture
def review_box():
    return _review_box


@pytest.fixture
def feed_html():
    return _feed_html


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def fake_feed_source():
    return FakeFeedSource


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def timeout_error():
    return requests.Timeout("read timed out")


def steam_id(n):
    return f"7656119{n:010d}"


@pytest.fixture
def make_steam_id():
    return steam_id


@pytest.fixture
def review_item():
    def _make(rec_id, author_id, voted_up=True, profileurl=None, **extra):
        author = {
            "steamid": author_id,
            "num_games_owned": 10,
            "num_reviews": 3,
            "playtime_forever": 600,
            "playtime_last_two_weeks": 0,
            "playtime_at_review": 500,
        }
        if profileurl is not None:
            author["profileurl"] = profileurl
        item = {
            "recommendationid": str(rec_id),
            "author": author,
            "language": "english",
            "review": f"review {rec_id}",
            "timestamp_created": 1700000000,
            "timestamp_updated": 1700000100,
            "voted_up": voted_up,
            "votes_up": 2,
            "votes_funny": 0,
            "weighted_vote_score": "0.5",
            "comment_count": 0,
            "steam_purchase": True,
            "received_for_free": False,
            "written_during_early_access": False,
        }
        item.update(extra)
        return item

    return _make
