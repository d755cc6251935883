from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any

UNKNOWN_PERSONANAME = "Unknown"
UNKNOWN_PROFILE_URL = "#"


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return default


def _as_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return default
    return default


def _opt_str(value: Any) -> str | None:
    return str(value) if value is not None else None


def _opt_int(value: Any) -> int | None:
    return _as_int(value) if value is not None else None


@dataclass(frozen=True)
class ReviewAuthor:
    steamid: str
    num_games_owned: int = 0
    num_reviews: int = 0
    playtime_forever: int = 0
    playtime_last_two_weeks: int = 0
    playtime_at_review: int = 0
    personaname: str | None = None
    profileurl: str | None = None
    avatar: str | None = None
    avatarmedium: str | None = None
    avatarfull: str | None = None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> ReviewAuthor:
        item = _as_dict(item)
        return cls(
            steamid=str(item.get("steamid", "")),
            num_games_owned=_as_int(item.get("num_games_owned")),
            num_reviews=_as_int(item.get("num_reviews")),
            playtime_forever=_as_int(item.get("playtime_forever")),
            playtime_last_two_weeks=_as_int(item.get("playtime_last_two_weeks")),
            playtime_at_review=_as_int(item.get("playtime_at_review")),
            personaname=_opt_str(item.get("personaname")),
            profileurl=_opt_str(item.get("profileurl")),
            avatar=_opt_str(item.get("avatar")),
            avatarmedium=_opt_str(item.get("avatarmedium")),
            avatarfull=_opt_str(item.get("avatarfull")),
        )


@dataclass(frozen=True)
class ReviewRecord:
    recommendationid: str
    author: ReviewAuthor
    review: str = ""
    language: str = ""
    timestamp_created: int = 0
    timestamp_updated: int = 0
    voted_up: bool = False
    votes_up: int = 0
    votes_funny: int = 0
    weighted_vote_score: float = 0.0
    comment_count: int = 0
    steam_purchase: bool = False
    received_for_free: bool = False
    written_during_early_access: bool = False

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> ReviewRecord:
        item = _as_dict(item)
        return cls(
            recommendationid=str(item.get("recommendationid", "")),
            author=ReviewAuthor.from_api(item.get("author")),
            review=str(item.get("review", "")),
            language=str(item.get("language", "")),
            timestamp_created=_as_int(item.get("timestamp_created")),
            timestamp_updated=_as_int(item.get("timestamp_updated")),
            voted_up=bool(item.get("voted_up", False)),
            votes_up=_as_int(item.get("votes_up")),
            votes_funny=_as_int(item.get("votes_funny")),
            weighted_vote_score=_as_float(item.get("weighted_vote_score")),
            comment_count=_as_int(item.get("comment_count")),
            steam_purchase=bool(item.get("steam_purchase", False)),
            received_for_free=bool(item.get("received_for_free", False)),
            written_during_early_access=bool(item.get("written_during_early_access", False)),
        )

    def with_profile(self, profile: PlayerProfile | None) -> ReviewRecord:
        """Return a copy whose author carries the profile's display fields, or placeholders."""
        if profile is None:
            author = replace(
                self.author,
                personaname=UNKNOWN_PERSONANAME,
                profileurl=UNKNOWN_PROFILE_URL,
                avatar="",
                avatarmedium="",
                avatarfull="",
            )
        else:
            author = replace(
                self.author,
                personaname=profile.personaname,
                profileurl=profile.profileurl,
                avatar=profile.avatar,
                avatarmedium=profile.avatarmedium,
                avatarfull=profile.avatarfull,
            )
        return replace(self, author=author)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class QuerySummary:
    num_reviews: int = 0
    review_score: int = 0
    review_score_desc: str = ""
    total_positive: int = 0
    total_negative: int = 0
    total_reviews: int = 0

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> QuerySummary:
        item = _as_dict(item)
        return cls(
            num_reviews=_as_int(item.get("num_reviews")),
            review_score=_as_int(item.get("review_score")),
            review_score_desc=str(item.get("review_score_desc", "")),
            total_positive=_as_int(item.get("total_positive")),
            total_negative=_as_int(item.get("total_negative")),
            total_reviews=_as_int(item.get("total_reviews")),
        )

    @property
    def positive_percent(self) -> int:
        total = self.total_positive + self.total_negative
        return 0 if total == 0 else round((self.total_positive / total) * 100)


@dataclass(frozen=True)
class ReviewPage:
    success: int
    query_summary: QuerySummary
    reviews: list[ReviewRecord]
    cursor: str | None = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> ReviewPage:
        payload = _as_dict(payload)
        raw_reviews = payload.get("reviews")
        reviews = [
            ReviewRecord.from_api(item)
            for item in (raw_reviews if isinstance(raw_reviews, list) else [])
            if isinstance(item, dict)
        ]
        cursor = payload.get("cursor")
        return cls(
            success=_as_int(payload.get("success")),
            query_summary=QuerySummary.from_api(payload.get("query_summary")),
            reviews=reviews,
            cursor=cursor if isinstance(cursor, str) and cursor.strip() else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "query_summary": asdict(self.query_summary),
            "reviews": [r.to_dict() for r in self.reviews],
            "cursor": self.cursor,
        }


@dataclass(frozen=True)
class PlayerProfile:
    steamid: str
    communityvisibilitystate: int = 0
    profilestate: int = 0
    personaname: str = ""
    profileurl: str = ""
    avatar: str = ""
    avatarmedium: str = ""
    avatarfull: str = ""
    avatarhash: str = ""
    lastlogoff: int = 0
    personastate: int = 0
    realname: str | None = None
    primaryclanid: str | None = None
    timecreated: int | None = None
    personastateflags: int | None = None
    loccountrycode: str | None = None
    locstatecode: str | None = None
    loccityid: int | None = None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> PlayerProfile:
        item = _as_dict(item)
        return cls(
            steamid=str(item.get("steamid", "")),
            communityvisibilitystate=_as_int(item.get("communityvisibilitystate")),
            profilestate=_as_int(item.get("profilestate")),
            personaname=str(item.get("personaname", "")),
            profileurl=str(item.get("profileurl", "")),
            avatar=str(item.get("avatar", "")),
            avatarmedium=str(item.get("avatarmedium", "")),
            avatarfull=str(item.get("avatarfull", "")),
            avatarhash=str(item.get("avatarhash", "")),
            lastlogoff=_as_int(item.get("lastlogoff")),
            personastate=_as_int(item.get("personastate")),
            realname=_opt_str(item.get("realname")),
            primaryclanid=_opt_str(item.get("primaryclanid")),
            timecreated=_opt_int(item.get("timecreated")),
            personastateflags=_opt_int(item.get("personastateflags")),
            loccountrycode=_opt_str(item.get("loccountrycode")),
            locstatecode=_opt_str(item.get("locstatecode")),
            loccityid=_opt_int(item.get("loccityid")),
        )


@dataclass(frozen=True)
class FeedPagination:
    current_page: int = 1
    total_pages: int = 1


@dataclass(frozen=True)
class ParsedReviewEntry:
    app_id: str
    recommendation: str
    review_text: str
    review_date: str
    review_url: str
    capsule_image_url: str = ""
    app_title: str | None = None
    hours_total: float | None = None
    hours_at_review: float | None = None

    @property
    def is_positive(self) -> bool:
        return self.recommendation == "positive"


@dataclass(frozen=True)
class ParsedFeedPage:
    entries: list[ParsedReviewEntry]
    pagination: FeedPagination


@dataclass(frozen=True)
class UserReviewsResult:
    reviews: list[ParsedReviewEntry]
    total_pages: int
    current_page: int = 1


@dataclass(frozen=True)
class ReviewerProfile:
    steamid: str
    personaname: str | None = None
    profileurl: str | None = None
    avatar: str | None = None
    num_games_owned: int = 0
    num_reviews: int = 0

    @classmethod
    def from_author(cls, author: ReviewAuthor) -> ReviewerProfile:
        return cls(
            steamid=author.steamid,
            personaname=author.personaname,
            profileurl=author.profileurl,
            avatar=author.avatar,
            num_games_owned=author.num_games_owned,
            num_reviews=author.num_reviews,
        )


@dataclass(frozen=True)
class ReviewerReview:
    app_id: str
    recommendation: str
    review_text: str
    review_date: str
    review_url: str
    capsule_image_url: str = ""
    app_title: str | None = None
    review_timestamp: float | None = None
    playtime: float | None = None
    playtime_at_review: float | None = None


@dataclass
class ReviewerAggregate:
    profile: ReviewerProfile
    reviews: dict[str, ReviewerReview] = field(default_factory=dict)
    total_pages: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "profile": asdict(self.profile),
            "reviews": {app_id: asdict(r) for app_id, r in self.reviews.items()},
            "total_pages": self.total_pages,
            "error": self.error,
        }


@dataclass
class AggregationResult:
    reviewers: dict[str, ReviewerAggregate] = field(default_factory=dict)

    def failed(self) -> dict[str, ReviewerAggregate]:
        return {sid: agg for sid, agg in self.reviewers.items() if agg.error}

    def to_dict(self) -> dict[str, Any]:
        return {"reviewers": {sid: agg.to_dict() for sid, agg in self.reviewers.items()}}
