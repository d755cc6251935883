from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

from bs4 import BeautifulSoup

from steam_models import FeedPagination, ParsedFeedPage, ParsedReviewEntry

# Steam serves the feed in the Accept-Language locale; both phrasings are supported.
# Ukrainian numbers group thousands with spaces and use a decimal comma.
UK_HOURS_NUMBER = r"(?<![\d.,])(\d[\d\s]*(?:[.,]\d+)?)"
EN_HOURS_NUMBER = r"(?<![\d.,])(\d[\d,]*(?:\.\d+)?)"


def _uk_hours(raw: str) -> float:
    return float(re.sub(r"\s", "", raw).replace(",", "."))


def _en_hours(raw: str) -> float:
    return float(raw.replace(",", ""))


HOURS_PATTERNS = (
    (
        re.compile(
            UK_HOURS_NUMBER
            + r"\s+год\.\s+загалом\s+\("
            + UK_HOURS_NUMBER
            + r"\s+год\s+на\s+момент\s+рецензування\)"
        ),
        _uk_hours,
    ),
    (
        re.compile(
            EN_HOURS_NUMBER + r"\s+hrs\s+on\s+record\s+\(" + EN_HOURS_NUMBER + r"\s+hrs\s+at\s+review\s+time\)",
            flags=re.I,
        ),
        _en_hours,
    ),
)
POSTED_PREFIXES = ("Додано", "Posted")
CURRENT_PAGE_RE = re.compile(r"^\s*<\s*(\d+)")
PAGE_PARAM_RE = re.compile(r"[?&]p=(\d+)")
APP_ID_RE = re.compile(r"/app/(\d+)")

UKRAINIAN_MONTH_STEMS = (
    ("січ", "Jan"),
    ("лют", "Feb"),
    ("бер", "Mar"),
    ("квіт", "Apr"),
    ("трав", "May"),
    ("черв", "Jun"),
    ("лип", "Jul"),
    ("серп", "Aug"),
    ("вер", "Sep"),
    ("жовт", "Oct"),
    ("лист", "Nov"),
    ("груд", "Dec"),
)
DATE_FORMATS = (
    "%d %b, %Y",
    "%b %d, %Y",
    "%d %B, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%B %d %Y",
    "%Y-%m-%d",
    "%d.%m.%Y",
)


def _text(node: Any) -> str:
    return node.get_text().strip() if node is not None else ""


def _attr(node: Any, name: str) -> str | None:
    if node is None:
        return None
    value = node.get(name)
    return str(value) if value is not None else None


def parse_hours(hours_text: str) -> tuple[float | None, float | None]:
    for pattern, to_hours in HOURS_PATTERNS:
        m = pattern.search(hours_text or "")
        if m:
            return to_hours(m.group(1)), to_hours(m.group(2))
    return None, None


def strip_posted_prefix(text: str) -> str:
    cleaned = (text or "").strip()
    for prefix in POSTED_PREFIXES:
        if cleaned.startswith(prefix):
            cleaned = cleaned[len(prefix):]
            break
    return cleaned.strip().lstrip(":").strip()


def _translate_months(text: str) -> str:
    def repl(m: re.Match[str]) -> str:
        word = m.group(0).lower()
        for stem, month in UKRAINIAN_MONTH_STEMS:
            if word.startswith(stem):
                return month
        return m.group(0)

    return re.sub(r"[а-яіїєґ']+\.?", repl, text, flags=re.I)


def parse_review_date(value: str | None, now: datetime | None = None) -> float | None:
    """
    Best-effort conversion of a feed display date into a UTC unix timestamp.

    Steam omits the year for the current year ("Posted 5 March"), so year-less
    dates are resolved against `now` and moved back a year when that would put
    them in the future. Returns None when nothing matches.
    """
    if not value:
        return None
    text = strip_posted_prefix(str(value))
    if not text:
        return None

    text = re.split(r"\.\s+(?:Last edited|Востаннє|Оновлено)", text, maxsplit=1)[0]
    text = _translate_months(text)
    text = re.sub(r"\s+(?:о|@|at)\s+\d{1,2}:\d{2}\s*(?:am|pm)?", "", text, flags=re.I)
    text = re.sub(r"\s+р\.?$", "", text)
    text = re.sub(r"\s+", " ", text).strip().rstrip(".,").strip()
    if not text:
        return None

    if re.fullmatch(r"\d{10}(?:\.\d+)?", text):
        return float(text)

    reference = now or datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)
    yearless = not re.search(r"\d{4}", text)

    candidates = [text]
    if yearless:
        candidates.append(f"{text} {reference.year}")
        candidates.append(f"{text}, {reference.year}")

    for candidate in candidates:
        for fmt in DATE_FORMATS:
            try:
                parsed = datetime.strptime(candidate, fmt).replace(tzinfo=timezone.utc)
            except ValueError:
                continue
            if yearless and parsed > reference:
                # A year-less date after `now` was posted last year.
                try:
                    parsed = parsed.replace(year=reference.year - 1)
                except ValueError:
                    return None
            return parsed.timestamp()
    return None


def parse_pagination(soup: BeautifulSoup) -> FeedPagination:
    block = soup.select_one(".workshopBrowsePagingControls")
    if block is None:
        return FeedPagination()

    current_page = 1
    m = CURRENT_PAGE_RE.match(block.get_text().strip())
    if m:
        current_page = int(m.group(1))

    total_pages = 1
    links = block.select("a.pagelink")
    if links:
        m = PAGE_PARAM_RE.search(_attr(links[-1], "href") or "")
        if m:
            total_pages = int(m.group(1))

    return FeedPagination(current_page=current_page, total_pages=total_pages)


def parse_review_box(box: Any) -> ParsedReviewEntry:
    capsule = box.select_one(".game_capsule")
    game_link = _attr(box.select_one(".leftcol a"), "href") or ""
    app_id_m = APP_ID_RE.search(game_link)
    thumb_src = _attr(box.select_one(".thumb img"), "src") or ""
    hours_total, hours_at_review = parse_hours(_text(box.select_one(".hours")))

    return ParsedReviewEntry(
        app_id=app_id_m.group(1) if app_id_m else "",
        app_title=(_attr(capsule, "alt") or "").strip() or None,
        capsule_image_url=_attr(capsule, "src") or "",
        recommendation="positive" if "thumbsUp" in thumb_src else "negative",
        hours_total=hours_total,
        hours_at_review=hours_at_review,
        review_text=_text(box.select_one(".content")),
        review_date=strip_posted_prefix(_text(box.select_one(".posted"))),
        review_url=_attr(box.select_one(".title a"), "href") or "",
    )


def parse_review_page(html: str) -> ParsedFeedPage:
    """Parse one page of a profile's /recommended/ feed into entries plus pagination."""
    if isinstance(html, bytes):
        html = html.decode("utf-8", errors="replace")
    if not isinstance(html, str):
        raise TypeError(f"Expected HTML text, got {type(html).__name__}")

    soup = BeautifulSoup(html, "html.parser")
    entries = [parse_review_box(box) for box in soup.select(".review_box")]
    return ParsedFeedPage(entries=entries, pagination=parse_pagination(soup))
