"""
Best-effort extraction of "last updated" dates from feeds and HTML pages.

Both extractors work on raw text with regular expressions: they never build
a DOM, and a candidate that fails to parse is dropped without affecting the
others. All returned datetimes are naive and expressed in UTC.
"""

import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable

from feedparser.datetimes import _parse_date as _feedparser_parse_date

from logging_config import get_logger

logger = get_logger(__name__)

# Tags whose text content is a publication or update timestamp
FEED_DATE_TAGS = ("pubDate", "published", "updated", "dc:date", "lastBuildDate")

# Dates on a page older than this year are treated as noise (versions, phone numbers...)
DEFAULT_MIN_PAGE_YEAR = 2020

_DATE_FORMATS = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%a, %d %b %Y %H:%M:%S %Z",
    "%a, %d %b %Y %H:%M:%S %z",
)

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_date(date_str: str | None) -> datetime | None:
    """
    Parse a feed or HTTP header timestamp.

    Tries a handful of common ISO 8601 and RFC 822 layouts first, then
    falls back to feedparser's date parser, which knows many more.

    Returns:
        Naive UTC datetime, or None when the string is not a date
    """
    if not date_str:
        return None
    date_str = date_str.strip()
    if not date_str:
        return None

    for fmt in _DATE_FORMATS:
        try:
            return _to_naive_utc(datetime.strptime(date_str, fmt))
        except ValueError:
            continue

    try:
        parsed = _feedparser_parse_date(date_str)
        if parsed:
            return datetime(*parsed[:6])
    except (TypeError, ValueError, OverflowError) as e:
        logger.debug("Feedparser date parsing failed", extra={"date_str": date_str, "error": str(e)})

    return None


def _feed_tag_pattern(tag: str) -> re.Pattern:
    escaped = re.escape(tag)
    return re.compile(rf"<{escaped}(?:\s[^>]*)?>([^<]+)</{escaped}\s*>", re.IGNORECASE)


FEED_DATE_PATTERNS = tuple(_feed_tag_pattern(tag) for tag in FEED_DATE_TAGS)


def extract_feed_date(text: str) -> datetime | None:
    """
    Return the most recent timestamp found in a feed document.

    Every occurrence of every known date tag is considered, so multi-item
    RSS and Atom feeds yield their newest entry.
    """
    if not text:
        return None

    dates = []
    for pattern in FEED_DATE_PATTERNS:
        for match in pattern.finditer(text):
            date = parse_date(match.group(1))
            if date is not None:
                dates.append(date)

    return max(dates) if dates else None


@dataclass(frozen=True)
class DatePattern:
    """A textual date pattern and how to turn one of its matches into a datetime."""

    name: str
    regex: re.Pattern
    build: Callable[[re.Match], datetime | None]
    contributes: bool = True


def _build_iso(match: re.Match) -> datetime | None:
    try:
        return datetime.strptime(match.group(1), "%Y-%m-%d")
    except ValueError:
        return None


def _build_cjk(match: re.Match) -> datetime | None:
    try:
        return datetime(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def _build_month_name(match: re.Match) -> datetime | None:
    month = MONTH_NAMES.index(match.group(1).capitalize()) + 1
    try:
        return datetime(int(match.group(3)), month, int(match.group(2)))
    except ValueError:
        return None


ISO_DATE = DatePattern("iso", re.compile(r"(\d{4}-\d{2}-\d{2})", re.ASCII), _build_iso)
CJK_DATE = DatePattern("cjk", re.compile(r"(\d{4})年(\d{1,2})月(\d{1,2})日", re.ASCII), _build_cjk)
MONTH_NAME_DATE = DatePattern(
    "month_name",
    re.compile(rf"({'|'.join(MONTH_NAMES)})\s+(\d{{1,2}}),?\s+(\d{{4}})", re.IGNORECASE | re.ASCII),
    _build_month_name,
    contributes=False,
)

PAGE_DATE_PATTERNS = (ISO_DATE, CJK_DATE, MONTH_NAME_DATE)


class PageDateExtractor:
    """
    Mines a raw HTML page for date-like substrings.

    ISO (2024-01-15) and CJK (2024年1月15日) dates are candidates. English
    month-name dates (January 15, 2024) are matched but only counted as
    candidates when ``include_month_names`` is set. Candidates earlier than
    ``min_year`` are discarded.
    """

    def __init__(
        self,
        min_year: int = DEFAULT_MIN_PAGE_YEAR,
        include_month_names: bool = False,
        patterns: tuple[DatePattern, ...] = PAGE_DATE_PATTERNS,
    ):
        self.min_year = min_year
        self.include_month_names = include_month_names
        if include_month_names:
            patterns = tuple(
                replace(p, contributes=True) if p.name == MONTH_NAME_DATE.name else p for p in patterns
            )
        self.patterns = patterns

    def candidates(self, html: str) -> list[datetime]:
        """All plausible dates found on the page, in pattern order."""
        dates = []
        for pattern in self.patterns:
            found = [d for d in map(pattern.build, pattern.regex.finditer(html)) if d is not None]
            if not pattern.contributes:
                if found:
                    logger.debug(
                        "Ignoring page dates from non-contributing pattern",
                        extra={"pattern": pattern.name, "matches": len(found)},
                    )
                continue
            dates.extend(d for d in found if d.year >= self.min_year)
        return dates

    def extract(self, html: str) -> datetime | None:
        if not html:
            return None
        dates = self.candidates(html)
        return max(dates) if dates else None


def extract_page_date(html: str, min_year: int = DEFAULT_MIN_PAGE_YEAR) -> datetime | None:
    """Most recent plausible ISO or CJK date in ``html``, or None."""
    return PageDateExtractor(min_year=min_year).extract(html)
