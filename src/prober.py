"""
Site activity prober.

Decides whether a site is reachable and, if so, when it was last updated.
Evidence is gathered from the most reliable source down: a syndication
feed, then the Last-Modified header of the home page, then dates scraped
from the home page markup. The first source that yields a date wins and
no further requests are made.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from date_extractor import PageDateExtractor, extract_feed_date, parse_date
from fetcher import BoundedFetcher, FetchResponse, DEFAULT_REQUEST_TIMEOUT
from logging_config import get_logger

logger = get_logger(__name__)

# Conventional feed locations, tried in order
DEFAULT_FEED_PATHS = (
    "/rss.xml",
    "/feed.xml",
    "/atom.xml",
    "/feed",
    "/rss",
    "/index.xml",
    "/feed/atom",
    "/feed/rss",
)

FEED_CONTENT_TYPE_MARKERS = ("xml", "rss", "atom")


@dataclass
class ActivityResult:
    """Outcome of probing one site"""

    reachable: bool
    last_active: datetime | None = None
    source: str | None = None
    detail: str | None = None

    @property
    def dated(self) -> bool:
        return self.last_active is not None


@dataclass(frozen=True)
class Evidence:
    date: datetime
    detail: str | None = None


# A strategy looks at the site's base URL and home page response
Strategy = Callable[[str, FetchResponse], Evidence | None]


def normalize_url(url: str) -> str:
    """Strip a single trailing slash so feed paths can be appended."""
    return url[:-1] if url.endswith("/") else url


def is_feed_response(response: FetchResponse | None) -> bool:
    if response is None or not response.ok:
        return False
    content_type = response.content_type
    return any(marker in content_type for marker in FEED_CONTENT_TYPE_MARKERS)


class SiteActivityProber:
    """
    Runs the reachability check and the ordered evidence strategies for a site.

    ``strategies`` is a list of ``(name, callable)`` pairs; new heuristics
    can be appended without touching :meth:`probe`.
    """

    def __init__(
        self,
        fetcher: BoundedFetcher,
        feed_paths: tuple[str, ...] | list[str] = DEFAULT_FEED_PATHS,
        page_extractor: PageDateExtractor | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self.fetcher = fetcher
        self.feed_paths = list(feed_paths)
        self.page_extractor = page_extractor or PageDateExtractor()
        self.timeout = timeout
        self.strategies: list[tuple[str, Strategy]] = [
            ("feed", self.date_from_feeds),
            ("header", self.date_from_last_modified),
            ("page", self.date_from_page),
        ]

    def probe(self, url: str) -> ActivityResult:
        base_url = normalize_url(url)

        main_response = self.fetcher.fetch(base_url, self.timeout)
        if main_response is None:
            logger.warning("Site unreachable (timeout or connection failure)", extra={"url": base_url})
            return ActivityResult(reachable=False)

        if not main_response.ok:
            logger.warning(
                "Site returned error status",
                extra={"url": base_url, "status_code": main_response.status_code},
            )
            return ActivityResult(reachable=False)

        for name, strategy in self.strategies:
            evidence = strategy(base_url, main_response)
            if evidence is not None:
                logger.info(
                    "Last activity found",
                    extra={
                        "url": base_url,
                        "source": name,
                        "detail": evidence.detail,
                        "last_active": evidence.date.date(),
                    },
                )
                return ActivityResult(
                    reachable=True, last_active=evidence.date, source=name, detail=evidence.detail
                )

        logger.info("Site reachable but no update date found", extra={"url": base_url})
        return ActivityResult(reachable=True)

    def date_from_feeds(self, base_url: str, main_response: FetchResponse) -> Evidence | None:
        for feed_path in self.feed_paths:
            response = self.fetcher.fetch(base_url + feed_path, self.timeout)
            if not is_feed_response(response):
                continue
            date = extract_feed_date(response.text)
            if date is not None:
                return Evidence(date, feed_path)
            logger.debug("Feed has no usable dates", extra={"url": base_url, "feed_path": feed_path})
        return None

    def date_from_last_modified(self, base_url: str, main_response: FetchResponse) -> Evidence | None:
        last_modified = main_response.headers.get("Last-Modified")
        date = parse_date(last_modified)
        if date is None:
            return None
        return Evidence(date, "Last-Modified")

    def date_from_page(self, base_url: str, main_response: FetchResponse) -> Evidence | None:
        date = self.page_extractor.extract(main_response.text)
        if date is None:
            return None
        return Evidence(date)
