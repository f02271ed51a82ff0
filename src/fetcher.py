"""
Bounded HTTP fetcher used by the site activity prober.

Every request has a hard wall-clock deadline. Transport failures and
timeouts all collapse to ``None`` so callers treat "no response" and
"gave up waiting" the same way.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any

import requests
from requests.exceptions import RequestException
from requests.structures import CaseInsensitiveDict

# Default timeout for HTTP requests (seconds)
DEFAULT_REQUEST_TIMEOUT = 10

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (compatible; LinkPulse/1.0; +https://github.com/linkpulse/linkpulse)"
)

# Pages larger than this are truncated rather than read to the end
DEFAULT_MAX_CONTENT_BYTES = 5 * 1024 * 1024

_CHUNK_SIZE = 16 * 1024


class FetchTimeout(Exception):
    """Raised on the worker thread when the body is not read before the deadline."""


@dataclass
class FetchResponse:
    """A fully read HTTP response."""

    url: str
    status_code: int
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    content: bytes = b""
    encoding: str | None = None

    def __post_init__(self):
        if not isinstance(self.headers, CaseInsensitiveDict):
            self.headers = CaseInsensitiveDict(self.headers or {})

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "").lower()

    @property
    def text(self) -> str:
        """Body decoded with the declared charset, falling back to UTF-8."""
        encoding = self.encoding or "utf-8"
        try:
            return self.content.decode(encoding, errors="replace")
        except LookupError:
            return self.content.decode("utf-8", errors="replace")


class _PendingFetch:
    """Hand-off between ``fetch`` and the worker thread running one request."""

    def __init__(self, url: str, deadline: float):
        self.url = url
        self.deadline = deadline
        self.result: FetchResponse | None = None
        self.response: Any = None
        self.abandoned = False
        self._lock = threading.Lock()

    def attach(self, response: Any) -> bool:
        """Record the live response; False if the caller already gave up."""
        with self._lock:
            if self.abandoned:
                return False
            self.response = response
            return True

    def abandon(self) -> None:
        """Give up on the request and close its connection if one is open."""
        with self._lock:
            self.abandoned = True
            response = self.response
        if response is not None:
            response.close()


class BoundedFetcher:
    """
    Performs GET requests with a descriptive User-Agent and a hard deadline.

    Each request runs on a daemon worker thread. ``fetch`` waits for it at
    most ``timeout`` seconds; when the deadline passes the open connection is
    closed and ``None`` is returned, however slowly the server is trickling
    headers or body.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        max_content_bytes: int = DEFAULT_MAX_CONTENT_BYTES,
    ):
        self.timeout = timeout
        self.user_agent = user_agent
        self.max_content_bytes = max_content_bytes
        self.session = requests.Session()
        self._setup_session()

    def _setup_session(self):
        """Setup requests session headers"""
        self.session.headers.update(
            {
                "User-Agent": self.user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            }
        )

    def fetch(self, url: str, timeout: float | None = None) -> FetchResponse | None:
        """
        GET ``url``, following redirects.

        Args:
            url: Absolute URL to request
            timeout: Deadline in seconds for the whole request (default: self.timeout)

        Returns:
            FetchResponse for any HTTP status, or None on timeout or transport failure
        """
        if timeout is None:
            timeout = self.timeout

        pending = _PendingFetch(url, time.monotonic() + timeout)
        worker = threading.Thread(
            target=self._run, args=(pending, timeout), name=f"fetch {url}", daemon=True
        )
        worker.start()
        worker.join(timeout)

        if worker.is_alive():
            pending.abandon()
            return None
        return pending.result

    def _run(self, pending: _PendingFetch, timeout: float) -> None:
        try:
            response = self.session.get(
                pending.url, timeout=(timeout, timeout), allow_redirects=True, stream=True
            )
        except RequestException:
            return

        if not pending.attach(response):
            response.close()
            return

        try:
            body = self._read_body(response, pending)
        except (RequestException, FetchTimeout):
            return
        except (OSError, ValueError, AttributeError):
            # The connection was closed under the reader by abandon()
            if pending.abandoned:
                return
            raise
        finally:
            response.close()

        pending.result = FetchResponse(
            url=response.url or pending.url,
            status_code=response.status_code,
            headers=CaseInsensitiveDict(response.headers),
            content=body,
            encoding=self._declared_encoding(response),
        )

    def _read_body(self, response: Any, pending: _PendingFetch) -> bytes:
        chunks: list[bytes] = []
        received = 0
        for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
            if pending.abandoned or time.monotonic() > pending.deadline:
                raise FetchTimeout(pending.url)
            if not chunk:
                continue
            chunks.append(chunk)
            received += len(chunk)
            if received >= self.max_content_bytes:
                break
        return b"".join(chunks)[: self.max_content_bytes]

    @staticmethod
    def _declared_encoding(response: Any) -> str | None:
        # requests assumes ISO-8859-1 for text/* without a charset; only trust explicit ones
        content_type = response.headers.get("Content-Type", "")
        if "charset" not in content_type.lower():
            return None
        return response.encoding
