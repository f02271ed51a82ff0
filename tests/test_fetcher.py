"""
Tests for the bounded fetcher.
"""

import socket
import sys
import threading
import time
from itertools import chain, repeat
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from requests.exceptions import ChunkedEncodingError, ConnectionError, SSLError, Timeout

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fetcher import BoundedFetcher, FetchResponse, DEFAULT_USER_AGENT


def mock_http_response(body=b"<html></html>", status_code=200, headers=None, url="https://example.com"):
    response = Mock()
    response.status_code = status_code
    response.url = url
    response.headers = headers if headers is not None else {"Content-Type": "text/html; charset=utf-8"}
    response.encoding = "utf-8"
    response.iter_content = Mock(return_value=iter([body]))
    response.close = Mock()
    return response


# =============================================================================
# FetchResponse Tests
# =============================================================================


class TestFetchResponse:
    """Tests for FetchResponse."""

    def test_ok_only_for_2xx(self):
        assert FetchResponse(url="u", status_code=200).ok is True
        assert FetchResponse(url="u", status_code=204).ok is True
        assert FetchResponse(url="u", status_code=304).ok is False
        assert FetchResponse(url="u", status_code=404).ok is False
        assert FetchResponse(url="u", status_code=500).ok is False

    def test_headers_are_case_insensitive(self):
        response = FetchResponse(url="u", status_code=200, headers={"last-modified": "x"})
        assert response.headers.get("Last-Modified") == "x"

    def test_content_type_lowercased(self):
        response = FetchResponse(url="u", status_code=200, headers={"Content-Type": "Application/RSS+XML"})
        assert response.content_type == "application/rss+xml"

    def test_text_defaults_to_utf8(self):
        response = FetchResponse(url="u", status_code=200, content="2024年3月1日".encode("utf-8"))
        assert response.text == "2024年3月1日"

    def test_text_uses_declared_encoding(self):
        response = FetchResponse(
            url="u", status_code=200, content="2024年3月1日".encode("gbk"), encoding="gbk"
        )
        assert response.text == "2024年3月1日"

    def test_text_unknown_encoding_falls_back(self):
        response = FetchResponse(url="u", status_code=200, content=b"plain", encoding="no-such-codec")
        assert response.text == "plain"


# =============================================================================
# BoundedFetcher Tests
# =============================================================================


class TestBoundedFetcher:
    """Tests for BoundedFetcher."""

    def test_session_sends_descriptive_user_agent(self):
        fetcher = BoundedFetcher()
        assert fetcher.session.headers["User-Agent"] == DEFAULT_USER_AGENT

    def test_custom_user_agent(self):
        fetcher = BoundedFetcher(user_agent="TestAgent/1.0")
        assert fetcher.session.headers["User-Agent"] == "TestAgent/1.0"

    def test_fetch_success(self):
        fetcher = BoundedFetcher(timeout=10)
        http_response = mock_http_response(
            body=b"<html>2024-03-01</html>",
            headers={"Content-Type": "text/html; charset=utf-8", "Last-Modified": "Fri, 01 Mar 2024 00:00:00 GMT"},
            url="https://example.com/",
        )

        with patch.object(fetcher.session, "get", return_value=http_response) as mock_get:
            result = fetcher.fetch("https://example.com")

        assert result is not None
        assert result.ok
        assert result.url == "https://example.com/"
        assert result.text == "<html>2024-03-01</html>"
        assert result.headers["last-modified"] == "Fri, 01 Mar 2024 00:00:00 GMT"
        http_response.close.assert_called_once()

        kwargs = mock_get.call_args.kwargs
        assert kwargs["allow_redirects"] is True
        assert kwargs["stream"] is True
        assert kwargs["timeout"] == (10, 10)

    def test_fetch_explicit_timeout_overrides_default(self):
        fetcher = BoundedFetcher(timeout=10)
        with patch.object(fetcher.session, "get", return_value=mock_http_response()) as mock_get:
            fetcher.fetch("https://example.com", timeout=3)
        assert mock_get.call_args.kwargs["timeout"] == (3, 3)

    def test_error_status_is_returned_not_raised(self):
        fetcher = BoundedFetcher()
        with patch.object(fetcher.session, "get", return_value=mock_http_response(status_code=404)):
            result = fetcher.fetch("https://example.com/missing")

        assert result is not None
        assert result.status_code == 404
        assert result.ok is False

    @pytest.mark.parametrize(
        "error",
        [ConnectionError("refused"), Timeout("slow"), SSLError("bad cert")],
    )
    def test_transport_failures_return_none(self, error):
        fetcher = BoundedFetcher()
        with patch.object(fetcher.session, "get", side_effect=error):
            assert fetcher.fetch("https://down.example.com") is None

    def test_broken_body_returns_none(self):
        fetcher = BoundedFetcher()
        http_response = mock_http_response()
        http_response.iter_content = Mock(side_effect=ChunkedEncodingError("truncated"))

        with patch.object(fetcher.session, "get", return_value=http_response):
            assert fetcher.fetch("https://example.com") is None
        http_response.close.assert_called_once()

    def test_deadline_exceeded_while_reading_returns_none(self):
        fetcher = BoundedFetcher(timeout=10)
        http_response = mock_http_response(body=b"slow body")

        with patch.object(fetcher.session, "get", return_value=http_response), patch(
            "fetcher.time.monotonic", side_effect=chain([0.0], repeat(100.0))
        ):
            result = fetcher.fetch("https://slow.example.com")

        assert result is None
        http_response.close.assert_called_once()

    def test_body_truncated_to_max_content_bytes(self):
        fetcher = BoundedFetcher(max_content_bytes=4)
        with patch.object(fetcher.session, "get", return_value=mock_http_response(body=b"abcdefgh")):
            result = fetcher.fetch("https://example.com")

        assert result.content == b"abcd"

    def test_charset_only_trusted_when_declared(self):
        fetcher = BoundedFetcher()
        http_response = mock_http_response(headers={"Content-Type": "text/html"})
        http_response.encoding = "ISO-8859-1"

        with patch.object(fetcher.session, "get", return_value=http_response):
            result = fetcher.fetch("https://example.com")

        assert result.encoding is None


# =============================================================================
# Deadline Tests (real sockets)
# =============================================================================


@pytest.fixture
def slow_server():
    """
    Start a local HTTP server that writes ``head`` and ``body`` one byte at a time.

    Returns a callable taking (head, body, delay) and giving back the base URL.
    """
    listeners = []
    stop = threading.Event()

    def _trickle(conn, payload, delay):
        for i in range(len(payload)):
            if stop.is_set():
                return
            conn.sendall(payload[i : i + 1])
            time.sleep(delay)

    def _serve(listener, head, body, delay):
        try:
            conn, _ = listener.accept()
        except OSError:
            return
        with conn:
            try:
                conn.recv(65536)
                _trickle(conn, head, delay["head"])
                _trickle(conn, body, delay["body"])
            except OSError:
                pass

    def _start(head, body=b"", head_delay=0.0, body_delay=0.0):
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.bind(("127.0.0.1", 0))
        listener.listen(1)
        listeners.append(listener)
        threading.Thread(
            target=_serve,
            args=(listener, head, body, {"head": head_delay, "body": body_delay}),
            daemon=True,
        ).start()
        return f"http://127.0.0.1:{listener.getsockname()[1]}/"

    yield _start

    stop.set()
    for listener in listeners:
        listener.close()


def http_head(body_length):
    return (
        "HTTP/1.1 200 OK\r\n"
        "Content-Type: text/html; charset=utf-8\r\n"
        f"Content-Length: {body_length}\r\n"
        "Connection: close\r\n"
        "\r\n"
    ).encode("ascii")


class TestFetchDeadline:
    """The timeout bounds the whole request, not each socket read."""

    def test_fast_server_is_read(self, slow_server):
        body = b"<p>2024-03-01</p>"
        url = slow_server(http_head(len(body)) + body)

        result = BoundedFetcher(timeout=5).fetch(url)

        assert result is not None
        assert result.status_code == 200
        assert result.content == body

    def test_headers_trickled_past_deadline_returns_none(self, slow_server):
        url = slow_server(http_head(0), head_delay=0.05)

        started = time.monotonic()
        result = BoundedFetcher(timeout=0.5).fetch(url)
        elapsed = time.monotonic() - started

        assert result is None
        assert elapsed < 1.5

    def test_body_trickled_past_deadline_returns_none(self, slow_server):
        body = b"x" * 30
        url = slow_server(http_head(len(body)), body, body_delay=0.1)

        started = time.monotonic()
        result = BoundedFetcher(timeout=0.5).fetch(url)
        elapsed = time.monotonic() - started

        assert result is None
        assert elapsed < 1.5
