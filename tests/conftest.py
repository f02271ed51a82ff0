"""
Shared pytest fixtures for LinkPulse tests.
"""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fetcher import FetchResponse


class FakeFetcher:
    """Serves canned responses by URL and records every request."""

    def __init__(self, routes=None):
        # url -> FetchResponse, or None to simulate a transport failure
        self.routes = dict(routes or {})
        self.calls = []

    def fetch(self, url, timeout=None):
        self.calls.append(url)
        if url in self.routes:
            return self.routes[url]
        return FetchResponse(url=url, status_code=404, headers={"Content-Type": "text/html"})


def html_page(url, body="<html><body>Hello</body></html>", status_code=200, headers=None):
    all_headers = {"Content-Type": "text/html; charset=utf-8"}
    all_headers.update(headers or {})
    return FetchResponse(url=url, status_code=status_code, headers=all_headers, content=body.encode("utf-8"))


def feed_doc(url, body, content_type="application/rss+xml"):
    return FetchResponse(
        url=url, status_code=200, headers={"Content-Type": content_type}, content=body.encode("utf-8")
    )


@pytest.fixture
def fake_fetcher():
    """Empty FakeFetcher; tests add routes."""
    return FakeFetcher()


@pytest.fixture
def make_page():
    return html_page


@pytest.fixture
def make_feed():
    return feed_doc


@pytest.fixture
def rss_feed():
    """RSS feed with two items, newest 2024-06-15."""
    return """<?xml version="1.0" encoding="UTF-8"?>
    <rss version="2.0">
        <channel>
            <title>Test Feed</title>
            <lastBuildDate>Mon, 01 Jan 2024 00:00:00 GMT</lastBuildDate>
            <item>
                <title>Older post</title>
                <pubDate>Sun, 01 Jan 2023 08:00:00 GMT</pubDate>
            </item>
            <item>
                <title>Newer post</title>
                <pubDate>Sat, 15 Jun 2024 08:00:00 GMT</pubDate>
            </item>
        </channel>
    </rss>"""


@pytest.fixture
def atom_feed():
    """Atom feed updated 2024-06-20."""
    return """<?xml version="1.0" encoding="utf-8"?>
    <feed xmlns="http://www.w3.org/2005/Atom">
        <title>Atom Blog</title>
        <updated>2024-06-20T10:00:00Z</updated>
        <entry>
            <title>Post</title>
            <published>2024-06-18T09:30:00+08:00</published>
            <updated>2024-06-19T09:30:00+08:00</updated>
        </entry>
    </feed>"""


@pytest.fixture
def sample_links_data():
    """links.json content with both required groups and an extra group."""
    return {
        "friends": [
            {
                "id_name": "cf-links",
                "desc": "朋友们",
                "link_list": [
                    {
                        "name": "Alpha",
                        "intro": "第一个博客",
                        "link": "https://alpha.example.com/",
                        "avatar": "https://alpha.example.com/a.png",
                        "avatar_cache": {"hash": "abc123", "path": "/cache/abc123.webp"},
                    },
                    {
                        "name": "Beta",
                        "intro": "Beta blog",
                        "link": "https://beta.example.com",
                        "avatar": "https://beta.example.com/b.png",
                        "lastChecked": "2024-05-01",
                        "lastActive": "2024-04-20",
                        "status": "active",
                    },
                    {
                        "name": "Gamma",
                        "intro": "Gamma blog",
                        "link": "https://gamma.example.com",
                        "avatar": "https://gamma.example.com/g.png",
                    },
                ],
            },
            {
                "id_name": "inactive-links",
                "desc": "Bad Status",
                "link_list": [
                    {
                        "name": "Delta",
                        "intro": "Delta blog",
                        "link": "https://delta.example.com",
                        "avatar": "https://delta.example.com/d.png",
                        "lastChecked": "2024-05-01",
                        "status": "unreachable",
                    },
                    {
                        "name": "Epsilon",
                        "intro": "Epsilon blog",
                        "link": "https://epsilon.example.com",
                        "avatar": "https://epsilon.example.com/e.png",
                        "lastChecked": "2024-05-01",
                        "lastActive": "2022-01-01",
                        "status": "inactive",
                    },
                ],
            },
            {"id_name": "others", "desc": "Not checked", "link_list": []},
        ]
    }


@pytest.fixture
def links_file(tmp_path, sample_links_data):
    """sample_links_data written the way the site generator writes it."""
    path = tmp_path / "public" / "links.json"
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps(sample_links_data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path
