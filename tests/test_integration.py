"""Integration tests.

These tests exercise the full request -> service -> cache -> fetcher pipeline.

What is mocked:
  - External HTTP calls mocked per-test with respx

What is NOT mocked (runs real code):
  - FastAPI routes, dependency injection
  - URL validation, the shared FetchCache, HTML parsing
  - Favicon / oEmbed resolution, response shaping, error handling
"""

from __future__ import annotations

import httpx
import pytest
import respx

from app.repositories.cache import fetch_cache

_PLAIN_HTML = """<!DOCTYPE html><html><head>
<title>Example</title>
<meta name="description" content="Desc">
</head><body>Hello</body></html>"""

_RICH_HTML = """<!DOCTYPE html><html><head>
<title>A video</title>
<meta name="theme-color" content="#ff0000">
<meta property="og:title" content="A video">
<meta property="og:image" content="https://cdn.example.com/thumb.jpg">
<meta property="og:image:width" content="1280">
<meta name="twitter:card" content="player">
<link rel="shortcut icon" href="//cdn.example.com/favicon.ico">
<link rel="alternate" type="application/json+oembed" href="/oembed?format=json">
</head><body></body></html>"""


class TestIntegrationScrape:
    @respx.mock
    def test_plain_page_end_to_end(self, client):
        """No OG/Twitter/oEmbed/icon tags and a 404 favicon: only title and description."""
        respx.get("https://example.com/").mock(
            return_value=httpx.Response(200, text=_PLAIN_HTML)
        )
        respx.head("https://example.com/favicon.ico").mock(return_value=httpx.Response(404))

        resp = client.get("/https://example.com")

        assert resp.status_code == 200
        assert resp.json() == {"title": "Example", "description": "Desc"}

    @respx.mock
    def test_rich_page_end_to_end(self, client):
        respx.get("https://example.com/watch").mock(
            return_value=httpx.Response(200, text=_RICH_HTML)
        )
        respx.get("https://example.com/oembed", params={"format": "json"}).mock(
            return_value=httpx.Response(
                200, json={"type": "video", "version": "1.0", "width": 640}
            )
        )

        resp = client.get("/https://example.com/watch")

        assert resp.status_code == 200
        assert resp.json() == {
            "title": "A video",
            "favicon": "https://cdn.example.com/favicon.ico",
            "theme_color": "#ff0000",
            "og": {
                "title": "A video",
                "image": "https://cdn.example.com/thumb.jpg",
                "image_width": "1280",
            },
            "twitter": {"card": "player"},
            "oembed": {"type": "video", "version": "1.0", "width": 640},
        }

    @respx.mock
    def test_scheme_defaults_to_http(self, client):
        route = respx.get("http://example.com/").mock(
            return_value=httpx.Response(200, text=_PLAIN_HTML)
        )
        respx.head("http://example.com/favicon.ico").mock(return_value=httpx.Response(404))

        resp = client.get("/example.com")

        assert resp.status_code == 200
        assert route.called

    @respx.mock
    def test_repeat_requests_hit_the_cache(self, client):
        page = respx.get("https://example.com/").mock(
            return_value=httpx.Response(200, text=_PLAIN_HTML)
        )
        probe = respx.head("https://example.com/favicon.ico").mock(
            return_value=httpx.Response(200)
        )

        first = client.get("/https://example.com")
        second = client.get("/https://example.com")

        assert first.json() == second.json()
        assert first.json()["favicon"] == "https://example.com/favicon.ico"
        assert page.call_count == 1
        assert probe.call_count == 1
        assert "https://example.com" in fetch_cache

    @respx.mock
    def test_upstream_failure_returns_400_and_is_retried(self, client):
        page = respx.get("https://example.com/")
        page.side_effect = [
            httpx.ConnectError("connection refused"),
            httpx.Response(200, text=_PLAIN_HTML),
        ]
        respx.head("https://example.com/favicon.ico").mock(return_value=httpx.Response(404))

        failed = client.get("/https://example.com")
        recovered = client.get("/https://example.com")

        assert failed.status_code == 400
        assert recovered.status_code == 200
        assert page.call_count == 2

    @respx.mock
    def test_broken_oembed_still_returns_metadata(self, client):
        html = _PLAIN_HTML.replace(
            "</head>",
            '<link rel="alternate" type="application/json+oembed" href="https://example.com/oe">'
            "</head>",
        )
        respx.get("https://example.com/").mock(return_value=httpx.Response(200, text=html))
        respx.get("https://example.com/oe").mock(return_value=httpx.Response(502))
        respx.head("https://example.com/favicon.ico").mock(return_value=httpx.Response(404))

        resp = client.get("/https://example.com")

        assert resp.status_code == 200
        assert "oembed" not in resp.json()

    @respx.mock
    def test_malformed_hrefs_degrade_to_absent_fields(self, client):
        html = _PLAIN_HTML.replace(
            "</head>",
            '<base href="http://[oops/">'
            '<link rel="icon" href="http://[broken/f.ico">'
            '<link rel="alternate" type="application/json+oembed" href="http://[broken/oe">'
            "</head>",
        )
        respx.get("https://example.com/").mock(return_value=httpx.Response(200, text=html))
        respx.head("https://example.com/favicon.ico").mock(return_value=httpx.Response(404))

        resp = client.get("/https://example.com")

        assert resp.status_code == 200
        assert resp.json() == {"title": "Example", "description": "Desc"}

    @pytest.mark.respx(assert_all_called=False)
    def test_oembed_link_to_internal_host_is_not_fetched(self, client, respx_mock):
        html = _PLAIN_HTML.replace(
            "</head>",
            '<link rel="alternate" type="application/json+oembed"'
            ' href="http://127.0.0.1:2375/containers/json">'
            "</head>",
        )
        respx_mock.get("https://example.com/").mock(return_value=httpx.Response(200, text=html))
        respx_mock.head("https://example.com/favicon.ico").mock(return_value=httpx.Response(404))
        internal = respx_mock.get("http://127.0.0.1:2375/containers/json").mock(
            return_value=httpx.Response(200, json={"secret": True})
        )

        resp = client.get("/https://example.com")

        assert resp.status_code == 200
        assert "oembed" not in resp.json()
        assert not internal.called

    @pytest.mark.respx(assert_all_called=False)
    def test_redirect_to_internal_host_is_refused(self, client, respx_mock):
        respx_mock.get("https://example.com/").mock(
            return_value=httpx.Response(302, headers={"Location": "http://0x7f000001/admin"})
        )
        internal = respx_mock.get("http://0x7f000001/admin").mock(return_value=httpx.Response(200))

        resp = client.get("/https://example.com")

        assert resp.status_code == 400
        assert "blocked host" in resp.json()["detail"]
        assert not internal.called

    @pytest.mark.parametrize("host", ["2130706433", "0x7f000001", "127.1", "localhost."])
    def test_loopback_shorthand_target_is_refused(self, client, host):
        with respx.mock:
            resp = client.get(f"/http://{host}/admin")
            assert respx.calls.call_count == 0
        assert resp.status_code == 403

    def test_loopback_target_is_refused(self, client):
        with respx.mock:
            resp = client.get("/http://127.0.0.1:8080/admin")
            assert respx.calls.call_count == 0
        assert resp.status_code == 403


class TestIntegrationFavicon:
    @respx.mock
    def test_favicon_mode_redirects(self, client):
        respx.get("https://example.com/").mock(
            return_value=httpx.Response(200, text=_RICH_HTML)
        )

        resp = client.get("/https://example.com?favicon", follow_redirects=False)

        assert resp.status_code == 307
        assert resp.headers["location"] == "https://cdn.example.com/favicon.ico"

    @pytest.mark.respx(assert_all_called=False)
    def test_favicon_mode_without_favicon_returns_metadata(self, client, respx_mock):
        html = _PLAIN_HTML.replace(
            "</head>",
            '<link rel="alternate" type="application/json+oembed" href="https://example.com/oe">'
            "</head>",
        )
        respx_mock.get("https://example.com/").mock(return_value=httpx.Response(200, text=html))
        respx_mock.head("https://example.com/favicon.ico").mock(return_value=httpx.Response(404))
        oembed = respx_mock.get("https://example.com/oe").mock(
            return_value=httpx.Response(200, json={"type": "rich"})
        )

        resp = client.get("/https://example.com?favicon", follow_redirects=False)

        assert resp.status_code == 200
        assert resp.json() == {"title": "Example", "description": "Desc"}
        assert not oembed.called
