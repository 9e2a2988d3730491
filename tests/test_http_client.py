import httpx

from harvester.configs import ScraperSettings
from harvester.utils.http_client import cookie_header, create_http_client, create_scraper_client


def test_cookie_header() -> None:
    assert cookie_header({"ezproxy": "abc", "utag_main": "v_id:1"}) == "ezproxy=abc; utag_main=v_id:1"


async def test_create_http_client_defaults() -> None:
    async with create_http_client(base_url="https://example.com") as client:
        assert isinstance(client, httpx.AsyncClient)
        assert str(client.base_url).rstrip("/") == "https://example.com"
        assert client.timeout == httpx.Timeout(30.0)
        assert client.follow_redirects is True


async def test_create_scraper_client_headers() -> None:
    settings = ScraperSettings(
        base_url="https://dl.example.org",
        cookies={"ezproxy": "abc"},
        user_agent="TestBot/0.1",
        timeout=5.0,
    )

    async with create_scraper_client(settings) as client:
        assert str(client.base_url).rstrip("/") == "https://dl.example.org"
        assert client.headers["User-Agent"] == "TestBot/0.1"
        assert client.headers["Cookie"] == "ezproxy=abc"
        assert client.timeout == httpx.Timeout(5.0)


async def test_create_scraper_client_without_cookies() -> None:
    async with create_scraper_client(ScraperSettings()) as client:
        assert "Cookie" not in client.headers
