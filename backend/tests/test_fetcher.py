import httpx
import pytest

from scrapehub.config import Settings
from scrapehub.services.fetcher import (
    FetchConnectError,
    FetchError,
    HttpFetcher,
    ScrapingOptions,
    accept_language_for_country,
)


def fetcher_for(handler):
    return HttpFetcher(client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_returns_body_and_status():
    fetcher = fetcher_for(lambda request: httpx.Response(200, text="<html>ok</html>", headers={"X-Test": "1"}))

    response = fetcher.fetch("https://example.com/")

    assert response.status_code == 200
    assert response.body == "<html>ok</html>"
    assert response.headers["x-test"] == "1"


@pytest.mark.parametrize("status_code", [403, 404, 429, 500])
def test_http_error_statuses_are_returned(status_code):
    fetcher = fetcher_for(lambda request: httpx.Response(status_code, text="nope"))

    assert fetcher.fetch("https://example.com/").status_code == status_code


def test_country_code_sets_accept_language():
    seen = {}

    def handler(request):
        seen["lang"] = request.headers.get("Accept-Language")
        return httpx.Response(200, text="")

    fetcher_for(handler).fetch("https://example.com/", ScrapingOptions(country_code="fr"))

    assert seen["lang"].startswith("fr-FR")


def test_unknown_country_falls_back_to_english():
    assert accept_language_for_country("ZZ") == "en-US,en;q=0.9"


@pytest.mark.parametrize("error", [
    httpx.ConnectError("connection refused"),
    httpx.ConnectTimeout("connect timed out"),
    httpx.ReadTimeout("read timed out"),
])
def test_network_failures_raise_connect_error(error):
    def handler(request):
        raise error

    with pytest.raises(FetchConnectError):
        fetcher_for(handler).fetch("https://example.com/")


def test_other_transport_failures_raise_fetch_error():
    def handler(request):
        raise httpx.RemoteProtocolError("server sent garbage")

    with pytest.raises(FetchError):
        fetcher_for(handler).fetch("https://example.com/")


def test_from_settings_applies_timeouts_and_user_agent():
    settings = Settings(scraper_timeout=12, scraper_connect_timeout=3, scraper_user_agent="scrapehub-test")

    fetcher = HttpFetcher.from_settings(settings)
    try:
        assert fetcher.client.timeout.read == 12
        assert fetcher.client.timeout.connect == 3
        assert fetcher.client.headers["User-Agent"] == "scrapehub-test"
        assert fetcher.client.follow_redirects is True
    finally:
        fetcher.close()
