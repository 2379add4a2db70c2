"""HTTP fetcher used by the scrape worker."""

import logging
from dataclasses import dataclass, field

import httpx

from scrapehub.config import Settings

logger = logging.getLogger(__name__)

ACCEPT_LANGUAGE_BY_COUNTRY = {
    "US": "en-US,en;q=0.9",
    "GB": "en-GB,en;q=0.9",
    "FR": "fr-FR,fr;q=0.9,en;q=0.8",
    "DE": "de-DE,de;q=0.9,en;q=0.8",
    "ES": "es-ES,es;q=0.9,en;q=0.8",
    "IT": "it-IT,it;q=0.9,en;q=0.8",
    "JP": "ja-JP,ja;q=0.9,en;q=0.8",
    "CN": "zh-CN,zh;q=0.9,en;q=0.8",
    "KR": "ko-KR,ko;q=0.9,en;q=0.8",
    "BR": "pt-BR,pt;q=0.9,en;q=0.8",
    "MX": "es-MX,es;q=0.9,en;q=0.8",
    "CA": "en-CA,en;q=0.9,fr;q=0.8",
    "AU": "en-AU,en;q=0.9",
    "IN": "en-IN,en;q=0.9,hi;q=0.8",
}
DEFAULT_ACCEPT_LANGUAGE = "en-US,en;q=0.9"


class ScrapeError(Exception):
    """Base class for categorized fetch failures."""


class FetchConnectError(ScrapeError):
    """Connect, network or timeout level failure, with no HTTP response."""


class FetchError(ScrapeError):
    """Any other transport failure (redirect loops, protocol errors, bad URLs)."""


@dataclass
class ScrapingOptions:
    country_code: str | None = None


@dataclass
class FetchResponse:
    status_code: int
    body: str
    headers: dict[str, str] = field(default_factory=dict)


def accept_language_for_country(country_code: str) -> str:
    return ACCEPT_LANGUAGE_BY_COUNTRY.get(country_code.upper(), DEFAULT_ACCEPT_LANGUAGE)


class HttpFetcher:
    """Plain GET fetcher. HTTP error statuses are returned, not raised."""

    def __init__(
        self,
        timeout: float = 30,
        connect_timeout: float = 10,
        max_redirects: int = 5,
        verify: bool = True,
        user_agent: str | None = None,
        client: httpx.Client | None = None,
    ):
        headers = {
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": DEFAULT_ACCEPT_LANGUAGE,
            "Upgrade-Insecure-Requests": "1",
        }
        if user_agent:
            headers["User-Agent"] = user_agent

        self.client = client or httpx.Client(
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
            follow_redirects=True,
            max_redirects=max_redirects,
            verify=verify,
            headers=headers,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpFetcher":
        return cls(
            timeout=settings.scraper_timeout,
            connect_timeout=settings.scraper_connect_timeout,
            max_redirects=settings.scraper_max_redirects,
            verify=settings.scraper_verify_ssl,
            user_agent=settings.scraper_user_agent,
        )

    def fetch(self, url: str, options: ScrapingOptions | None = None) -> FetchResponse:
        headers = {}
        if options and options.country_code:
            headers["Accept-Language"] = accept_language_for_country(options.country_code)

        try:
            resp = self.client.get(url, headers=headers)
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            raise FetchConnectError(f"{type(e).__name__}: {e}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(f"{type(e).__name__}: {e}") from e

        logger.debug(f"Fetched {url} -> {resp.status_code} ({len(resp.content)} bytes)")
        return FetchResponse(
            status_code=resp.status_code,
            body=resp.text,
            headers=dict(resp.headers),
        )

    def close(self) -> None:
        self.client.close()
