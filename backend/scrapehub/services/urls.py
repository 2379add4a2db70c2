"""URL normalization helpers for seeding and link discovery."""

from urllib.parse import urlsplit


def normalize_url(url: str | None) -> str:
    """Trimmed URL, or an empty string unless it is http(s)."""
    url = (url or "").strip()
    if not url.startswith(("http://", "https://")):
        return ""
    return url


def url_host(url: str) -> str:
    """Lower-cased host without port, empty when the URL has none."""
    try:
        return urlsplit(url).hostname or ""
    except ValueError:
        return ""


def same_host_urls(urls: list[str], host: str) -> list[str]:
    host = host.lower()
    return [u for u in urls if host and url_host(u) == host]
