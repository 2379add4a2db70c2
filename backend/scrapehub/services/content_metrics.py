"""Content metrics recorded on every successful snapshot."""

import difflib
import hashlib
import re

from bs4 import BeautifulSoup

MARKDOWN_LINK_RE = re.compile(r"\]\s*\([^)]+\)")
MARKDOWN_IMAGE_RE = re.compile(r"!\[[^\]]*\]\s*\([^)]+\)")
IMG_TAG_RE = re.compile(r"<img\s", re.IGNORECASE)


def count_links_in_markdown(markdown: str) -> int:
    return len(MARKDOWN_LINK_RE.findall(markdown))


def count_media_in_markdown(markdown: str) -> int:
    return len(MARKDOWN_IMAGE_RE.findall(markdown)) + len(IMG_TAG_RE.findall(markdown))


def link_count(markdown: str, linked_urls: list[str]) -> int:
    """Parser-reported link count, falling back to counting markdown links."""
    count = len(linked_urls)
    if count == 0 and markdown:
        count = count_links_in_markdown(markdown)
    return count


def count_structured_data(html: str) -> int:
    """Number of JSON-LD blocks in the raw (uncleaned) HTML."""
    if not html:
        return 0
    soup = BeautifulSoup(html, "lxml")
    return len(soup.find_all("script", attrs={"type": "application/ld+json"}))


def hash_content(markdown: str) -> str:
    return hashlib.sha256(markdown.encode()).hexdigest()


def change_percentage(previous: str | None, current: str) -> float | None:
    """Line-level change between two markdown renditions, 0-100.

    None when there is no previous rendition to compare against.
    """
    if previous is None:
        return None
    if previous == current:
        return 0.0
    matcher = difflib.SequenceMatcher(None, previous.splitlines(), current.splitlines(), autojunk=False)
    return round((1.0 - matcher.ratio()) * 100.0, 2)


def truncate_description(text: str | None, max_length: int = 1024) -> str | None:
    if text is None or len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
