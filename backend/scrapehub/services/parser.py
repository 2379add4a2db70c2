"""Page parsers: extract page data and a markdown rendition from cleaned HTML."""

import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime
from urllib.parse import urldefrag, urljoin

from bs4 import BeautifulSoup, NavigableString, Tag
from openai import OpenAI
from pydantic import BaseModel, Field, ValidationError

from scrapehub.services.html_cleaner import truncate
from scrapehub.services.openai_client import CollaboratorError, request_structured_output

logger = logging.getLogger(__name__)

SKIP_HREF_PREFIXES = ("#", "mailto:", "javascript:", "tel:", "data:")
PAGE_NUMBER_PATTERNS = [
    re.compile(r"[?&]page=(\d+)"),
    re.compile(r"/page/(\d+)"),
]
BLOCK_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "p", "li", "blockquote", "pre"]


class PageData(BaseModel):
    title: str = ""
    excerpt: str = ""
    thumbnail_url: str = ""
    markdown_content: str = ""
    published_at: datetime | None = None
    updated_at: datetime | None = None
    canonical_url: str = ""
    canonical_number: int | None = None
    linked_page_urls: list[str] = Field(default_factory=list)


class PageParser(ABC):
    @abstractmethod
    def parse(self, html: str, base_url: str | None = None) -> PageData:
        ...


def extract_links(soup: BeautifulSoup, base_url: str | None = None) -> list[str]:
    """Absolute http(s) link targets in document order, fragments dropped, deduplicated."""
    links = []
    seen = set()
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if not href or href.lower().startswith(SKIP_HREF_PREFIXES):
            continue
        url = urljoin(base_url, href) if base_url else href
        url = urldefrag(url)[0]
        if not url.startswith(("http://", "https://")) or url in seen:
            continue
        seen.add(url)
        links.append(url)
    return links


def parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def page_number(url: str) -> int | None:
    for pattern in PAGE_NUMBER_PATTERNS:
        match = pattern.search(url)
        if match:
            return int(match.group(1))
    return None


class BasicPageParser(PageParser):
    """BeautifulSoup extraction of metadata plus a simple markdown rendition."""

    def parse(self, html: str, base_url: str | None = None) -> PageData:
        soup = BeautifulSoup(html, "lxml")

        canonical = soup.find("link", rel="canonical")
        canonical_url = canonical["href"].strip() if canonical and canonical.get("href") else ""
        if canonical_url and base_url:
            canonical_url = urljoin(base_url, canonical_url)

        first_img = soup.find("img", src=True)
        thumbnail = self._meta(soup, "og:image") or self._meta(soup, "twitter:image") or (
            first_img["src"] if first_img else ""
        )
        if thumbnail and base_url:
            thumbnail = urljoin(base_url, thumbnail)

        return PageData(
            title=self._title(soup),
            excerpt=self._excerpt(soup),
            thumbnail_url=thumbnail,
            markdown_content=self.to_markdown(soup, base_url),
            published_at=parse_datetime(
                self._meta(soup, "article:published_time") or self._itemprop(soup, "datePublished")
            ),
            updated_at=parse_datetime(
                self._meta(soup, "article:modified_time") or self._itemprop(soup, "dateModified")
            ),
            canonical_url=canonical_url,
            canonical_number=page_number(canonical_url or base_url or ""),
            linked_page_urls=extract_links(soup, base_url),
        )

    @staticmethod
    def _meta(soup: BeautifulSoup, name: str) -> str:
        tag = soup.find("meta", attrs={"property": name}) or soup.find("meta", attrs={"name": name})
        return tag["content"].strip() if tag and tag.get("content") else ""

    @staticmethod
    def _itemprop(soup: BeautifulSoup, name: str) -> str:
        tag = soup.find(attrs={"itemprop": name})
        if not tag:
            return ""
        return tag.get("content") or tag.get("datetime") or tag.get_text(strip=True)

    def _title(self, soup: BeautifulSoup) -> str:
        title = self._meta(soup, "og:title")
        if not title and soup.title:
            title = soup.title.get_text(strip=True)
        if not title and soup.find("h1"):
            title = soup.find("h1").get_text(strip=True)
        return title

    def _excerpt(self, soup: BeautifulSoup) -> str:
        excerpt = self._meta(soup, "description") or self._meta(soup, "og:description")
        if not excerpt:
            first_p = soup.find("p")
            excerpt = first_p.get_text(" ", strip=True) if first_p else ""
        return excerpt

    @classmethod
    def to_markdown(cls, soup: BeautifulSoup, base_url: str | None = None) -> str:
        root = soup.body or soup
        blocks = []
        for el in root.find_all(BLOCK_TAGS):
            # Nested blocks are rendered by their outermost block
            if el.find_parent(BLOCK_TAGS):
                continue
            text = cls._inline(el, base_url).strip()
            if not text:
                continue
            if el.name.startswith("h"):
                blocks.append("#" * int(el.name[1]) + " " + text)
            elif el.name == "li":
                blocks.append("- " + text)
            elif el.name == "blockquote":
                blocks.append("> " + text)
            elif el.name == "pre":
                blocks.append("```\n" + el.get_text() + "\n```")
            else:
                blocks.append(text)
        return "\n\n".join(blocks)

    @classmethod
    def _inline(cls, el: Tag, base_url: str | None) -> str:
        parts = []
        for child in el.children:
            if isinstance(child, NavigableString):
                parts.append(str(child))
            elif not isinstance(child, Tag):
                continue
            elif child.name == "a" and child.get("href"):
                href = urljoin(base_url, child["href"]) if base_url else child["href"]
                parts.append(f"[{child.get_text(' ', strip=True)}]({href})")
            elif child.name == "img" and child.get("src"):
                src = urljoin(base_url, child["src"]) if base_url else child["src"]
                parts.append(f"![{child.get('alt', '')}]({src})")
            elif child.name in ("strong", "b"):
                parts.append(f"**{child.get_text(' ', strip=True)}**")
            elif child.name in ("em", "i"):
                parts.append(f"*{child.get_text(' ', strip=True)}*")
            elif child.name == "br":
                parts.append("\n")
            else:
                parts.append(cls._inline(child, base_url))
        return re.sub(r"[ \t]+", " ", "".join(parts))


class OpenAIPageParser(PageParser):
    """LLM extraction; linked page URLs are still taken from the HTML locally."""

    def __init__(self, client: OpenAI, model: str = "gpt-4o-mini", max_html_length: int = 50000):
        self.client = client
        self.model = model
        self.max_html_length = max_html_length

    def parse(self, html: str, base_url: str | None = None) -> PageData:
        prompt = self.build_prompt(truncate(html, self.max_html_length))
        text = request_structured_output(self.client, self.model, prompt, "page_parsing", self.build_json_schema())
        try:
            data = PageData.model_validate_json(text)
        except ValidationError as e:
            raise CollaboratorError(f"Invalid page parsing response: {e}") from e

        data.linked_page_urls = extract_links(BeautifulSoup(html, "lxml"), base_url)
        return data

    @staticmethod
    def build_prompt(html: str) -> str:
        return (
            "Analyze the following HTML page and extract structured data according to the provided schema.\n"
            "Guidelines:\n"
            "- title: the main title of the page (from <title>, <h1>, or meta tags)\n"
            "- excerpt: a brief summary (from meta description, first paragraph, or excerpt)\n"
            "- thumbnail_url: the main image URL (og:image, twitter:image, or the first prominent image)\n"
            "- markdown_content: the main content of the page as clean markdown, preserving structure\n"
            "- published_at / updated_at: ISO 8601 dates from article meta tags or JSON-LD, or null\n"
            "- canonical_url: from <link rel=\"canonical\">, or an empty string\n"
            "- canonical_number: the page/episode/part number if applicable, otherwise null\n\n"
            f"HTML Content:\n{html}"
        )

    @staticmethod
    def build_json_schema() -> dict:
        properties = {
            "title": {"type": "string"},
            "excerpt": {"type": "string"},
            "thumbnail_url": {"type": "string"},
            "markdown_content": {"type": "string"},
            "published_at": {"type": ["string", "null"]},
            "updated_at": {"type": ["string", "null"]},
            "canonical_url": {"type": "string"},
            "canonical_number": {"type": ["integer", "null"]},
        }
        return {
            "type": "object",
            "properties": properties,
            "required": list(properties),
            "additionalProperties": False,
        }
