"""Page classifiers: map cleaned HTML to content/page/temporal classes."""

import logging
from abc import ABC, abstractmethod

from bs4 import BeautifulSoup
from openai import OpenAI
from pydantic import BaseModel, ValidationError, field_validator

from scrapehub.enums import (
    CONTENT_TYPE_DESCRIPTIONS,
    PAGE_TYPE_DESCRIPTIONS,
    TEMPORAL_DESCRIPTIONS,
    ContentType,
    PageType,
    Temporal,
)
from scrapehub.services.html_cleaner import truncate
from scrapehub.services.openai_client import CollaboratorError, request_structured_output

logger = logging.getLogger(__name__)


class ClassificationResult(BaseModel):
    content_type: ContentType = ContentType.UNKNOWN
    page_type: PageType = PageType.UNKNOWN
    temporal: Temporal | None = None
    description: str | None = None
    tags: list[str] = []

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, tags: list[str]) -> list[str]:
        seen = []
        for tag in tags:
            tag = tag.strip().lower()
            if tag and tag not in seen:
                seen.append(tag)
        return seen


class PageClassifier(ABC):
    @abstractmethod
    def classify(self, html: str) -> ClassificationResult:
        ...


# og:type prefix -> content type
OG_TYPE_MAP = {
    "article": ContentType.ARTICLE,
    "blog": ContentType.ARTICLE,
    "product": ContentType.PRODUCT,
    "og:product": ContentType.PRODUCT,
    "video": ContentType.MEDIA,
    "music": ContentType.MEDIA,
    "profile": ContentType.PROFILE,
    "book": ContentType.DOCUMENT,
    "event": ContentType.EVENT,
}

# schema.org microdata type -> content type
ITEMTYPE_MAP = {
    "newsarticle": ContentType.ARTICLE,
    "article": ContentType.ARTICLE,
    "blogposting": ContentType.ARTICLE,
    "product": ContentType.PRODUCT,
    "jobposting": ContentType.JOB_POSTING,
    "event": ContentType.EVENT,
    "review": ContentType.REVIEW,
    "videoobject": ContentType.MEDIA,
    "course": ContentType.COURSE,
    "person": ContentType.PROFILE,
    "organization": ContentType.PROFILE,
    "faqpage": ContentType.FAQ,
    "discussionforumposting": ContentType.DISCUSSION,
    "recipe": ContentType.RECIPE,
}

EVERGREEN_TYPES = {
    ContentType.PRODUCT, ContentType.FAQ, ContentType.RECIPE, ContentType.COURSE,
    ContentType.DOCUMENT, ContentType.PROFILE,
}

LISTING_MIN_LINKS = 15


class BasicPageClassifier(PageClassifier):
    """Metadata and structure heuristics; no external calls."""

    def classify(self, html: str) -> ClassificationResult:
        soup = BeautifulSoup(html, "lxml")

        content_type = self._content_type(soup)
        return ClassificationResult(
            content_type=content_type,
            page_type=self._page_type(soup),
            temporal=self._temporal(content_type),
            description=self._meta(soup, "description") or self._meta(soup, "og:description"),
            tags=[t for t in (self._meta(soup, "keywords") or "").split(",")],
        )

    @staticmethod
    def _meta(soup: BeautifulSoup, name: str) -> str | None:
        tag = soup.find("meta", attrs={"name": name}) or soup.find("meta", attrs={"property": name})
        if tag and tag.get("content"):
            return tag["content"].strip()
        return None

    def _content_type(self, soup: BeautifulSoup) -> ContentType:
        og_type = (self._meta(soup, "og:type") or "").lower()
        if og_type:
            prefix = og_type.split(".")[0]
            if og_type in OG_TYPE_MAP:
                return OG_TYPE_MAP[og_type]
            if prefix in OG_TYPE_MAP:
                return OG_TYPE_MAP[prefix]

        for el in soup.find_all(attrs={"itemtype": True}):
            item_type = el["itemtype"].rstrip("/").rsplit("/", 1)[-1].lower()
            if item_type in ITEMTYPE_MAP:
                return ITEMTYPE_MAP[item_type]

        if soup.find("article"):
            return ContentType.ARTICLE
        return ContentType.UNKNOWN

    @staticmethod
    def _page_type(soup: BeautifulSoup) -> PageType:
        refresh = soup.find("meta", attrs={"http-equiv": lambda v: v and v.lower() == "refresh"})
        if refresh:
            return PageType.REDIRECT

        body = soup.body or soup
        links = body.find_all("a", href=True)
        paragraphs = [p for p in body.find_all("p") if len(p.get_text(strip=True)) > 80]
        articles = body.find_all("article")

        if len(articles) > 2 or (len(links) >= LISTING_MIN_LINKS and len(paragraphs) < 3):
            return PageType.LISTING
        if body.find("h1") or paragraphs:
            return PageType.DETAIL
        return PageType.UNKNOWN

    @staticmethod
    def _temporal(content_type: ContentType) -> Temporal | None:
        if content_type in EVERGREEN_TYPES:
            return Temporal.EVERGREEN
        if content_type == ContentType.ARTICLE:
            return Temporal.TOPICAL
        if content_type == ContentType.EVENT:
            return Temporal.SEASONAL
        return None


class OpenAIPageClassifier(PageClassifier):
    def __init__(self, client: OpenAI, model: str = "gpt-4o-mini", max_html_length: int = 50000):
        self.client = client
        self.model = model
        self.max_html_length = max_html_length

    def classify(self, html: str) -> ClassificationResult:
        prompt = self.build_prompt(truncate(html, self.max_html_length))
        text = request_structured_output(
            self.client, self.model, prompt, "page_classification", self.build_json_schema()
        )
        try:
            return ClassificationResult.model_validate_json(text)
        except ValidationError as e:
            raise CollaboratorError(f"Invalid page classification response: {e}") from e

    @staticmethod
    def build_prompt(html: str) -> str:
        def describe(descriptions: dict) -> str:
            return "\n".join(f"  - {k.value}: {v}" for k, v in descriptions.items())

        return (
            "Classify the following HTML page.\n\n"
            f"content_type, one of:\n{describe(CONTENT_TYPE_DESCRIPTIONS)}\n\n"
            f"page_type, one of:\n{describe(PAGE_TYPE_DESCRIPTIONS)}\n\n"
            f"temporal, one of (or null when it cannot be judged):\n{describe(TEMPORAL_DESCRIPTIONS)}\n\n"
            "description: one or two plain sentences summarizing the page.\n"
            "tags: up to 10 short lower-case topic tags.\n\n"
            f"HTML Content:\n{html}"
        )

    @staticmethod
    def build_json_schema() -> dict:
        properties = {
            "content_type": {"type": "string", "enum": [c.value for c in ContentType]},
            "page_type": {"type": "string", "enum": [p.value for p in PageType]},
            "temporal": {"type": ["string", "null"], "enum": [t.value for t in Temporal] + [None]},
            "description": {"type": "string"},
            "tags": {"type": "array", "items": {"type": "string"}},
        }
        return {
            "type": "object",
            "properties": properties,
            "required": list(properties),
            "additionalProperties": False,
        }
