"""Enumerations shared by models, services and schemas."""

import enum


class ScrapingStatus(str, enum.Enum):
    """Entity/snapshot scraping state.

    Declaration order is the order the scheduler scans statuses in.
    """

    PENDING = "pending"
    QUEUED = "queued"
    FETCHING = "fetching"
    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"
    BLOCKED = "blocked"

    @classmethod
    def error_statuses(cls) -> frozenset["ScrapingStatus"]:
        return frozenset({cls.FAILED, cls.TIMEOUT, cls.BLOCKED})

    @classmethod
    def in_flight(cls) -> frozenset["ScrapingStatus"]:
        """Handed to a worker; only recovered once the row has gone stale."""
        return frozenset({cls.QUEUED, cls.FETCHING})


class EntityType(str, enum.Enum):
    UNCLASSIFIED = "unclassified"
    PAGE = "page"
    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"
    UNKNOWN = "unknown"


class ContentType(str, enum.Enum):
    ARTICLE = "article"
    PRODUCT = "product"
    JOB_POSTING = "job_posting"
    EVENT = "event"
    REVIEW = "review"
    MEDIA = "media"
    COURSE = "course"
    PROFILE = "profile"
    FAQ = "faq"
    DOCUMENT = "document"
    DISCUSSION = "discussion"
    RECIPE = "recipe"
    WEBINAR = "webinar"
    UNKNOWN = "unknown"


class PageType(str, enum.Enum):
    LISTING = "listing"
    DETAIL = "detail"
    REDIRECT = "redirect"
    UNKNOWN = "unknown"


class Temporal(str, enum.Enum):
    EVERGREEN = "evergreen"
    BREAKING = "breaking"
    SEASONAL = "seasonal"
    TRENDING = "trending"
    TOPICAL = "topical"


CONTENT_TYPE_DESCRIPTIONS = {
    ContentType.ARTICLE: "Article or editorial content.",
    ContentType.PRODUCT: "Product page or product catalog content.",
    ContentType.JOB_POSTING: "Job listing or career opportunity.",
    ContentType.EVENT: "Event listing or event details.",
    ContentType.REVIEW: "Review content (product, service, etc.).",
    ContentType.MEDIA: "Media content (video, audio, gallery, etc.).",
    ContentType.COURSE: "Course or educational content.",
    ContentType.PROFILE: "Person, company, or entity profile.",
    ContentType.FAQ: "Frequently asked questions content.",
    ContentType.DOCUMENT: "Document-style content (PDF, whitepaper, docs).",
    ContentType.DISCUSSION: "Discussion or forum thread content.",
    ContentType.RECIPE: "Recipe or cooking instructions content.",
    ContentType.WEBINAR: "Webinar content (live or recorded).",
    ContentType.UNKNOWN: "Unknown content type.",
}

PAGE_TYPE_DESCRIPTIONS = {
    PageType.LISTING: "Listing or index page (multiple items).",
    PageType.DETAIL: "Detail page (single item).",
    PageType.REDIRECT: "Redirect page (canonicalization or routing).",
    PageType.UNKNOWN: "Unknown page type.",
}

TEMPORAL_DESCRIPTIONS = {
    Temporal.EVERGREEN: "Evergreen content with long-term relevance.",
    Temporal.BREAKING: "Breaking or time-sensitive content.",
    Temporal.SEASONAL: "Seasonal content relevant at specific times of year.",
    Temporal.TRENDING: "Trending content driven by current interest.",
    Temporal.TOPICAL: "Topical content tied to a specific subject or moment.",
}
