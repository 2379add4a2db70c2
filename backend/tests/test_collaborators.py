"""
Tests for the basic parser/classifier and the OpenAI-backed collaborators.
"""

import json
from types import SimpleNamespace

import pytest

from scrapehub.config import Settings
from scrapehub.enums import ContentType, PageType, Temporal
from scrapehub.services.classifier import BasicPageClassifier, ClassificationResult, OpenAIPageClassifier
from scrapehub.services.factory import build_classifier, build_parser, build_policy_engine
from scrapehub.services.openai_client import CollaboratorError, request_structured_output
from scrapehub.services.parser import BasicPageParser, OpenAIPageParser, page_number
from scrapehub.services.policy import DummyScrapePolicyEngine, SignalDecayPolicyEngine
from tests.conftest import PAGE_HTML


class FakeOpenAI:
    """Mimics ``client.chat.completions.create`` with canned replies."""

    def __init__(self, content=None, refusal=None, choices=True):
        message = SimpleNamespace(content=content, refusal=refusal)
        self.completion = SimpleNamespace(choices=[SimpleNamespace(message=message)] if choices else [])
        self.requests = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        return self.completion


# =============================================================================
# BASIC PARSER
# =============================================================================

def test_basic_parser_extracts_metadata_and_links():
    page = BasicPageParser().parse(PAGE_HTML, base_url="https://example.com/page")

    assert page.title == "Widget launch"
    assert page.excerpt == "All about the new widget."
    assert page.thumbnail_url == "https://example.com/img/widget.png"
    assert page.published_at.isoformat() == "2026-10-18T09:30:00+00:00"
    assert page.linked_page_urls == [
        "https://example.com/news/one",
        "https://example.com/news/two",
        "https://other.com/y",
    ]


def test_basic_parser_renders_markdown():
    markdown = BasicPageParser().parse(PAGE_HTML, base_url="https://example.com/page").markdown_content

    assert markdown.startswith("# Widget launch")
    assert "[the first story](https://example.com/news/one)" in markdown
    assert "![widget](https://example.com/img/widget.png)" in markdown


def test_basic_parser_skips_non_page_links():
    html = (
        '<a href="#top">top</a><a href="mailto:a@b.c">mail</a><a href="javascript:void(0)">js</a>'
        '<a href="/a#section">a</a><a href="/a">a again</a>'
    )
    page = BasicPageParser().parse(html, base_url="https://example.com/")

    assert page.linked_page_urls == ["https://example.com/a"]


@pytest.mark.parametrize("url, expected", [
    ("https://example.com/news?page=3", 3),
    ("https://example.com/blog/page/12/", 12),
    ("https://example.com/about", None),
])
def test_page_number(url, expected):
    assert page_number(url) == expected


# =============================================================================
# BASIC CLASSIFIER
# =============================================================================

def test_basic_classifier_reads_og_type_and_description():
    result = BasicPageClassifier().classify(PAGE_HTML)

    assert result.content_type == ContentType.ARTICLE
    assert result.page_type == PageType.DETAIL
    assert result.temporal == Temporal.TOPICAL
    assert result.description == "All about the new widget."


def test_basic_classifier_uses_microdata():
    html = '<div itemscope itemtype="https://schema.org/JobPosting"><h1>Welder</h1></div>'
    assert BasicPageClassifier().classify(html).content_type == ContentType.JOB_POSTING


def test_basic_classifier_detects_listings():
    links = "".join(f'<a href="/item/{i}">Item {i}</a>' for i in range(20))
    result = BasicPageClassifier().classify(f"<html><body>{links}</body></html>")

    assert result.page_type == PageType.LISTING


def test_basic_classifier_detects_redirects():
    html = '<html><head><meta http-equiv="Refresh" content="0; url=/new"></head><body></body></html>'
    assert BasicPageClassifier().classify(html).page_type == PageType.REDIRECT


def test_classification_tags_are_normalized():
    result = ClassificationResult(tags=["News", " news", "", "Tech "])
    assert result.tags == ["news", "tech"]


# =============================================================================
# OPENAI COLLABORATORS
# =============================================================================

def test_structured_output_sends_strict_schema():
    client = FakeOpenAI(content='{"ok": true}')

    text = request_structured_output(client, "gpt-4o-mini", "prompt", "thing", {"type": "object"})

    assert text == '{"ok": true}'
    response_format = client.requests[0]["response_format"]
    assert response_format["type"] == "json_schema"
    assert response_format["json_schema"]["strict"] is True
    assert response_format["json_schema"]["name"] == "thing"


@pytest.mark.parametrize("client", [
    FakeOpenAI(refusal="I can't help with that"),
    FakeOpenAI(content=""),
    FakeOpenAI(choices=False),
])
def test_structured_output_rejects_unusable_replies(client):
    with pytest.raises(CollaboratorError):
        request_structured_output(client, "gpt-4o-mini", "prompt", "thing", {})


def test_openai_classifier_validates_reply():
    reply = {
        "content_type": "product",
        "page_type": "detail",
        "temporal": None,
        "description": "A widget.",
        "tags": ["Widgets"],
    }
    classifier = OpenAIPageClassifier(FakeOpenAI(content=json.dumps(reply)), max_html_length=100)

    result = classifier.classify(PAGE_HTML)

    assert result.content_type == ContentType.PRODUCT
    assert result.tags == ["widgets"]
    assert "[truncated]" in classifier.client.requests[0]["messages"][0]["content"]


def test_openai_classifier_rejects_invalid_enum():
    reply = {"content_type": "spaceship", "page_type": "detail", "temporal": None, "description": "", "tags": []}
    with pytest.raises(CollaboratorError):
        OpenAIPageClassifier(FakeOpenAI(content=json.dumps(reply))).classify("<p>x</p>")


def test_openai_parser_keeps_local_link_extraction():
    reply = {
        "title": "Widget launch",
        "excerpt": "All about it.",
        "thumbnail_url": "",
        "markdown_content": "# Widget launch",
        "published_at": None,
        "updated_at": None,
        "canonical_url": "",
        "canonical_number": None,
    }
    page = OpenAIPageParser(FakeOpenAI(content=json.dumps(reply))).parse(PAGE_HTML, base_url="https://example.com/page")

    assert page.title == "Widget launch"
    assert "https://example.com/news/one" in page.linked_page_urls


# =============================================================================
# FACTORY
# =============================================================================

def test_factory_builds_configured_drivers():
    settings = Settings(page_classifier_driver="basic", page_parser_driver="basic", scrape_policy_engine_driver="dummy")

    assert isinstance(build_classifier(settings), BasicPageClassifier)
    assert isinstance(build_parser(settings), BasicPageParser)
    assert isinstance(build_policy_engine(settings), DummyScrapePolicyEngine)


def test_factory_builds_signal_decay_engine():
    settings = Settings(scrape_policy_engine_driver="openai", openai_api_key="sk-test", policy_history_size=7)

    engine = build_policy_engine(settings)

    assert isinstance(engine, SignalDecayPolicyEngine)
    assert engine.history_size == 7


@pytest.mark.parametrize("builder, field", [
    (build_classifier, "page_classifier_driver"),
    (build_parser, "page_parser_driver"),
    (build_policy_engine, "scrape_policy_engine_driver"),
])
def test_factory_rejects_unknown_driver(builder, field):
    with pytest.raises(ValueError, match="Unknown"):
        builder(Settings(**{field: "magic"}))
