"""Fetch one URL and show what the collaborators make of it.

Useful when a page classifies or parses unexpectedly. Uses the drivers
configured in the environment unless overridden.

Usage:
    python scripts/inspect_page.py https://example.com/ --show parse
    python scripts/inspect_page.py https://example.com/ --show classify --classifier openai
    python scripts/inspect_page.py https://example.com/ --show clean --country FR
"""

import argparse
import logging
import sys

from scrapehub.config import get_settings
from scrapehub.services import html_cleaner
from scrapehub.services.content_metrics import count_structured_data, link_count
from scrapehub.services.factory import build_classifier, build_parser
from scrapehub.services.fetcher import HttpFetcher, ScrapeError, ScrapingOptions

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


def inspect(url: str, show: str, country: str | None = None, classifier: str | None = None, parser: str | None = None):
    settings = get_settings()
    overrides = {}
    if classifier:
        overrides["page_classifier_driver"] = classifier
    if parser:
        overrides["page_parser_driver"] = parser
    if overrides:
        settings = settings.model_copy(update=overrides)

    fetcher = HttpFetcher.from_settings(settings)
    try:
        response = fetcher.fetch(url, ScrapingOptions(country_code=country))
    except ScrapeError as e:
        print(f"Fetch failed: {e}")
        sys.exit(1)
    finally:
        fetcher.close()

    print(f"HTTP {response.status_code}, {len(response.body)} chars")
    if response.status_code >= 400:
        sys.exit(1)

    cleaned = html_cleaner.clean(response.body)

    if show == "clean":
        print(html_cleaner.truncate(cleaned, 5000))
        return

    if show == "classify":
        result = build_classifier(settings).classify(cleaned)
        print(result.model_dump_json(indent=2))
        return

    page = build_parser(settings).parse(cleaned, base_url=url)
    print(page.model_dump_json(indent=2, exclude={"markdown_content", "linked_page_urls"}))
    markdown = page.markdown_content or ""
    print(f"\n--- Markdown ({len(markdown)} chars) ---")
    print(markdown[:3000])
    print(f"\nLinks: {link_count(markdown, page.linked_page_urls)}")
    print(f"Structured data blocks: {count_structured_data(response.body)}")
    for link in page.linked_page_urls[:20]:
        print(f"  {link}")


def main():
    parser = argparse.ArgumentParser(description="Inspect how a page is cleaned, classified and parsed")
    parser.add_argument("url")
    parser.add_argument("--show", choices=["clean", "classify", "parse"], default="parse")
    parser.add_argument("--country", help="Two-letter country code for Accept-Language")
    parser.add_argument("--classifier", choices=["basic", "openai"])
    parser.add_argument("--parser", choices=["basic", "openai"])
    args = parser.parse_args()

    inspect(args.url, args.show, country=args.country, classifier=args.classifier, parser=args.parser)


if __name__ == "__main__":
    main()
