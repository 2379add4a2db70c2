"""Upsert sources from a JSON file.

The file holds a list of objects with ``name`` and ``base_url`` and,
optionally, ``authority_score``, ``priority`` and ``scraping_country_code``.
Sources are matched on ``base_url``; existing rows are updated in place.

Usage:
    python scripts/seed_sources.py data/sources.json
    python scripts/seed_sources.py data/sources.json --dry-run
"""

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from scrapehub.database import SyncSessionLocal
from scrapehub.models.source import Source
from scrapehub.schemas.source import SourceCreate

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


def load_sources(path: str) -> list[SourceCreate]:
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    sources = []
    for i, item in enumerate(raw):
        try:
            sources.append(SourceCreate.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping entry {i}: {e.error_count()} validation error(s)\n{e}")
    return sources


def seed(sources: list[SourceCreate], dry_run: bool = False) -> dict:
    db = SyncSessionLocal()
    try:
        created = 0
        updated = 0

        for data in sources:
            fields = data.model_dump()
            if fields["scraping_country_code"]:
                fields["scraping_country_code"] = fields["scraping_country_code"].upper()

            existing = db.query(Source).filter(Source.base_url == data.base_url).first()
            if existing:
                for key, value in fields.items():
                    setattr(existing, key, value)
                updated += 1
                print(f"  Updated: {data.name} ({data.base_url})")
            else:
                db.add(Source(**fields))
                created += 1
                print(f"  Added: {data.name} ({data.base_url})")

        if dry_run:
            db.rollback()
            print("\nDry run, nothing written")
        else:
            db.commit()

        print(f"\nDone: {created} created, {updated} updated")
        return {"created": created, "updated": updated}

    except Exception:
        db.rollback()
        raise

    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Upsert scrape sources from JSON")
    parser.add_argument("path", help="JSON file with a list of sources")
    parser.add_argument("--dry-run", action="store_true", help="Validate and report without writing")
    args = parser.parse_args()

    sources = load_sources(args.path)
    if not sources:
        print("No valid sources found")
        sys.exit(1)
    seed(sources, dry_run=args.dry_run)


if __name__ == "__main__":
    main()
