"""
CLI helper to write one section of a managed page, e.g. to seed content:

    python scripts/update_page_section.py reserve-basement content --file content.json
    python scripts/update_page_section.py contact header --json '{"enabled": true, "data": {}}'
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cms_backend.content import PageContentService
from cms_backend.dependencies import get_change_feed, get_db_client
from cms_backend.pages import PAGES_BY_NAME, get_page_definition

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Upsert one page section")
    parser.add_argument("page", choices=sorted(PAGES_BY_NAME), help="Page name")
    parser.add_argument("section", help="Section key, e.g. header or content")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", type=Path, help="JSON file holding the section")
    source.add_argument("--json", dest="inline", help="Section as inline JSON")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    raw = args.file.read_text(encoding="utf-8") if args.file else args.inline
    try:
        section_data = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.error("Section is not valid JSON: %s", exc)
        return 1

    service = PageContentService(
        get_page_definition(args.page), get_db_client(), get_change_feed()
    )
    result = service.update_section(args.section, section_data)
    if not result.success:
        logger.error("Update failed: %s", result.error)
        return 1

    logger.info("Saved %s/%s (row %d)", args.page, args.section, result.data.id)
    return 0


if __name__ == "__main__":
    sys.exit(main())
