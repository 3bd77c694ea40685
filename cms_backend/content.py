"""
Read/upsert of page sections stored in the shared content table.

Each managed page keeps all of its sections in one JSON document:

    {"page": "<page_name>", "data": {"<section_key>": {"enabled": ..., "data": ...}}}

Writing a section creates the page row when it is missing, otherwise the new
section is merged over the existing ones.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from cms_backend.db import DbClient, PageExistsError, PageRecord
from cms_backend.pages import PageDefinition
from cms_backend.realtime import ChangeEvent, ChangeFeed

logger = logging.getLogger(__name__)


@dataclass
class UpdateResult:
    success: bool
    error: Optional[str] = None
    data: Optional[PageRecord] = None


def build_page_document(page_name: str, sections: dict[str, Any]) -> dict:
    return {"page": page_name, "data": sections}


def existing_sections(record: PageRecord) -> dict[str, Any]:
    """Sections of a stored row, tolerating rows written with a bad shape."""
    document = record.data if isinstance(record.data, dict) else {}
    sections = document.get("data")
    return dict(sections) if isinstance(sections, dict) else {}


class PageContentService:
    """Content access for one managed page."""

    def __init__(
        self,
        page: PageDefinition,
        db: DbClient,
        feed: ChangeFeed | None = None,
    ):
        self.page = page
        self.db = db
        self.feed = feed

    def get_content(self) -> Optional[PageRecord]:
        """Return the page row, or None when it is missing or cannot be read."""
        try:
            return self.db.get_page(self.page.page_name)
        except Exception:
            logger.exception("Failed to fetch %s content", self.page.label)
            return None

    def update_section(self, section_key: str, section_data: Any) -> UpdateResult:
        page_name = self.page.page_name
        try:
            # A failed read must not fall through to an insert.
            current = self.db.get_page(page_name)

            if current is None:
                document = build_page_document(page_name, {section_key: section_data})
                try:
                    record = self.db.insert_page(page_name, document)
                except PageExistsError:
                    # Another writer created the row after our read.
                    logger.info("%s row created concurrently, merging", self.page.label)
                    current = self.db.get_page(page_name)
                    if current is None:
                        return UpdateResult(
                            success=False,
                            error=f"Could not create or read the {self.page.label} row",
                        )
                    return self._merge(current, section_key, section_data)
                except Exception as exc:
                    logger.exception("Failed to create %s row", self.page.label)
                    return UpdateResult(success=False, error=str(exc))
                self._publish("INSERT", record)
                return UpdateResult(success=True, data=record)

            return self._merge(current, section_key, section_data)
        except Exception as exc:
            logger.exception("Error updating %s section", self.page.label)
            return UpdateResult(success=False, error=str(exc))

    def _merge(
        self, current: PageRecord, section_key: str, section_data: Any
    ) -> UpdateResult:
        sections = existing_sections(current)
        sections[section_key] = section_data
        document = build_page_document(self.page.page_name, sections)
        try:
            record = self.db.update_page(current.id, document)
        except Exception as exc:
            logger.exception("Failed to update %s section", self.page.label)
            return UpdateResult(success=False, error=str(exc))
        self._publish("UPDATE", record)
        return UpdateResult(success=True, data=record)

    def _publish(self, event: str, record: PageRecord) -> None:
        if self.feed is None:
            return
        try:
            self.feed.publish(
                ChangeEvent(
                    event=event,
                    page_name=record.page_name,
                    record=record.as_dict(),
                )
            )
        except Exception:
            logger.warning(
                "Failed to publish %s change for %s", event, record.page_name,
                exc_info=True,
            )
