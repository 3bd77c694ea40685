"""
Pages whose content is managed through the shared ``Home`` table.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PageDefinition:
    page_name: str
    response_key: str
    label: str


CONTACT = PageDefinition("contact", "contact", "contact")
FINANCIAL_ASSISTANCE = PageDefinition(
    "financial-assistance", "financialAssistance", "financial assistance"
)
REQUEST_DOOR_ACCESS = PageDefinition(
    "request-door-access", "requestDoorAccess", "request door access"
)
RESERVE_BASEMENT = PageDefinition(
    "reserve-basement", "reserveBasement", "reserve basement"
)
APPLY_MEMBERSHIP = PageDefinition(
    "apply-membership", "applyMembership", "apply membership"
)

PAGES: tuple[PageDefinition, ...] = (
    CONTACT,
    FINANCIAL_ASSISTANCE,
    REQUEST_DOOR_ACCESS,
    RESERVE_BASEMENT,
    APPLY_MEMBERSHIP,
)

PAGES_BY_NAME = {page.page_name: page for page in PAGES}


def get_page_definition(page_name: str) -> PageDefinition:
    try:
        return PAGES_BY_NAME[page_name]
    except KeyError:
        raise ValueError(
            f"Unknown page {page_name!r}; expected one of {', '.join(PAGES_BY_NAME)}"
        ) from None
