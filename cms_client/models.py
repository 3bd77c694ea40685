"""
Dataclasses describing what the reserve-basement drawer displays.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class DrawerHeader:
    title: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class ContactDetail:
    label: str
    value: str = ""
    href: str = ""


@dataclass(frozen=True)
class PolicyItem:
    title: str
    description: str = ""


@dataclass
class ReserveBasementData:
    """Fields pulled out of the stored sections; empty when the database has none."""

    header: Optional[DrawerHeader] = None
    intro_copy: list[str] = field(default_factory=list)
    contact_details: list[ContactDetail] = field(default_factory=list)
    policy_title: str = ""
    policy_items: list[PolicyItem] = field(default_factory=list)
    reservation_form_url: str = ""


@dataclass
class DrawerView:
    """Everything needed to render the drawer, with fallbacks already applied."""

    is_open: bool
    loading: bool
    title: str
    description: str
    description_is_html: bool
    intro_copy: list[str]
    contact_details: list[ContactDetail]
    policy_title: str
    policy_items: list[PolicyItem]
    reservation_form_url: str


@dataclass(frozen=True)
class Notice:
    """Toast-style outcome of a form submission."""

    level: str
    message: str

    @property
    def ok(self) -> bool:
        return self.level == "success"
