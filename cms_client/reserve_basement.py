"""
Reserve-basement drawer: cached page content, live refresh, and the
reservation form.

The content cache is shared by every drawer built on it. It fetches from
``/api/reserve-basement`` at most once at a time, keeps the last result, and
when at least one subscriber is registered it listens on the change feed so an
edit to the page forces a refetch.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Mapping, Optional

import requests

from cms_backend.pages import RESERVE_BASEMENT
from cms_backend.realtime import ChangeEvent, ChangeFeed, Subscription
from cms_client.api import ApiError, SiteApiClient
from cms_client.defaults import (
    DEFAULT_CONTACT_DETAILS,
    DEFAULT_DRAWER_DESCRIPTION,
    DEFAULT_DRAWER_TITLE,
    DEFAULT_INTRO_COPY,
    DEFAULT_POLICY_ITEMS,
    DEFAULT_POLICY_TITLE,
    DEFAULT_RESERVATION_FORM_URL,
)
from cms_client.models import (
    ContactDetail,
    DrawerHeader,
    DrawerView,
    Notice,
    PolicyItem,
    ReserveBasementData,
)

logger = logging.getLogger(__name__)

CONTENT_PATH = f"/api/{RESERVE_BASEMENT.page_name}"
SEND_EMAIL_PATH = "/api/send-email"

FORM_NAME = "Basement Reservation"
SUCCESS_MESSAGE = (
    "Your reservation request was submitted. We will contact you by email to "
    "confirm availability."
)
ERROR_MESSAGE = (
    "There was an error submitting your reservation. Please try again later."
)

CacheCallback = Callable[[Optional[dict]], None]


def normalize_content_payload(payload: Any) -> Optional[dict]:
    """Reduce an API response to the section map the drawer reads from."""
    if not isinstance(payload, Mapping) or not payload.get("ok"):
        return None
    row = payload.get(RESERVE_BASEMENT.response_key)
    data = row.get("data") if isinstance(row, Mapping) else None
    if not data:
        return None
    inner = data.get("data") if isinstance(data, Mapping) else None
    return inner if isinstance(inner, Mapping) else data


class ReserveBasementContentCache:
    def __init__(self, api: SiteApiClient, feed: ChangeFeed | None = None):
        self.api = api
        self.feed = feed
        self._lock = threading.Lock()
        self._value: Optional[dict] = None
        self._inflight: Optional[Future] = None
        self._subscribers: set[CacheCallback] = set()
        self._subscription: Optional[Subscription] = None

    @property
    def value(self) -> Optional[dict]:
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def is_listening(self) -> bool:
        return self._subscription is not None

    def fetch(self, force: bool = False) -> Optional[dict]:
        """
        Return the cached content, fetching it when needed.

        Concurrent callers share one request unless ``force`` is set, in
        which case a new request is always made.
        """
        with self._lock:
            if self._value is not None and not force:
                return self._value
            pending = self._inflight
            if pending is not None and not force:
                owner = False
            else:
                pending = Future()
                self._inflight = pending
                owner = True

        if not owner:
            return pending.result()

        try:
            value = self._load()
        except Exception as exc:
            with self._lock:
                if self._inflight is pending:
                    self._inflight = None
            pending.set_exception(exc)
            raise

        with self._lock:
            self._value = value
            if self._inflight is pending:
                self._inflight = None
            subscribers = list(self._subscribers)
        pending.set_result(value)

        for callback in subscribers:
            try:
                callback(value)
            except Exception:
                logger.exception("Reserve basement cache subscriber failed")
        return value

    def _load(self) -> Optional[dict]:
        response = self.api.get(CONTENT_PATH)
        if not response.ok:
            raise ApiError("Failed to fetch reserve basement", response.status_code)
        return normalize_content_payload(response.json())

    def subscribe(self, callback: CacheCallback) -> Callable[[], None]:
        """Register for cache updates; returns the matching unsubscribe."""
        with self._lock:
            self._subscribers.add(callback)
        self._ensure_live_subscription()

        def unsubscribe() -> None:
            subscription = None
            with self._lock:
                self._subscribers.discard(callback)
                if not self._subscribers and self._subscription is not None:
                    subscription, self._subscription = self._subscription, None
            if subscription is not None:
                subscription.close()

        return unsubscribe

    def _ensure_live_subscription(self) -> None:
        if self.feed is None:
            return
        with self._lock:
            if self._subscription is not None:
                return
            self._subscription = self.feed.subscribe(
                self._on_change, page_name=RESERVE_BASEMENT.page_name
            )

    def _on_change(self, event: ChangeEvent) -> None:
        logger.info("Reserve basement %s change received", event.event)
        try:
            self.fetch(force=True)
        except Exception:
            logger.exception("Failed to refresh reserve basement cache after change")


def _first(mapping: Mapping, *keys: str) -> Any:
    for key in keys:
        value = mapping.get(key)
        if value:
            return value
    return None


def _section_data(src: Mapping, key: str) -> Any:
    section = src.get(key)
    return section.get("data") if isinstance(section, Mapping) else None


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def extract_reserve_basement_data(src: Optional[Mapping]) -> ReserveBasementData:
    """
    Pull display fields out of the stored sections.

    Only what is in the database is returned; fallbacks are applied by the
    drawer. Both kebab-case and camelCase field names are accepted.
    """
    result = ReserveBasementData()
    if not src:
        return result

    header_data = _section_data(src, "header")
    if header_data:
        header = header_data if isinstance(header_data, Mapping) else {}
        result.header = DrawerHeader(
            title=_first(header, "drawer-title", "drawerTitle"),
            description=_first(header, "drawer-subtitle", "drawerSubtitle"),
        )

    content = _section_data(src, "content")
    if not isinstance(content, Mapping):
        content = {}

    intro = _first(content, "introCopy", "intro-copy")
    if isinstance(intro, list):
        paragraphs = []
        for item in intro:
            if isinstance(item, Mapping):
                item = item.get("text")
            paragraphs.append(_text(item))
        result.intro_copy = [p for p in paragraphs if p]

    details = _first(content, "contactDetails", "contact-details")
    if isinstance(details, list):
        parsed = []
        for item in details:
            if isinstance(item, str):
                parsed.append(ContactDetail(label=item))
            elif isinstance(item, Mapping):
                parsed.append(
                    ContactDetail(
                        label=_text(item.get("label")),
                        value=_text(item.get("value")),
                        href=_text(item.get("href")),
                    )
                )
        result.contact_details = [d for d in parsed if d.label]

    result.policy_title = _text(_first(content, "policy-title", "policyTitle"))

    policies = _first(content, "policyItems", "policy-items")
    if isinstance(policies, list):
        parsed_items = []
        for item in policies:
            if isinstance(item, str):
                parsed_items.append(PolicyItem(title=item))
            elif isinstance(item, Mapping):
                parsed_items.append(
                    PolicyItem(
                        title=_text(item.get("title")),
                        description=_text(item.get("description")),
                    )
                )
        result.policy_items = [p for p in parsed_items if p.title]

    result.reservation_form_url = _text(
        _first(content, "form-url", "formUrl", "reservationFormUrl")
    )
    return result


class ReserveBasementDrawer:
    """
    State holder for the reserve-basement drawer.

    ``mount``/``unmount`` bracket the drawer's lifetime on the page, ``open``
    always pulls fresh content, and ``view`` gives the display model.
    """

    def __init__(
        self,
        cache: ReserveBasementContentCache,
        header: DrawerHeader | None = None,
        on_close: Callable[[], None] | None = None,
    ):
        self.cache = cache
        self.header = header
        self.on_close = on_close
        self.is_open = False
        self.data_loaded = False

        # Show whatever is already cached straight away.
        cached = cache.value
        self._header = (
            extract_reserve_basement_data(cached).header if cached is not None else None
        )
        self._intro_copy: list[str] = []
        self._contact_details: list[ContactDetail] = []
        self._policy_title = ""
        self._policy_items: list[PolicyItem] = []
        self._reservation_form_url = ""
        self._mounted = False
        self._unsubscribe: Callable[[], None] | None = None

    def mount(self) -> None:
        if self._mounted:
            return
        self._mounted = True
        self._unsubscribe = self.cache.subscribe(self._on_cache_update)

    def unmount(self) -> None:
        self._mounted = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_cache_update(self, data: Optional[dict]) -> None:
        if self._mounted and data is not None:
            self._apply(data)

    def open(self) -> DrawerView:
        self.is_open = True
        try:
            data = self.cache.fetch(force=True)
        except Exception:
            logger.exception("Reserve basement fetch failed")
            data = None
        if data is not None:
            self._apply(data)
        else:
            self._apply(None, use_defaults=True)
        return self.view()

    def close(self) -> None:
        self.is_open = False
        if self.on_close is not None:
            self.on_close()

    def _apply(self, src: Optional[Mapping], use_defaults: bool = False) -> None:
        if src is None and not use_defaults:
            return
        extracted = extract_reserve_basement_data(src)
        self._header = extracted.header
        self._intro_copy = extracted.intro_copy or (
            list(DEFAULT_INTRO_COPY) if use_defaults else []
        )
        self._contact_details = extracted.contact_details or (
            list(DEFAULT_CONTACT_DETAILS) if use_defaults else []
        )
        self._policy_title = extracted.policy_title or (
            DEFAULT_POLICY_TITLE if use_defaults else ""
        )
        self._policy_items = extracted.policy_items or (
            list(DEFAULT_POLICY_ITEMS) if use_defaults else []
        )
        self._reservation_form_url = extracted.reservation_form_url or (
            DEFAULT_RESERVATION_FORM_URL if use_defaults else ""
        )
        self.data_loaded = True

    def view(self) -> DrawerView:
        header = self._header or self.header
        title = header.title if header and header.title is not None else DEFAULT_DRAWER_TITLE
        description = header.description if header else None

        if self.data_loaded:
            intro_copy = self._intro_copy or list(DEFAULT_INTRO_COPY)
        else:
            intro_copy = list(self._intro_copy)

        return DrawerView(
            is_open=self.is_open,
            loading=not self.data_loaded and not intro_copy,
            title=title,
            description=description or DEFAULT_DRAWER_DESCRIPTION,
            description_is_html=bool(description),
            intro_copy=intro_copy,
            contact_details=self._contact_details or list(DEFAULT_CONTACT_DETAILS),
            policy_title=self._policy_title or DEFAULT_POLICY_TITLE,
            policy_items=self._policy_items or list(DEFAULT_POLICY_ITEMS),
            reservation_form_url=self._reservation_form_url or DEFAULT_RESERVATION_FORM_URL,
        )

    def submit(self, form: Mapping[str, Any]) -> Notice:
        """Send the reservation form through the email endpoint."""
        payload = {
            "formName": FORM_NAME,
            "subject": f"Basement reservation: {form.get('name') or '(no name)'}",
            "text": "\n".join(f"{key}: {value}" for key, value in form.items()),
        }
        try:
            response = self.cache.api.post_json(SEND_EMAIL_PATH, payload)
            body = response.json()
            if not response.ok:
                error = body.get("error") if isinstance(body, Mapping) else None
                raise ApiError(error or "Failed to send message", response.status_code)
        except (requests.RequestException, ValueError, ApiError):
            logger.exception("Reservation submission failed")
            return Notice("error", ERROR_MESSAGE)

        self.close()
        return Notice("success", SUCCESS_MESSAGE)
