import threading
import unittest
from unittest.mock import MagicMock

import requests

from cms_backend.realtime import ChangeEvent, InMemoryChangeFeed
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
from cms_client.models import ContactDetail, DrawerHeader, PolicyItem
from cms_client.reserve_basement import (
    ERROR_MESSAGE,
    FORM_NAME,
    SUCCESS_MESSAGE,
    ReserveBasementContentCache,
    ReserveBasementDrawer,
    extract_reserve_basement_data,
    normalize_content_payload,
)

SECTIONS = {
    "header": {
        "enabled": True,
        "data": {"drawer-title": "Book the basement", "drawer-subtitle": "<p>Hi</p>"},
    },
    "content": {
        "enabled": True,
        "data": {
            "introCopy": [{"text": "First"}, "Second", {"text": ""}],
            "contactDetails": [
                {"label": "Phone", "value": "555", "href": "tel:555"},
                "Office",
                {"value": "no label"},
            ],
            "policy-title": "Rules",
            "policyItems": ["Be kind", {"title": "Clean up", "description": "Always"}],
            "form-url": "https://forms.example.org/basement",
        },
    },
}


def api_payload(sections=SECTIONS):
    return {
        "ok": True,
        "reserveBasement": {
            "id": 1,
            "page_name": "reserve-basement",
            "data": {"page": "reserve-basement", "data": sections},
        },
    }


def make_response(payload=None, ok=True, status_code=200):
    response = MagicMock()
    response.ok = ok
    response.status_code = status_code
    response.json.return_value = payload
    return response


def make_cache(*responses, feed=None):
    session = MagicMock()
    session.get.side_effect = list(responses)
    api = SiteApiClient("https://arqum.org/", session=session)
    return ReserveBasementContentCache(api, feed=feed), session


class NormalizeContentPayloadTests(unittest.TestCase):
    def test_unwraps_sections(self):
        self.assertEqual(normalize_content_payload(api_payload()), SECTIONS)

    def test_missing_row(self):
        self.assertIsNone(normalize_content_payload({"ok": True, "reserveBasement": None}))

    def test_not_ok(self):
        self.assertIsNone(normalize_content_payload({"ok": False}))
        self.assertIsNone(normalize_content_payload(None))

    def test_flat_document_is_used_as_is(self):
        payload = {"ok": True, "reserveBasement": {"data": {"header": {"data": {}}}}}
        self.assertEqual(normalize_content_payload(payload), {"header": {"data": {}}})


class ContentCacheTests(unittest.TestCase):
    def test_fetch_uses_cache_until_forced(self):
        cache, session = make_cache(
            make_response(api_payload()), make_response(api_payload({}))
        )
        self.assertEqual(cache.fetch(), SECTIONS)
        self.assertEqual(cache.fetch(), SECTIONS)
        self.assertEqual(session.get.call_count, 1)

        session.get.assert_called_with(
            "https://arqum.org/api/reserve-basement",
            headers={"Cache-Control": "no-store"},
            timeout=30,
        )

        cache.fetch(force=True)
        self.assertEqual(session.get.call_count, 2)

    def test_error_status_raises_and_allows_retry(self):
        cache, session = make_cache(
            make_response(None, ok=False, status_code=503),
            make_response(api_payload()),
        )
        with self.assertRaises(ApiError) as ctx:
            cache.fetch()
        self.assertEqual(ctx.exception.status_code, 503)
        self.assertIsNone(cache.value)

        self.assertEqual(cache.fetch(), SECTIONS)

    def test_concurrent_fetches_share_one_request(self):
        entered = threading.Event()
        release = threading.Event()

        def slow_get(*args, **kwargs):
            entered.set()
            release.wait(5)
            return make_response(api_payload())

        session = MagicMock()
        session.get.side_effect = slow_get
        cache = ReserveBasementContentCache(SiteApiClient("https://arqum.org", session=session))

        results = []
        first = threading.Thread(target=lambda: results.append(cache.fetch()))
        first.start()
        self.assertTrue(entered.wait(5))
        second = threading.Thread(target=lambda: results.append(cache.fetch()))
        second.start()
        release.set()
        first.join(5)
        second.join(5)

        self.assertEqual(results, [SECTIONS, SECTIONS])
        self.assertEqual(session.get.call_count, 1)

    def test_subscribers_are_notified(self):
        cache, _ = make_cache(make_response(api_payload()))
        seen = []

        def broken(value):
            raise RuntimeError("subscriber bug")

        cache.subscribe(broken)
        cache.subscribe(seen.append)
        with self.assertLogs("cms_client.reserve_basement", level="ERROR"):
            cache.fetch()
        self.assertEqual(seen, [SECTIONS])

    def test_change_feed_forces_refresh(self):
        feed = InMemoryChangeFeed()
        updated = {"header": {"data": {"drawer-title": "Updated"}}}
        cache, session = make_cache(
            make_response(api_payload()), make_response(api_payload(updated)), feed=feed
        )
        cache.fetch()
        seen = []
        unsubscribe = cache.subscribe(seen.append)
        self.assertTrue(cache.is_listening)

        feed.publish(ChangeEvent(event="UPDATE", page_name="contact"))
        self.assertEqual(session.get.call_count, 1)

        feed.publish(ChangeEvent(event="UPDATE", page_name="reserve-basement"))
        self.assertEqual(session.get.call_count, 2)
        self.assertEqual(cache.value, updated)
        self.assertEqual(seen, [updated])

        unsubscribe()
        self.assertFalse(cache.is_listening)
        self.assertEqual(feed.subscriptions, [])

    def test_live_subscription_is_shared(self):
        feed = InMemoryChangeFeed()
        cache, _ = make_cache(feed=feed)
        first = cache.subscribe(lambda value: None)
        second = cache.subscribe(lambda value: None)
        self.assertEqual(len(feed.subscriptions), 1)

        first()
        self.assertTrue(cache.is_listening)
        second()
        self.assertFalse(cache.is_listening)
        self.assertEqual(cache.subscriber_count, 0)


class ExtractReserveBasementDataTests(unittest.TestCase):
    def test_extracts_all_fields(self):
        data = extract_reserve_basement_data(SECTIONS)
        self.assertEqual(data.header, DrawerHeader("Book the basement", "<p>Hi</p>"))
        self.assertEqual(data.intro_copy, ["First", "Second"])
        self.assertEqual(
            data.contact_details,
            [ContactDetail("Phone", "555", "tel:555"), ContactDetail("Office")],
        )
        self.assertEqual(data.policy_title, "Rules")
        self.assertEqual(
            data.policy_items,
            [PolicyItem("Be kind"), PolicyItem("Clean up", "Always")],
        )
        self.assertEqual(data.reservation_form_url, "https://forms.example.org/basement")

    def test_camel_case_keys(self):
        data = extract_reserve_basement_data(
            {
                "header": {"data": {"drawerTitle": "T", "drawerSubtitle": "S"}},
                "content": {"data": {"policyTitle": "P", "formUrl": "https://f"}},
            }
        )
        self.assertEqual(data.header, DrawerHeader("T", "S"))
        self.assertEqual(data.policy_title, "P")
        self.assertEqual(data.reservation_form_url, "https://f")

    def test_empty_source(self):
        data = extract_reserve_basement_data(None)
        self.assertIsNone(data.header)
        self.assertEqual(data.intro_copy, [])


class DrawerTests(unittest.TestCase):
    def test_open_with_content(self):
        cache, _ = make_cache(make_response(api_payload()))
        drawer = ReserveBasementDrawer(cache)
        view = drawer.open()

        self.assertTrue(view.is_open)
        self.assertFalse(view.loading)
        self.assertEqual(view.title, "Book the basement")
        self.assertEqual(view.description, "<p>Hi</p>")
        self.assertTrue(view.description_is_html)
        self.assertEqual(view.intro_copy, ["First", "Second"])
        self.assertEqual(view.policy_title, "Rules")
        self.assertEqual(view.reservation_form_url, "https://forms.example.org/basement")

    def test_open_falls_back_to_defaults_on_failure(self):
        cache, _ = make_cache(requests.ConnectionError("offline"))
        drawer = ReserveBasementDrawer(cache)
        with self.assertLogs("cms_client.reserve_basement", level="ERROR"):
            view = drawer.open()

        self.assertEqual(view.title, DEFAULT_DRAWER_TITLE)
        self.assertEqual(view.description, DEFAULT_DRAWER_DESCRIPTION)
        self.assertFalse(view.description_is_html)
        self.assertEqual(view.intro_copy, list(DEFAULT_INTRO_COPY))
        self.assertEqual(view.contact_details, list(DEFAULT_CONTACT_DETAILS))
        self.assertEqual(view.policy_title, DEFAULT_POLICY_TITLE)
        self.assertEqual(view.policy_items, list(DEFAULT_POLICY_ITEMS))
        self.assertEqual(view.reservation_form_url, DEFAULT_RESERVATION_FORM_URL)

    def test_open_without_row_uses_defaults(self):
        cache, _ = make_cache(make_response({"ok": True, "reserveBasement": None}))
        view = ReserveBasementDrawer(cache).open()
        self.assertEqual(view.intro_copy, list(DEFAULT_INTRO_COPY))
        self.assertFalse(view.loading)

    def test_header_prop_is_used_when_database_has_none(self):
        cache, _ = make_cache(make_response(api_payload({"content": {"data": {}}})))
        drawer = ReserveBasementDrawer(cache, header=DrawerHeader("From page", None))
        view = drawer.open()
        self.assertEqual(view.title, "From page")
        self.assertEqual(view.description, DEFAULT_DRAWER_DESCRIPTION)

    def test_loading_before_first_fetch(self):
        cache, _ = make_cache()
        view = ReserveBasementDrawer(cache).view()
        self.assertTrue(view.loading)
        self.assertEqual(view.intro_copy, [])
        self.assertEqual(view.title, DEFAULT_DRAWER_TITLE)

    def test_cached_header_shows_immediately(self):
        cache, _ = make_cache(make_response(api_payload()))
        cache.fetch()
        view = ReserveBasementDrawer(cache).view()
        self.assertEqual(view.title, "Book the basement")

    def test_mounted_drawer_follows_cache_updates(self):
        updated = {"header": {"data": {"drawer-title": "Updated"}}}
        cache, _ = make_cache(
            make_response(api_payload()), make_response(api_payload(updated))
        )
        drawer = ReserveBasementDrawer(cache)
        drawer.mount()
        cache.fetch()
        self.assertEqual(drawer.view().title, "Book the basement")

        drawer.unmount()
        cache.fetch(force=True)
        self.assertEqual(drawer.view().title, "Book the basement")
        self.assertEqual(cache.subscriber_count, 0)

    def test_submit_success_closes_drawer(self):
        closed = []
        cache, session = make_cache(make_response(api_payload()))
        session.post.return_value = make_response({"ok": True, "info": {}})
        drawer = ReserveBasementDrawer(cache, on_close=lambda: closed.append(True))
        drawer.open()

        notice = drawer.submit({"name": "Amina", "date": "2026-11-01"})

        self.assertTrue(notice.ok)
        self.assertEqual(notice.message, SUCCESS_MESSAGE)
        self.assertFalse(drawer.is_open)
        self.assertEqual(closed, [True])
        url = session.post.call_args.args[0]
        body = session.post.call_args.kwargs["json"]
        self.assertEqual(url, "https://arqum.org/api/send-email")
        self.assertEqual(body["formName"], FORM_NAME)
        self.assertEqual(body["subject"], "Basement reservation: Amina")
        self.assertEqual(body["text"], "name: Amina\ndate: 2026-11-01")

    def test_submit_error_keeps_drawer_open(self):
        cache, session = make_cache(make_response(api_payload()))
        session.post.return_value = make_response(
            {"error": "SMTP not configured on server"}, ok=False, status_code=500
        )
        drawer = ReserveBasementDrawer(cache)
        drawer.open()

        with self.assertLogs("cms_client.reserve_basement", level="ERROR"):
            notice = drawer.submit({"name": "Amina"})

        self.assertFalse(notice.ok)
        self.assertEqual(notice.message, ERROR_MESSAGE)
        self.assertTrue(drawer.is_open)


if __name__ == "__main__":
    unittest.main()
