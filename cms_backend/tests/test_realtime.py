import unittest
from unittest.mock import MagicMock, patch

from redis import exceptions as redis_exceptions

from cms_backend.realtime import ChangeEvent, InMemoryChangeFeed, RedisChangeFeed


class ChangeEventTests(unittest.TestCase):
    def test_json_round_trip_keeps_table_metadata(self):
        event = ChangeEvent(event="UPDATE", page_name="contact", record={"id": 3})
        restored = ChangeEvent.from_json(event.to_json().encode("utf-8"))
        self.assertEqual(restored, event)
        self.assertEqual(restored.table, "Home")
        self.assertEqual(restored.schema, "public")


class InMemoryChangeFeedTests(unittest.TestCase):
    def setUp(self):
        self.feed = InMemoryChangeFeed()

    def test_page_filter(self):
        seen = []
        self.feed.subscribe(seen.append, page_name="reserve-basement")
        self.feed.publish(ChangeEvent(event="UPDATE", page_name="contact"))
        self.feed.publish(ChangeEvent(event="UPDATE", page_name="reserve-basement"))
        self.assertEqual([e.page_name for e in seen], ["reserve-basement"])

    def test_unfiltered_subscriber_hears_everything(self):
        seen = []
        self.feed.subscribe(seen.append)
        self.feed.publish(ChangeEvent(event="INSERT", page_name="contact"))
        self.feed.publish(ChangeEvent(event="UPDATE", page_name="apply-membership"))
        self.assertEqual(len(seen), 2)

    def test_close_stops_delivery(self):
        seen = []
        subscription = self.feed.subscribe(seen.append)
        subscription.close()
        subscription.close()
        self.feed.publish(ChangeEvent(event="UPDATE", page_name="contact"))
        self.assertEqual(seen, [])
        self.assertEqual(self.feed.subscriptions, [])

    def test_failing_subscriber_does_not_block_others(self):
        seen = []

        def broken(event):
            raise RuntimeError("subscriber bug")

        self.feed.subscribe(broken)
        self.feed.subscribe(seen.append)
        with self.assertLogs("cms_backend.realtime", level="ERROR"):
            self.feed.publish(ChangeEvent(event="UPDATE", page_name="contact"))
        self.assertEqual(len(seen), 1)


class RedisChangeFeedTests(unittest.TestCase):
    def setUp(self):
        patcher = patch("cms_backend.realtime.redis.Redis.from_url")
        self.from_url = patcher.start()
        self.addCleanup(patcher.stop)
        self.client = MagicMock()
        self.from_url.return_value = self.client
        self.feed = RedisChangeFeed("redis://localhost:6379/0")

    def test_publish_to_table_channel(self):
        event = ChangeEvent(event="INSERT", page_name="contact")
        self.feed.publish(event)
        self.client.publish.assert_called_once_with("cms:changes:Home", event.to_json())

    def test_publish_reconnects_once(self):
        broken = MagicMock()
        broken.publish.side_effect = redis_exceptions.ConnectionError("closed")
        fresh = MagicMock()
        self.feed.client = broken
        self.from_url.return_value = fresh

        self.feed.publish(ChangeEvent(event="UPDATE", page_name="contact"))
        fresh.publish.assert_called_once()
        self.assertIs(self.feed.client, fresh)

    def _subscribe(self, callback, **kwargs):
        pubsub = self.client.pubsub.return_value
        subscription = self.feed.subscribe(callback, **kwargs)
        handler = pubsub.subscribe.call_args.kwargs["cms:changes:Home"]
        return pubsub, subscription, handler

    def test_subscribe_dispatches_matching_messages(self):
        seen = []
        pubsub, _, handler = self._subscribe(seen.append, page_name="reserve-basement")
        pubsub.run_in_thread.assert_called_once_with(sleep_time=0.2, daemon=True)

        handler({"data": ChangeEvent(event="UPDATE", page_name="contact").to_json()})
        handler(
            {
                "data": ChangeEvent(event="UPDATE", page_name="reserve-basement")
                .to_json()
                .encode("utf-8")
            }
        )
        self.assertEqual([e.page_name for e in seen], ["reserve-basement"])

    def test_malformed_message_is_ignored(self):
        seen = []
        _, _, handler = self._subscribe(seen.append)
        with self.assertLogs("cms_backend.realtime", level="WARNING"):
            handler({"data": b"not json"})
            handler({"data": '{"event": "UPDATE"}'})
        self.assertEqual(seen, [])

    def test_close_stops_thread_and_pubsub(self):
        pubsub, subscription, _ = self._subscribe(lambda event: None)
        thread = pubsub.run_in_thread.return_value
        subscription.close()
        thread.stop.assert_called_once()
        pubsub.close.assert_called_once()


if __name__ == "__main__":
    unittest.main()
