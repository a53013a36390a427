import json
from types import SimpleNamespace

import pytest

from orderflow.domain.errors import ValidationError
from orderflow.domain.topics import TopicKind, parse_topic, topic_for
from orderflow.services.notification_service import (
    CeleryPublisher,
    InMemoryPublisher,
    NoopPublisher,
    NotificationPublisher,
    NotificationService,
    RedisPublisher,
    build_publisher,
)


class BrokenPublisher(NotificationPublisher):
    def __init__(self):
        self.attempts = []

    def publish(self, topic, message):
        self.attempts.append(topic)
        raise ConnectionError("redis is down")


class TestTopics:
    def test_topic_names(self):
        assert str(topic_for(TopicKind.RESTAURANT, "R1")) == "restaurant:R1"
        assert str(topic_for(TopicKind.ORDER, 12)) == "order:12"
        assert str(topic_for(TopicKind.CUSTOMER, " C1 ")) == "customer:C1"

    def test_parse_round_trips_publisher_names(self):
        topic = topic_for(TopicKind.ORDER, 7)
        assert parse_topic(str(topic)) == topic

    def test_keys_may_contain_colons(self):
        topic = parse_topic("customer:google:123")
        assert topic == topic_for(TopicKind.CUSTOMER, "google:123")
        assert str(topic) == "customer:google:123"

    @pytest.mark.parametrize("raw", ["order", "driver:1", "order:", "customer:  "])
    def test_parse_rejects_malformed(self, raw):
        with pytest.raises(ValidationError):
            parse_topic(raw)


class TestFanOut:
    def test_created_goes_to_restaurant_only(self, place_order, publisher):
        place_order()
        assert [topic for topic, _ in publisher.messages] == ["restaurant:R1"]

    def test_publisher_failure_never_fails_the_operation(self, db, catalog, customer, vendor):
        from orderflow.services.order_service import OrderService

        broken = BrokenPublisher()
        svc = OrderService(db=db, catalog=catalog, notifier=NotificationService(broken))

        order = svc.create_order(customer.id, "R1", [{"menu_item_id": "M1", "quantity": 1}], None, "cod")
        updated = svc.update_status(order.id, vendor, "confirmed")

        assert updated.status == "confirmed"
        # jedna proba na topic, bez ponawiania
        assert broken.attempts == ["restaurant:R1", f"order:{order.id}", "customer:C1"]

    def test_envelope_carries_full_snapshot(self, place_order, publisher):
        order = place_order()
        _, payload = publisher.messages[0]

        assert payload["event"] == "order_created"
        assert payload["topic"] == "restaurant:R1"
        assert payload["order"]["order_code"] == order.order_code
        assert payload["order"]["items"][0]["menu_item_id"] == "M1"

    def test_unserializable_order_is_logged_not_raised(self, publisher, caplog):
        service = NotificationService(publisher)
        service.order_updated(SimpleNamespace(id=1, customer_id="C1", restaurant_id="R1"))
        assert publisher.messages == []
        assert "Cannot prepare order_updated for order 1" in caplog.text

    def test_colon_in_customer_id_does_not_fail_the_write(self, order_service, vendor, publisher):
        order = order_service.create_order("google:123", "R1", [{"menu_item_id": "M1", "quantity": 1}], None, "cod")

        confirmed = order_service.update_status(order.id, vendor, "confirmed")

        assert confirmed.status == "confirmed"
        assert publisher.events_for("customer:google:123")[-1]["order"]["status"] == "confirmed"

    def test_topic_error_is_logged_not_raised(self, publisher, caplog):
        order = SimpleNamespace(id=1, customer_id="  ", restaurant_id="R1")

        NotificationService(publisher).order_updated(order)

        assert publisher.messages == []
        assert "Cannot prepare order_updated for order 1" in caplog.text

    def test_default_is_noop(self):
        assert isinstance(NotificationService().publisher, NoopPublisher)


class TestPublishers:
    def test_build_publisher(self):
        assert isinstance(build_publisher("noop"), NoopPublisher)
        assert isinstance(build_publisher("celery"), CeleryPublisher)
        assert isinstance(build_publisher("redis"), RedisPublisher)

    def test_redis_publisher_uses_bounded_timeouts(self):
        publisher = RedisPublisher("redis://localhost:6379/0", timeout=0.25)
        kwargs = publisher.redis.connection_pool.connection_kwargs
        assert kwargs["socket_timeout"] == 0.25
        assert kwargs["socket_connect_timeout"] == 0.25

    def test_redis_publisher_publishes_message(self, monkeypatch):
        publisher = RedisPublisher("redis://localhost:6379/0")
        sent = []
        monkeypatch.setattr(publisher.redis, "publish", lambda topic, message: sent.append((topic, message)) or 0)

        publisher.publish("order:1", json.dumps({"event": "order_updated"}))

        assert sent == [("order:1", '{"event": "order_updated"}')]

    def test_celery_publisher_does_not_retry_broker(self, monkeypatch):
        from orderflow.services import notification_service

        calls = []
        monkeypatch.setattr(
            notification_service.publish_order_event_task,
            "apply_async",
            lambda **kwargs: calls.append(kwargs),
        )

        CeleryPublisher().publish("order:1", "{}")

        assert calls == [{"args": ["order:1", "{}"], "retry": False}]

    def test_in_memory_publisher_filters_by_topic(self):
        publisher = InMemoryPublisher()
        publisher.publish("order:1", '{"event": "a"}')
        publisher.publish("order:2", '{"event": "b"}')
        assert publisher.events_for("order:2") == [{"event": "b"}]
