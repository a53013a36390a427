# orderflow/services/notification_service.py
import json
import threading
from typing import Callable

import redis
from redis.exceptions import RedisError

from orderflow.celery_worker import celery_app
from orderflow.domain.schemas import OrderOut
from orderflow.domain.topics import Topic, TopicKind, topic_for
from orderflow.utils.settings import NOTIFICATION_BACKEND, NOTIFICATION_TIMEOUT_SECONDS, REDIS_URL
from orderflow.utils.logging import get_logger

logger = get_logger(__name__)

ORDER_CREATED = "order_created"
ORDER_UPDATED = "order_updated"
PAYMENT_CONFIRMED = "payment_confirmed"


class NotificationPublisher:
    """Transport publikacji, jeden kanal = jeden topic."""

    def publish(self, topic: str, message: str) -> None:
        raise NotImplementedError


class NoopPublisher(NotificationPublisher):
    def publish(self, topic: str, message: str) -> None:
        return None


class InMemoryPublisher(NotificationPublisher):
    """Trzyma opublikowane eventy w pamieci (testy, lokalny dev)."""

    def __init__(self):
        self._lock = threading.Lock()
        self.messages: list[tuple[str, dict]] = []

    def publish(self, topic: str, message: str) -> None:
        with self._lock:
            self.messages.append((topic, json.loads(message)))

    def events_for(self, topic: str) -> list[dict]:
        with self._lock:
            return [payload for t, payload in self.messages if t == topic]


class RedisPublisher(NotificationPublisher):
    def __init__(self, url: str | None = None, timeout: float | None = None):
        timeout = timeout or NOTIFICATION_TIMEOUT_SECONDS
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )

    def publish(self, topic: str, message: str) -> None:
        receivers = self.redis.publish(topic, message)
        logger.debug(f"Published to {topic} ({receivers} subscribers)")


class CeleryPublisher(NotificationPublisher):
    """Publikacja do Redisa z workera Celery, bez ponawiania wysylki do brokera."""

    def publish(self, topic: str, message: str) -> None:
        publish_order_event_task.apply_async(args=[topic, message], retry=False)


@celery_app.task(name="orderflow.services.notification_service.publish_order_event_task")
def publish_order_event_task(topic: str, message: str):
    try:
        RedisPublisher().publish(topic, message)
    except RedisError as e:
        logger.warning(f"[NOTIFICATION] Publish to {topic} failed: {e}")
        return {"topic": topic, "status": "failed"}
    return {"topic": topic, "status": "sent"}


def build_publisher(backend: str | None = None) -> NotificationPublisher:
    backend = backend or NOTIFICATION_BACKEND
    if backend == "celery":
        return CeleryPublisher()
    if backend == "noop":
        return NoopPublisher()
    return RedisPublisher()


class NotificationService:
    """
    Fan-out eventow zamowienia na kanaly restaurant:/order:/customer:.

    Best effort: blad publikacji jest logowany i nigdy nie wraca do wywolujacego,
    stan zamowienia jest juz zapisany w bazie zanim tu trafimy.
    """

    def __init__(self, publisher: NotificationPublisher | None = None):
        self.publisher = publisher or NoopPublisher()

    def order_created(self, order) -> None:
        self._fan_out(ORDER_CREATED, order, self._restaurant_topics)

    def order_updated(self, order) -> None:
        self._fan_out(ORDER_UPDATED, order, self._order_topics)

    def payment_confirmed(self, order) -> None:
        self._fan_out(ORDER_UPDATED, order, self._order_topics)
        self._fan_out(PAYMENT_CONFIRMED, order, self._order_topics)

    @staticmethod
    def _restaurant_topics(order) -> list[Topic]:
        return [topic_for(TopicKind.RESTAURANT, order.restaurant_id)]

    @staticmethod
    def _order_topics(order) -> list[Topic]:
        return [
            topic_for(TopicKind.ORDER, order.id),
            topic_for(TopicKind.CUSTOMER, order.customer_id),
        ]

    def _fan_out(self, event: str, order, topics_of: Callable[[object], list[Topic]]) -> None:
        # zamowienie jest juz zapisane, wiec zaden blad ponizej nie wychodzi do wywolujacego
        try:
            topics = topics_of(order)
            snapshot = OrderOut.model_validate(order).model_dump(mode="json")
        except Exception as e:
            logger.warning(f"[NOTIFICATION] Cannot prepare {event} for order {getattr(order, 'id', None)}: {e}")
            return

        for topic in topics:
            message = json.dumps({"event": event, "topic": str(topic), "order": snapshot})
            try:
                self.publisher.publish(str(topic), message)
            except Exception as e:
                logger.warning(f"[NOTIFICATION] {event} for order {order.id} to {topic} failed: {e}")
