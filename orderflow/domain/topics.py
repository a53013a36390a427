"""Nazwy kanalow real-time, wspolne dla publishera i subskrybenta."""
from dataclasses import dataclass
from enum import Enum

from orderflow.domain.errors import ValidationError


class TopicKind(str, Enum):
    RESTAURANT = "restaurant"
    ORDER = "order"
    CUSTOMER = "customer"


@dataclass(frozen=True)
class Topic:
    kind: TopicKind
    key: str

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.key}"


def topic_for(kind: TopicKind, key) -> Topic:
    # klucz jest nieprzezroczysty, moze zawierac ":" (np. google:123)
    key = str(key).strip() if key is not None else ""
    if not key:
        raise ValidationError(f"Empty topic key for {kind.value}")
    return Topic(kind=kind, key=key)


def parse_topic(raw: str) -> Topic:
    """Separatorem jest tylko pierwszy ":", reszta nalezy do klucza."""
    kind, sep, key = raw.strip().partition(":")
    if not sep:
        raise ValidationError(f"Invalid topic: {raw!r}")
    try:
        kind = TopicKind(kind)
    except ValueError:
        raise ValidationError(f"Unknown topic family: {kind!r}")
    return topic_for(kind, key)
