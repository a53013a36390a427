# orderflow/domain/transitions.py
"""
Polityka przejsc statusu zamowienia.

Jedna tabela (from, to) -> dozwolone role + efekty uboczne. Kolejnosc:
najpierw guard autoryzacji (rola, wlasnosc zamowienia), potem tabela przejsc.
Nie dotyka bazy, wiec testowalna bez warstwy transportu.
"""
from dataclasses import dataclass, field
from typing import FrozenSet

from orderflow.domain.enums import OrderStatus, Role
from orderflow.domain.errors import ConcurrentUpdate, Forbidden, InvalidTransition


def normalize_id(value) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class Actor:
    id: str
    role: Role
    restaurant_ids: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def build(cls, user_id, role, restaurant_ids=()) -> "Actor":
        try:
            role = Role(role)
        except ValueError:
            raise Forbidden(f"Unknown role: {role!r}")

        actor_id = normalize_id(user_id)
        if actor_id is None:
            raise Forbidden("Missing actor identity")

        owned = frozenset(r for r in (normalize_id(x) for x in restaurant_ids) if r)
        return cls(id=actor_id, role=role, restaurant_ids=owned)

    def owns_restaurant(self, restaurant_id) -> bool:
        return self.role is Role.VENDOR and normalize_id(restaurant_id) in self.restaurant_ids


@dataclass(frozen=True)
class TransitionRule:
    roles: FrozenSet[Role]
    sets_estimate: bool = False
    sets_cancellation: bool = False
    claims_partner: bool = False
    sets_delivered_at: bool = False


S = OrderStatus
_VENDOR = frozenset({Role.VENDOR})
_PARTNER = frozenset({Role.DELIVERY_PARTNER})
_CANCELLERS = frozenset({Role.VENDOR, Role.CUSTOMER})

TRANSITIONS: dict[tuple[OrderStatus, OrderStatus], TransitionRule] = {
    (S.PENDING, S.CONFIRMED): TransitionRule(_VENDOR, sets_estimate=True),
    (S.PENDING, S.CANCELLED): TransitionRule(_CANCELLERS, sets_cancellation=True),
    (S.CONFIRMED, S.CANCELLED): TransitionRule(_CANCELLERS, sets_cancellation=True),
    (S.CONFIRMED, S.PREPARING): TransitionRule(_VENDOR),
    (S.PREPARING, S.READY): TransitionRule(_VENDOR),
    (S.READY, S.PICKED_UP): TransitionRule(_PARTNER, claims_partner=True),
    (S.PICKED_UP, S.ON_THE_WAY): TransitionRule(_PARTNER),
    (S.ON_THE_WAY, S.DELIVERED): TransitionRule(_PARTNER, sets_delivered_at=True),
}

#statusy o ktore dana rola w ogole moze prosic
ROLE_TARGETS: dict[Role, FrozenSet[OrderStatus]] = {
    role: frozenset(target for (_, target), rule in TRANSITIONS.items() if role in rule.roles)
    for role in Role
}


class TransitionPolicy:
    def __init__(self, transitions: dict | None = None):
        self.transitions = transitions if transitions is not None else TRANSITIONS

    def can_view(self, actor: Actor, order) -> bool:
        if actor.role is Role.CUSTOMER:
            return normalize_id(order.customer_id) == actor.id
        if actor.role is Role.VENDOR:
            return actor.owns_restaurant(order.restaurant_id)
        if actor.role is Role.DELIVERY_PARTNER:
            partner_id = normalize_id(order.delivery_partner_id)
            return partner_id == actor.id or (
                partner_id is None and OrderStatus(order.status) is OrderStatus.READY
            )
        return False

    def authorize(self, actor: Actor, order, target: OrderStatus) -> None:
        """Guard autoryzacji, wywolywany przed sprawdzeniem tabeli."""
        if target not in ROLE_TARGETS.get(actor.role, frozenset()):
            raise Forbidden(f"Role {actor.role.value} cannot set status {target.value}")

        if actor.role is Role.CUSTOMER:
            if normalize_id(order.customer_id) != actor.id:
                raise Forbidden("Not authorized to update this order")
        elif actor.role is Role.VENDOR:
            if not actor.owns_restaurant(order.restaurant_id):
                raise Forbidden("Not authorized to update this order")
        elif actor.role is Role.DELIVERY_PARTNER:
            partner_id = normalize_id(order.delivery_partner_id)
            claimable = partner_id is None and OrderStatus(order.status) is OrderStatus.READY
            if partner_id == actor.id or claimable:
                return
            #odbior przegrany z innym dostawca, nie brak uprawnien
            if partner_id is not None and target is OrderStatus.PICKED_UP:
                raise ConcurrentUpdate("Order was already picked up by another delivery partner")
            raise Forbidden("Order is not assigned to this delivery partner")
        else:
            raise Forbidden()

    def rule_for(self, current: OrderStatus, target: OrderStatus) -> TransitionRule:
        rule = self.transitions.get((current, target))
        if rule is None:
            raise InvalidTransition(
                f"Cannot change status from {current.value} to {target.value}"
            )
        return rule

    def check(self, actor: Actor, order, target: OrderStatus) -> TransitionRule:
        target = OrderStatus(target)
        self.authorize(actor, order, target)
        rule = self.rule_for(OrderStatus(order.status), target)
        if actor.role not in rule.roles:
            raise Forbidden(f"Role {actor.role.value} cannot perform this transition")
        return rule
