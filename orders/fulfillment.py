"""
Order fulfillment - status transitions for store admins and couriers.

Transition rules are pure functions over (current order state, requested
status, actor) returning a ``Transition``; ``apply_transition`` then writes
the result with a conditional update so concurrent requests cannot both win.

Store admin path:
    pending          -> order_confirmed | cancelled
    order_confirmed  -> being_packed    | cancelled
    being_packed     -> ready_for_pickup | cancelled

Courier path (requested status must be one of out_for_delivery, delivered,
cancelled):
    -> out_for_delivery  rejected if already out for delivery or a courier is
                         assigned; assigns the requesting courier
    -> delivered         payment status becomes paid
    -> cancelled         payment status becomes failed
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from django.utils import timezone

from core.exceptions import ValidationFailed
from .models import Order

logger = logging.getLogger(__name__)

Status = Order.Status
PaymentStatus = Order.PaymentStatus

COURIER_STATUSES = (Status.OUT_FOR_DELIVERY, Status.DELIVERED, Status.CANCELLED)

STORE_TRANSITIONS = {
    Status.PENDING: {Status.ORDER_CONFIRMED, Status.CANCELLED},
    Status.ORDER_CONFIRMED: {Status.BEING_PACKED, Status.CANCELLED},
    Status.BEING_PACKED: {Status.READY_FOR_PICKUP, Status.CANCELLED},
}


@dataclass(frozen=True)
class Transition:
    """Outcome of a transition request."""
    allowed: bool
    reason: str = ''
    changes: Dict = field(default_factory=dict)
    require_unassigned: bool = False

    @classmethod
    def reject(cls, reason: str) -> 'Transition':
        return cls(allowed=False, reason=reason)


def _status_changes(target: str) -> Dict:
    changes = {'status': target}
    if target == Status.DELIVERED:
        changes['payment_status'] = PaymentStatus.PAID
    elif target == Status.CANCELLED:
        changes['payment_status'] = PaymentStatus.FAILED
    return changes


def courier_transition(current_status: str, courier_id: Optional[int],
                       requested: str, requesting_courier_id: int) -> Transition:
    """Decide a courier-initiated status change."""
    if not requested or not isinstance(requested, str):
        return Transition.reject("Status is required")
    if requested not in COURIER_STATUSES:
        return Transition.reject(
            f"Invalid status. Allowed statuses are: {', '.join(COURIER_STATUSES)}"
        )

    changes = _status_changes(requested)
    if requested == Status.OUT_FOR_DELIVERY:
        if current_status == Status.OUT_FOR_DELIVERY:
            return Transition.reject("Order already picked up")
        if courier_id is not None:
            return Transition.reject("Order already assigned to a delivery person")
        changes['courier_id'] = requesting_courier_id
        return Transition(allowed=True, changes=changes, require_unassigned=True)

    return Transition(allowed=True, changes=changes)


def store_transition(current_status: str, requested: str) -> Transition:
    """Decide a store-admin-initiated status change."""
    if not requested or not isinstance(requested, str):
        return Transition.reject("Status is required")

    allowed = STORE_TRANSITIONS.get(current_status, set())
    if requested not in allowed:
        if not allowed:
            return Transition.reject(f"Order is {current_status} and can no longer be changed by the store")
        return Transition.reject(
            f"Cannot move order from {current_status} to {requested}. "
            f"Allowed: {', '.join(sorted(allowed))}"
        )
    return Transition(allowed=True, changes=_status_changes(requested))


def apply_transition(order: Order, transition: Transition) -> Order:
    """
    Persist an allowed transition.

    The update only matches if the order still has the status (and, for
    pickup, the empty courier slot) the decision was based on.

    Raises:
        ValidationFailed: If the transition was rejected or lost a race
    """
    if not transition.allowed:
        raise ValidationFailed(transition.reason)

    guarded = Order.objects.filter(pk=order.pk, status=order.status)
    if transition.require_unassigned:
        guarded = guarded.filter(courier__isnull=True)

    updated = guarded.update(updated_at=timezone.now(), **transition.changes)
    if updated == 0:
        order.refresh_from_db()
        if transition.require_unassigned and order.courier_id is not None:
            raise ValidationFailed("Order already assigned to a delivery person")
        raise ValidationFailed("Order status changed, please retry")

    previous = order.status
    order.refresh_from_db()
    logger.info(f"Order {order.order_number}: {previous} -> {order.status}")
    return order


def update_status_as_courier(order: Order, requested: str, courier_id: int) -> Order:
    transition = courier_transition(order.status, order.courier_id, requested, courier_id)
    return apply_transition(order, transition)


def update_status_as_store(order: Order, requested: str) -> Order:
    transition = store_transition(order.status, requested)
    return apply_transition(order, transition)
