"""Delivery-date extensions: request, then the counterparty decides.

Functions here validate and mutate an already-loaded ``Order``; persistence
is handled by ``OrderLifecycleManager``.
"""
from datetime import datetime, timezone

from app.models.extension_request import ExtensionRequest, gen_extension_id
from app.services.activity_log import append_activity
from app.utils.exceptions import bad_request, forbidden, not_found

DECISIONS = ("accepted", "declined")


def _positive_days(value, field="days"):
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise bad_request(f"{field} must be a positive integer", {"field": field})
    return value


def _ensure_open(order):
    if order.is_terminal:
        raise bad_request(f"Order is already {order.status}", {"status": order.status})


def request_extension(order, days, reason, actor_id):
    days = _positive_days(days)
    if not order.is_participant(actor_id):
        raise forbidden("Not allowed to request an extension on this order")
    _ensure_open(order)

    ext = ExtensionRequest(
        id=gen_extension_id(),
        days=days,
        reason=reason,
        status="pending",
        requested_by=actor_id,
        requested_at=datetime.now(timezone.utc),
        sequence=len(order.extensions),
    )
    order.extensions.append(ext)

    append_activity(
        order,
        "extend_requested",
        by=actor_id,
        note=reason or f"Request extend by {days} day(s)",
        days=days,
        extension_id=ext.id,
    )
    return ext


def decide_extension(order, index, decision, decider_id):
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(order.extensions):
        raise bad_request("Invalid extension index", {"index": index})

    ext = order.extensions[index]
    if ext.status != "pending":
        raise bad_request("Extension already decided", {"extension_id": ext.id, "status": ext.status})
    if decision not in DECISIONS:
        raise bad_request("Invalid decision", {"allowed": list(DECISIONS)})
    if not order.is_participant(decider_id):
        raise forbidden("Not allowed to decide this extension")
    if str(decider_id) == str(ext.requested_by):
        raise forbidden("An extension must be decided by the other participant")
    _ensure_open(order)

    ext.status = decision
    ext.decided_by = decider_id
    ext.decided_at = datetime.now(timezone.utc)

    if decision == "accepted":
        previous = order.delivery_time or 0
        order.delivery_time = previous + ext.days
        append_activity(
            order,
            "extend_accepted",
            by=decider_id,
            note=f"Extend accepted (+{ext.days} day(s))",
            added_days=ext.days,
            previous=previous,
            new_total=order.delivery_time,
            extension_id=ext.id,
        )
    else:
        append_activity(
            order,
            "extend_declined",
            by=decider_id,
            note=f"Extend delivery by {ext.days} day(s) declined",
            days=ext.days,
            extension_id=ext.id,
        )
    return ext


def decide_extension_by_id(order, extension_id, decision, decider_id):
    for index, ext in enumerate(order.extensions):
        if ext.id == extension_id:
            return decide_extension(order, index, decision, decider_id)
    raise not_found("Extension not found", {"extension_id": extension_id})


def latest_pending_index(order):
    for index in range(len(order.extensions) - 1, -1, -1):
        if order.extensions[index].status == "pending":
            return index
    return None


def decide_latest_pending(order, decision, decider_id):
    index = latest_pending_index(order)
    if index is None:
        raise bad_request("No pending extension to decide")
    return decide_extension(order, index, decision, decider_id)


def extend_delivery(order, extra_days, actor_id, is_admin=False):
    """Directly add days to the delivery time, bypassing approval."""
    extra_days = _positive_days(extra_days, "extra_days")
    if not (is_admin or order.is_participant(actor_id)):
        raise forbidden("Not allowed to extend this order")
    _ensure_open(order)

    previous = order.delivery_time or 0
    order.delivery_time = previous + extra_days
    append_activity(
        order,
        "extend_delivery",
        by=actor_id,
        note=f"Extend delivery by {extra_days} day(s)",
        added_days=extra_days,
        previous=previous,
        new_total=order.delivery_time,
    )
    return order
