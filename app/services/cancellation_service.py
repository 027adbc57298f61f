"""Cancellation requests.

A participant requests, the other participant decides. Acceptance cancels the
order and refunds the buyer in the same unit of work; a decline does not close
the request but escalates it to ``admin_review`` for an admin to resolve.
"""
from datetime import datetime, timezone

from app.models.cancellation_request import CancellationRequest, gen_cancellation_id
from app.models.order import Order
from app.services.activity_log import append_activity
from app.utils.exceptions import bad_request, forbidden

DECISIONS = ("accepted", "declined")
CLOSED_WINDOW_STATUSES = ("delivered", "complete")


def pending_cancellation(order):
    for req in reversed(order.cancellations):
        if req.status == "pending":
            return req
    return None


def latest_admin_review(order):
    under_review = [c for c in order.cancellations if c.status == "admin_review"]
    if not under_review:
        return None
    return max(under_review, key=lambda c: c.sequence)


def can_cancel_order(order, user_id):
    if not order.is_participant(user_id):
        raise forbidden("Not authorized to cancel this order")

    if order.status in CLOSED_WINDOW_STATUSES:
        raise bad_request(
            "Cannot cancel order after successful delivery. Please contact support for assistance.",
            {"status": order.status},
        )

    if order.status == "cancel":
        raise bad_request("Order is already cancelled", {"status": order.status})

    if pending_cancellation(order) is not None:
        raise bad_request("There is already a pending cancellation request for this order")

    return True


def request_cancellation(order, reason, actor_id, attachments=None):
    can_cancel_order(order, actor_id)

    req = CancellationRequest(
        id=gen_cancellation_id(),
        reason=reason,
        status="pending",
        requested_by=actor_id,
        requested_at=datetime.now(timezone.utc),
        attachments=list(attachments or []),
        sequence=len(order.cancellations),
    )
    order.cancellations.append(req)

    append_activity(
        order,
        "cancel_requested",
        by=actor_id,
        note=reason or "Request cancellation",
        cancellation_id=req.id,
    )
    return req


def _mark_cancelled(order, message):
    previous = order.status
    order.status = "cancel"
    order.cancel_message = message
    return previous


def decide_latest_cancel(order, decision, decider_id, refunds, decider_name=None):
    req = pending_cancellation(order)
    if req is None:
        raise bad_request("No pending cancellation to decide")
    if order.is_terminal or order.status in CLOSED_WINDOW_STATUSES:
        raise bad_request(
            "Cannot decide cancellation after the order was delivered or closed",
            {"status": order.status},
        )
    if decision not in DECISIONS:
        raise bad_request("Invalid decision", {"allowed": list(DECISIONS)})
    if not order.is_participant(decider_id):
        raise forbidden("Not allowed to decide cancellation")
    if str(decider_id) == str(req.requested_by):
        raise forbidden("A cancellation must be decided by the other participant")

    decider_name = decider_name or decider_id
    req.decided_by = decider_id
    req.decided_at = datetime.now(timezone.utc)

    if decision == "accepted":
        req.status = "accepted"
        previous = _mark_cancelled(order, req.reason or order.cancel_message)
        append_activity(
            order,
            "cancel_accepted",
            by=decider_id,
            note=f"Cancellation accepted by {decider_name}",
            from_status=previous,
            to_status="cancel",
            cancellation_id=req.id,
        )
        refunds.process_cancellation_refund(order, decider_id)
    else:
        req.status = "admin_review"
        req.declined_by = decider_id
        req.declined_by_name = decider_name
        append_activity(
            order,
            "cancel_declined",
            by=decider_id,
            note=f"Cancellation declined by {decider_name}. Now under admin review for final decision.",
            cancellation_id=req.id,
            declined_by_name=decider_name,
            requires_admin_review=True,
        )
    return req


def direct_cancel_order(order, reason, actor_id, refunds):
    can_cancel_order(order, actor_id)

    message = reason or "Order cancelled"
    previous = _mark_cancelled(order, message)
    append_activity(
        order,
        "order_cancelled",
        by=actor_id,
        note=message,
        from_status=previous,
        to_status="cancel",
    )
    refunds.process_cancellation_refund(order, actor_id)
    return order


def admin_accept_cancellation(order, admin_reason, admin_id, refunds):
    req = latest_admin_review(order)
    if req is None:
        raise bad_request("No cancellation request under admin review found for this order")
    if order.is_terminal:
        raise bad_request(f"Order is already {order.status}", {"status": order.status})

    reason = admin_reason or "Admin approved cancellation"
    req.status = "accepted"
    req.decided_by = admin_id
    req.decided_at = datetime.now(timezone.utc)
    req.admin_reason = reason

    previous = _mark_cancelled(order, req.reason or reason)
    append_activity(
        order,
        "cancellation_accepted_by_admin",
        by=admin_id,
        note=admin_reason or "Admin approved cancellation request",
        from_status=previous,
        to_status="cancel",
        cancellation_id=req.id,
    )
    refunds.process_cancellation_refund(order, admin_id)
    return req


def admin_reject_cancellation(order, admin_reason, admin_id):
    req = latest_admin_review(order)
    if req is None:
        raise bad_request("No cancellation request under admin review found for this order")

    req.status = "declined"
    req.decided_by = admin_id
    req.decided_at = datetime.now(timezone.utc)
    req.admin_reason = admin_reason or "Admin rejected cancellation"

    append_activity(
        order,
        "cancellation_rejected_by_admin",
        by=admin_id,
        note=admin_reason or "Admin rejected cancellation request",
        cancellation_id=req.id,
        original_reason=req.reason,
    )
    return req


def orders_under_admin_review():
    return (
        Order.query
        .filter(Order.cancellations.any(status="admin_review"))
        .order_by(Order.updated_at.desc())
    )
