"""Order activity log.

The log is append-only. Request entries (``extend_requested``,
``cancel_requested``) stay in the audit trail after they are decided; the
"pending" view shown to participants is derived from the log instead of being
edited into it.

Every action has a fixed ``meta`` shape, registered in ``ACTIVITY_META``.
"""
from datetime import datetime, timezone
from decimal import Decimal

from app.models.order_activity import OrderActivity

ACTIVITY_META = {
    "created": (),
    "status_changed": (),
    "delivery_submitted": (),
    "delivery_accepted": (),
    "delivery_revision_requested": ("attachments",),
    "order_accepted": (),
    "order_declined": (),
    "seller_payout": ("amount", "platform_fee", "vat", "transaction_id"),
    "extend_requested": ("days", "extension_id"),
    "extend_accepted": ("added_days", "previous", "new_total", "extension_id"),
    "extend_declined": ("days", "extension_id"),
    "extend_delivery": ("added_days", "previous", "new_total"),
    "cancel_requested": ("cancellation_id",),
    "cancel_accepted": ("cancellation_id",),
    "cancel_declined": ("cancellation_id", "declined_by_name", "requires_admin_review"),
    "cancellation_accepted_by_admin": ("cancellation_id",),
    "cancellation_rejected_by_admin": ("cancellation_id", "original_reason"),
    "order_cancelled": (),
    "refund_processed": ("refund_amount", "buyer_id", "transaction_id"),
    "refund_denied": ("reason",),
    "refund_already_processed": ("refund_amount", "processed_at"),
    "refund_failed": ("error",),
    "review_set": ("rating", "tip"),
    "review_reply": ("reply",),
}

# request action -> (id key in meta, actions that resolve it)
REQUEST_RESOLUTIONS = {
    "extend_requested": ("extension_id", ("extend_accepted", "extend_declined")),
    "cancel_requested": (
        "cancellation_id",
        (
            "cancel_accepted",
            "cancel_declined",
            "cancellation_accepted_by_admin",
            "cancellation_rejected_by_admin",
        ),
    ),
}


def _json_value(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def build_meta(action, **meta):
    if action not in ACTIVITY_META:
        raise ValueError(f"Unknown activity action: {action}")

    expected = set(ACTIVITY_META[action])
    given = set(meta)
    if given != expected:
        raise ValueError(
            f"Activity '{action}' expects meta {sorted(expected)}, got {sorted(given)}"
        )
    return {k: _json_value(v) for k, v in meta.items()}


def append_activity(order, action, by=None, note=None, from_status=None, to_status=None, **meta):
    activity = OrderActivity(
        action=action,
        by=by,
        at=datetime.now(timezone.utc),
        note=note,
        from_status=from_status,
        to_status=to_status,
        meta=build_meta(action, **meta),
        sequence=len(order.activities),
    )
    order.activities.append(activity)
    return activity


def _resolved_request_ids(activities):
    resolved = {}
    for activity in activities:
        for request_action, (id_key, resolvers) in REQUEST_RESOLUTIONS.items():
            if activity.action in resolvers:
                request_id = (activity.meta or {}).get(id_key)
                if request_id:
                    resolved.setdefault(request_action, set()).add(request_id)
    return resolved


def open_request_ids(order, request_action):
    """Ids of requests of the given kind that no later entry has decided."""
    id_key, _ = REQUEST_RESOLUTIONS[request_action]
    resolved = _resolved_request_ids(order.activities).get(request_action, set())

    return [
        a.meta[id_key]
        for a in order.activities
        if a.action == request_action and a.meta.get(id_key) not in resolved
    ]


def visible_activities(order):
    """Activity feed for participants: decided request entries are hidden."""
    resolved = _resolved_request_ids(order.activities)
    feed = []
    for activity in order.activities:
        if activity.action in REQUEST_RESOLUTIONS:
            id_key, _ = REQUEST_RESOLUTIONS[activity.action]
            if (activity.meta or {}).get(id_key) in resolved.get(activity.action, set()):
                continue
        feed.append(activity)
    return feed


def audit_trail(order):
    return list(order.activities)
