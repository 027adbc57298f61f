from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from app.services.activity_log import append_activity
from app.utils.exceptions import bad_request, forbidden


def _parse_rating(value):
    if isinstance(value, bool):
        raise bad_request("Rating must be an integer between 1 and 5")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or not 1 <= value <= 5:
        raise bad_request("Rating must be an integer between 1 and 5", {"rating": value})
    return value


def _parse_tip(value):
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, bool):
        raise bad_request("Tip must be a non-negative number")
    try:
        tip = Decimal(str(value))
    except InvalidOperation:
        raise bad_request("Tip must be a non-negative number", {"tip": value})
    if not tip.is_finite() or tip < 0:
        raise bad_request("Tip must be a non-negative number", {"tip": value})
    return tip


def add_review_and_rating(order, payload, actor_id):
    """Record the buyer's rating, review and tip. A review is submitted once."""
    if order.participant_role(actor_id) != "buyer":
        raise forbidden("Only the buyer can review this order")

    if order.buyer_rating is not None:
        raise bad_request("Review already submitted")

    payload = payload or {}
    raw_rating = payload.get("buyer_rating", payload.get("rating"))
    rating = _parse_rating(raw_rating)
    tip = _parse_tip(payload.get("tip"))
    review = payload.get("buyer_review", payload.get("review"))

    order.buyer_rating = rating
    order.buyer_review = review
    order.buyer_review_at = datetime.now(timezone.utc)
    order.tip = tip
    order.total_amount = Decimal(order.price or 0) + tip

    append_activity(
        order,
        "review_set",
        by=actor_id,
        note="Buyer submitted review",
        rating=rating,
        tip=tip,
    )
    return order


def submit_review_reply(order, reply, actor_id):
    if order.participant_role(actor_id) != "seller":
        raise forbidden("Only the seller can reply to this review")
    if order.buyer_rating is None:
        raise bad_request("Cannot reply before the buyer has left a rating")
    if order.seller_reply:
        raise bad_request("Reply already submitted")

    reply = (reply or "").strip()
    if not reply:
        raise bad_request("Reply must not be empty")

    order.seller_reply = reply
    order.seller_replied_at = datetime.now(timezone.utc)

    append_activity(
        order,
        "review_reply",
        by=actor_id,
        note="Seller replied to review",
        reply=reply,
    )
    return order


def review_for_gig(order):
    """Payload forwarded to the gig aggregate, or None when it has nothing to attach."""
    if not order.gig_id or order.buyer_rating is None or not order.buyer_review:
        return None
    return {
        "buyer_id": order.buyer_id,
        "rating": order.buyer_rating,
        "comment": order.buyer_review,
        "order_id": order.id,
    }
