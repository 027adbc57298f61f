from datetime import datetime, timezone
from sqlalchemy import func
from app.extensions import db
from app.models.order import Order
from app.models.user import User


def _round_rating(value):
    return round(float(value or 0), 1)


def calculate_seller_metrics(user_id):
    completed = Order.query.filter(
        Order.seller_id == user_id,
        Order.status == "complete",
    )

    total_orders = completed.count()

    avg_rating = (
        db.session.query(func.avg(Order.buyer_rating))
        .filter(
            Order.seller_id == user_id,
            Order.status == "complete",
            Order.buyer_rating >= 1,
        )
        .scalar()
    )

    total_reviews = completed.filter(Order.buyer_review.isnot(None)).count()

    return {
        "average_rating": _round_rating(avg_rating),
        "total_reviews": total_reviews,
        "total_orders": total_orders,
    }


def calculate_buyer_metrics(user_id):
    total_orders = Order.query.filter(
        Order.buyer_id == user_id,
        Order.status == "complete",
    ).count()

    avg_rating = (
        db.session.query(func.avg(Order.buyer_rating))
        .filter(
            Order.buyer_id == user_id,
            Order.status == "complete",
            Order.buyer_rating >= 1,
        )
        .scalar()
    )

    return {
        "average_rating": _round_rating(avg_rating),
        "total_orders": total_orders,
    }


def update_user_metrics(user_id):
    """Refresh the cached seller and buyer metrics on the user row."""
    user = db.session.get(User, user_id)
    if not user:
        return None

    seller = calculate_seller_metrics(user_id)
    buyer = calculate_buyer_metrics(user_id)

    user.seller_rating = seller["average_rating"]
    user.seller_total_reviews = seller["total_reviews"]
    user.seller_total_orders = seller["total_orders"]
    user.buyer_rating = buyer["average_rating"]
    user.buyer_total_orders = buyer["total_orders"]
    user.metrics_updated_at = datetime.now(timezone.utc)

    return {"seller": seller, "buyer": buyer}
