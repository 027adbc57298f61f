from decimal import Decimal
from sqlalchemy import func
from app.extensions import db
from app.models.gig import Gig
from app.models.gig_review import GigReview
from app.services.metrics_service import update_user_metrics


def get_gig(gig_id):
    return db.session.get(Gig, gig_id)


def increment_orders_and_earnings(gig_id, amount):
    gig = get_gig(gig_id)
    if not gig:
        return None

    gig.total_orders = (gig.total_orders or 0) + 1
    gig.total_earnings = Decimal(gig.total_earnings or 0) + Decimal(str(amount or 0))
    return gig


def calculate_gig_metrics(gig):
    avg_rating, count = (
        db.session.query(func.avg(GigReview.rating), func.count(GigReview.id))
        .filter(GigReview.gig_id == gig.id)
        .one()
    )
    gig.average_rating = round(float(avg_rating or 0), 1)
    gig.total_reviews = count or 0
    return gig


def add_review(gig_id, review):
    """Attach a buyer review to the gig and refresh the seller's metrics.

    ``review`` carries ``buyer_id``, ``rating``, ``comment`` and ``order_id``.
    """
    gig = get_gig(gig_id)
    if not gig:
        raise LookupError(f"Gig {gig_id} not found")

    db.session.add(GigReview(
        gig_id=gig.id,
        order_id=review["order_id"],
        buyer_id=review["buyer_id"],
        rating=review["rating"],
        comment=review.get("comment"),
    ))
    db.session.flush()

    calculate_gig_metrics(gig)
    update_user_metrics(gig.seller_id)
    return gig
