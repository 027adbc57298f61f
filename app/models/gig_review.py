from app.extensions import db
from sqlalchemy.sql import func
import uuid

def gen_uuid(prefix="rev"):
    return f"{prefix}-{str(uuid.uuid4())[:8]}"

class GigReview(db.Model):
    __tablename__ = "gig_reviews"

    __table_args__ = (
        db.Index("idx_gig_reviews_gig_id", "gig_id"),
        db.Index("idx_gig_reviews_buyer_id", "buyer_id"),
    )

    id = db.Column(
        db.String(50),
        primary_key=True,
        default=lambda: gen_uuid("rev")
    )

    gig_id = db.Column(
        db.String(50),
        db.ForeignKey("gigs.id", ondelete="CASCADE"),
        nullable=False
    )

    # one review per order
    order_id = db.Column(
        db.String(50),
        db.ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )

    buyer_id = db.Column(
        db.String(50),
        db.ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False
    )

    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    gig = db.relationship(
        "Gig",
        backref=db.backref("reviews", lazy=True, cascade="all, delete-orphan")
    )

    buyer = db.relationship("User", foreign_keys=[buyer_id])
