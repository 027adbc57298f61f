from app.extensions import db
from sqlalchemy.sql import func
import uuid

def gen_gig_id():
    return f"GIG-{str(uuid.uuid4())[:8]}"

class Gig(db.Model):
    """Catalog item sold by a seller. Only the aggregate counters matter here."""

    __tablename__ = "gigs"

    id = db.Column(db.String(50), primary_key=True, default=gen_gig_id)
    seller_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)

    title = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(100))

    total_orders = db.Column(db.Integer, nullable=False, default=0)
    total_earnings = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    average_rating = db.Column(db.Float, nullable=False, default=0.0)
    total_reviews = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    seller = db.relationship("User", backref="gigs", lazy=True)
