from app.extensions import db
from datetime import datetime, timezone
import uuid

def gen_uuid(prefix=None):
    uid = str(uuid.uuid4())
    return f"{prefix}-{uid}" if prefix else uid

class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("usr"))
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(255))
    role = db.Column(db.String(50), nullable=False, default="user")
    profile_image = db.Column(db.String(1024), nullable=True)
    bio = db.Column(db.Text, nullable=True)
    country = db.Column(db.String(100), nullable=True)
    joined_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # cached metrics, recalculated from completed orders
    seller_rating = db.Column(db.Float, default=0.0)
    seller_total_reviews = db.Column(db.Integer, default=0)
    seller_total_orders = db.Column(db.Integer, default=0)
    buyer_rating = db.Column(db.Float, default=0.0)
    buyer_total_orders = db.Column(db.Integer, default=0)
    metrics_updated_at = db.Column(db.DateTime, nullable=True)

    @property
    def is_admin(self):
        return self.role == "admin"
