from app.extensions import db
from datetime import datetime, timezone
import uuid

def gen_activity_id():
    return f"act-{uuid.uuid4().hex[:12]}"

class OrderActivity(db.Model):
    __tablename__ = "order_activities"

    __table_args__ = (
        db.UniqueConstraint("order_id", "sequence"),
        db.Index("idx_order_activities_action", "action"),
    )

    id = db.Column(db.String(50), primary_key=True, default=gen_activity_id)
    order_id = db.Column(db.String(50), db.ForeignKey("orders.id"), nullable=False, index=True)
    sequence = db.Column(db.Integer, nullable=False)

    action = db.Column(db.String(50), nullable=False)
    by = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=True)
    at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    note = db.Column(db.Text)
    from_status = db.Column(db.String(30))
    to_status = db.Column(db.String(30))
    meta = db.Column(db.JSON, nullable=False, default=dict)
