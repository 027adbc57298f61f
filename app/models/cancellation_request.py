from app.extensions import db
from datetime import datetime, timezone
import uuid

CANCELLATION_STATUSES = ("pending", "accepted", "declined", "admin_review")

def gen_cancellation_id():
    return f"can-{str(uuid.uuid4())[:8]}"

class CancellationRequest(db.Model):
    __tablename__ = "order_cancellations"

    __table_args__ = (
        db.UniqueConstraint("order_id", "sequence"),
        db.Index("idx_order_cancellations_status", "status"),
    )

    id = db.Column(db.String(50), primary_key=True, default=gen_cancellation_id)
    order_id = db.Column(db.String(50), db.ForeignKey("orders.id"), nullable=False, index=True)
    sequence = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default="pending")

    requested_by = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)
    requested_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    decided_by = db.Column(db.String(50), db.ForeignKey("users.id"))
    decided_at = db.Column(db.DateTime(timezone=True))

    # set when a participant declines and the request goes to admin review
    declined_by = db.Column(db.String(50), db.ForeignKey("users.id"))
    declined_by_name = db.Column(db.String(255))
    admin_reason = db.Column(db.Text)

    # [{filename, original_name, url, size, mimetype}]
    attachments = db.Column(db.JSON, nullable=False, default=list)
