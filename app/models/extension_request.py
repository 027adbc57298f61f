from app.extensions import db
from datetime import datetime, timezone
import uuid

EXTENSION_STATUSES = ("pending", "accepted", "declined")

def gen_extension_id():
    return f"ext-{str(uuid.uuid4())[:8]}"

class ExtensionRequest(db.Model):
    __tablename__ = "order_extensions"

    __table_args__ = (
        db.UniqueConstraint("order_id", "sequence"),
    )

    id = db.Column(db.String(50), primary_key=True, default=gen_extension_id)
    order_id = db.Column(db.String(50), db.ForeignKey("orders.id"), nullable=False, index=True)
    sequence = db.Column(db.Integer, nullable=False)

    days = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default="pending")

    requested_by = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)
    requested_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    decided_by = db.Column(db.String(50), db.ForeignKey("users.id"))
    decided_at = db.Column(db.DateTime(timezone=True))
