from app.extensions import db
import uuid
from sqlalchemy.sql import func

ORDER_STATUSES = (
    "pending_payment",
    "active",
    "inprogress",
    "accepted",
    "delivered",
    "revision",
    "cancel",
    "complete",
)

TERMINAL_STATUSES = ("cancel", "complete")

DEFAULT_ORDER_STATUS = "inprogress"

def gen_order_id():
    return f"ORD-{str(uuid.uuid4())[:8]}"

class Order(db.Model):
    __tablename__ = "orders"

    __table_args__ = (
        db.Index("idx_orders_status", "status"),
        db.Index("idx_orders_seller_id", "seller_id"),
        db.Index("idx_orders_buyer_id", "buyer_id"),
    )

    id = db.Column(db.String(50), primary_key=True, default=gen_order_id)

    title = db.Column(db.String(255))
    description = db.Column(db.Text)
    requirements = db.Column(db.Text)

    # seller = service provider and owner of the record, buyer = requester
    seller_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)
    buyer_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)
    created_by = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=True)

    gig_id = db.Column(db.String(50), db.ForeignKey("gigs.id"), nullable=True)
    package_type = db.Column(db.String(20))

    price = db.Column(db.Numeric(10, 2), nullable=False)
    tip = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)

    # days
    delivery_time = db.Column(db.Integer, nullable=False, default=0)

    currency = db.Column(db.String(10), default="USD")
    payment_method = db.Column(db.String(30))
    payment_id = db.Column(db.String(255))
    payment_status = db.Column(db.String(30))
    payment_amount = db.Column(db.Numeric(10, 2), nullable=True)

    status = db.Column(db.String(30), nullable=False, default=DEFAULT_ORDER_STATUS)

    revision_message = db.Column(db.Text)
    cancel_message = db.Column(db.Text)

    buyer_rating = db.Column(db.Integer)
    buyer_review = db.Column(db.Text)
    buyer_review_at = db.Column(db.DateTime(timezone=True))
    seller_reply = db.Column(db.Text)
    seller_replied_at = db.Column(db.DateTime(timezone=True))

    refund_eligible = db.Column(db.Boolean, nullable=False, default=True)
    refund_processed = db.Column(db.Boolean, nullable=False, default=False)
    refund_amount = db.Column(db.Numeric(10, 2))
    refund_processed_at = db.Column(db.DateTime(timezone=True))

    started_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
    completed_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), onupdate=func.now())

    version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    seller = db.relationship("User", foreign_keys=[seller_id], backref="sales", lazy=True)
    buyer = db.relationship("User", foreign_keys=[buyer_id], backref="purchases", lazy=True)
    gig = db.relationship("Gig", backref="orders", lazy=True)

    extensions = db.relationship(
        "ExtensionRequest",
        order_by="ExtensionRequest.sequence",
        cascade="all, delete-orphan",
        backref="order",
        lazy=True,
    )

    cancellations = db.relationship(
        "CancellationRequest",
        order_by="CancellationRequest.sequence",
        cascade="all, delete-orphan",
        backref="order",
        lazy=True,
    )

    activities = db.relationship(
        "OrderActivity",
        order_by="OrderActivity.sequence",
        cascade="all, delete-orphan",
        backref="order",
        lazy=True,
    )

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    def participant_role(self, user_id):
        if user_id is None:
            return None
        if str(user_id) == str(self.seller_id):
            return "seller"
        if str(user_id) == str(self.buyer_id):
            return "buyer"
        return None

    def is_participant(self, user_id):
        return self.participant_role(user_id) is not None

    def other_participant_id(self, user_id):
        role = self.participant_role(user_id)
        if role == "seller":
            return self.buyer_id
        if role == "buyer":
            return self.seller_id
        return None
