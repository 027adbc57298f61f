from app.extensions import db
from sqlalchemy.sql import func

class WalletTransaction(db.Model):
    __tablename__ = "wallet_transactions"

    __table_args__ = (
        db.Index("idx_wallet_tx_reference", "reference_type", "reference_id"),
    )

    id = db.Column(db.String(50), primary_key=True)
    wallet_id = db.Column(db.String(50), db.ForeignKey("wallets.id"), nullable=False)

    amount = db.Column(db.Numeric(10, 2), nullable=False)
    # refund | earning | deposit
    type = db.Column(db.String(50), nullable=False)
    currency = db.Column(db.String(10), default="USD")

    status = db.Column(db.String(30), default="completed")

    reference_type = db.Column(db.String(50))
    reference_id = db.Column(db.String(50))

    description = db.Column(db.String(255))
    details = db.Column(db.JSON, nullable=True)
    processed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, server_default=func.now())

    wallet = db.relationship("Wallet", backref="transactions")
