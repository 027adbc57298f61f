from decimal import Decimal
from datetime import datetime, timezone
from flask import current_app
from app.extensions import db
from app.models.wallet import Wallet
from app.models.wallet_transaction import WalletTransaction
import uuid

def gen_tx_id():
    return f"tx_{uuid.uuid4().hex[:12]}"


def _default_currency():
    return current_app.config.get("DEFAULT_CURRENCY", "USD")


def get_or_create_wallet(user_id, currency=None):
    wallet = Wallet.query.filter_by(user_id=user_id).first()
    if not wallet:
        wallet = Wallet(
            id=f"wal_{uuid.uuid4().hex[:12]}",
            user_id=user_id,
            currency=currency or _default_currency(),
            balance=Decimal("0.00")
        )
        db.session.add(wallet)
        db.session.flush()
    return wallet


def credit_balance(user_id, amount):
    """Add ``amount`` to the user's balance. Caller owns the commit."""
    amount = Decimal(str(amount))
    if amount <= 0:
        raise ValueError("INVALID_AMOUNT")

    wallet = (
        Wallet.query
        .filter_by(user_id=user_id)
        .with_for_update()
        .first()
    ) or get_or_create_wallet(user_id)

    wallet.balance = Decimal(wallet.balance or 0) + amount
    return wallet


def record_transaction(
    user_id,
    amount,
    tx_type,
    status="completed",
    currency=None,
    description="",
    ref_type=None,
    ref_id=None,
    details=None,
):
    """Append a ledger entry for the user's wallet. Caller owns the commit."""
    wallet = get_or_create_wallet(user_id)

    tx = WalletTransaction(
        id=gen_tx_id(),
        wallet_id=wallet.id,
        amount=Decimal(str(amount)),
        type=tx_type,
        currency=currency or wallet.currency,
        status=status,
        reference_type=ref_type,
        reference_id=ref_id,
        description=description,
        details=details or {},
        processed_at=datetime.now(timezone.utc),
    )

    db.session.add(tx)
    db.session.flush()
    return tx


def get_wallet_balance(user_id):
    wallet = Wallet.query.filter_by(user_id=user_id).first()
    if not wallet:
        return {
            "available_balance": 0.0,
            "currency": _default_currency()
        }

    return {
        "available_balance": float(wallet.balance),
        "currency": wallet.currency
    }


def list_order_transactions(order_id, tx_type=None):
    q = WalletTransaction.query.filter_by(reference_type="order", reference_id=order_id)
    if tx_type:
        q = q.filter_by(type=tx_type)
    return q.order_by(WalletTransaction.created_at.asc()).all()
