"""Seller earnings released when the buyer accepts a delivery.

The seller receives the order price minus the platform fee and VAT. Tips are
not part of the payout.
"""
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app
from sqlalchemy.orm.exc import StaleDataError

from app.services.activity_log import append_activity
from app.utils.exceptions import ServiceError

CENT = Decimal("0.01")


def _rate(key, default):
    return Decimal(str(current_app.config.get(key, default)))


def payout_breakdown(price):
    price = Decimal(price or 0)
    platform_fee = (price * _rate("PLATFORM_FEE_RATE", "0.10")).quantize(CENT, ROUND_HALF_UP)
    vat = (price * _rate("VAT_RATE", "0.0132")).quantize(CENT, ROUND_HALF_UP)
    return {
        "amount": price - platform_fee - vat,
        "platform_fee": platform_fee,
        "vat": vat,
    }


def pay_seller(order, actor_id, accounts, ledger):
    breakdown = payout_breakdown(order.price)
    amount = breakdown["amount"]
    if amount <= 0:
        current_app.logger.info("No seller payout for order %s: nothing to pay", order.id)
        return None

    try:
        accounts.credit_balance(order.seller_id, amount)
        tx_id = ledger.append({
            "user_id": order.seller_id,
            "type": "earning",
            "amount": amount,
            "currency": order.currency,
            "status": "completed",
            "description": f"Earnings for order: {order.title or order.id}",
            "reference_type": "order",
            "reference_id": order.id,
            "details": {
                "order_id": order.id,
                "order_price": float(order.price),
                "platform_fee": float(breakdown["platform_fee"]),
                "vat": float(breakdown["vat"]),
            },
        })
    except StaleDataError:
        raise
    except Exception as e:
        current_app.logger.exception("Seller payout failed for order %s", order.id)
        raise ServiceError(
            "PAYOUT_FAILED",
            f"Seller payout failed: {e}",
            {"order_id": order.id},
            status=502,
        ) from e

    current_app.logger.info(
        "Payout of %.2f credited to seller %s for order %s", amount, order.seller_id, order.id
    )
    append_activity(
        order,
        "seller_payout",
        by=actor_id,
        note=f"${amount:.2f} released to the seller",
        transaction_id=tx_id,
        **breakdown,
    )
    return amount
