"""Buyer refunds for cancelled orders.

A refund is credited at most once per order. The balance credit, the ledger
entry and the order's refund flags are written inside one SAVEPOINT of the
enclosing order transaction, so they land together with the cancellation or
not at all.
"""
from datetime import datetime, timezone
from decimal import Decimal

from flask import current_app
from sqlalchemy.orm.exc import StaleDataError

from app.extensions import db
from app.services.activity_log import append_activity
from app.utils.exceptions import ServiceError

REFUND_POLICY_RECORD = "record"
REFUND_POLICY_BLOCK = "block"


def refund_amount_for(order):
    for value in (order.payment_amount, order.price, order.total_amount):
        if value is not None and Decimal(value) > 0:
            return Decimal(value)
    return Decimal("0")


class RefundProcessor:
    def __init__(self, accounts, ledger, failure_policy=None):
        self.accounts = accounts
        self.ledger = ledger
        self.failure_policy = failure_policy

    def _policy(self):
        return self.failure_policy or current_app.config.get(
            "REFUND_FAILURE_POLICY", REFUND_POLICY_RECORD
        )

    def process_cancellation_refund(self, order, actor_id):
        if not order.refund_eligible:
            current_app.logger.warning("Refund denied for order %s: not eligible", order.id)
            append_activity(
                order,
                "refund_denied",
                by=actor_id,
                note="Refund not eligible - order has been delivered successfully",
                reason="delivery_completed",
            )
            return None

        if order.refund_processed:
            current_app.logger.info("Refund already processed for order %s", order.id)
            append_activity(
                order,
                "refund_already_processed",
                by=actor_id,
                note="Refund was already processed for this order",
                refund_amount=order.refund_amount,
                processed_at=order.refund_processed_at,
            )
            return None

        buyer_id = order.buyer_id
        amount = refund_amount_for(order)

        if amount == 0:
            order.refund_processed = True
            order.refund_amount = amount
            order.refund_processed_at = datetime.now(timezone.utc)
            current_app.logger.info("Nothing to refund for order %s", order.id)
            append_activity(
                order,
                "refund_processed",
                by=actor_id,
                note="Nothing was paid, no refund due",
                refund_amount=amount,
                buyer_id=buyer_id,
                transaction_id=None,
            )
            return amount

        # flushes pending order changes; a version conflict surfaces here
        savepoint = db.session.begin_nested()
        try:
            self.accounts.credit_balance(buyer_id, amount)
            tx_id = self.ledger.append({
                "user_id": buyer_id,
                "type": "refund",
                "amount": amount,
                "currency": order.currency,
                "status": "completed",
                "description": f"Refund for cancelled order: {order.title or order.id}",
                "reference_type": "order",
                "reference_id": order.id,
                "details": {
                    "order_id": order.id,
                    "order_title": order.title,
                    "refund_reason": "order_cancellation",
                    "cancelled_by": actor_id,
                },
            })

            order.refund_processed = True
            order.refund_amount = amount
            order.refund_processed_at = datetime.now(timezone.utc)
            savepoint.commit()
        except StaleDataError:
            savepoint.rollback()
            raise
        except Exception as e:
            savepoint.rollback()
            current_app.logger.exception("Refund processing failed for order %s", order.id)

            if self._policy() == REFUND_POLICY_BLOCK:
                raise ServiceError(
                    "REFUND_FAILED",
                    f"Refund processing failed: {e}",
                    {"order_id": order.id},
                    status=502,
                ) from e

            append_activity(
                order,
                "refund_failed",
                by=actor_id,
                note=f"Refund processing failed: {e}",
                error=str(e),
            )
            return None

        current_app.logger.info(
            "Refund of %.2f credited to buyer %s for order %s", amount, buyer_id, order.id
        )
        append_activity(
            order,
            "refund_processed",
            by=actor_id,
            note=f"Refund of ${amount:.2f} processed to buyer balance",
            refund_amount=amount,
            buyer_id=buyer_id,
            transaction_id=tx_id,
        )
        return amount
