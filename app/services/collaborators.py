"""Interfaces of the aggregates the order engine talks to.

The order workflows never look these up on their own; they receive them from
``OrderLifecycleManager``. The ``Sql*`` classes are the database-backed
implementations wired by ``default_collaborators``.
"""
from typing import Optional, Protocol, runtime_checkable

from app.services import gig_service, metrics_service, profile_service, wallet_service


@runtime_checkable
class SellerAggregate(Protocol):
    """Catalog item (gig) counters and reviews."""

    def increment_orders_and_earnings(self, gig_id: str, amount) -> None: ...

    def add_review(self, gig_id: str, review: dict) -> None: ...


@runtime_checkable
class AccountAggregate(Protocol):
    """User balance and cached rating metrics."""

    def credit_balance(self, user_id: str, amount) -> None: ...

    def recalculate_metrics(self, user_id: str) -> None: ...


@runtime_checkable
class Ledger(Protocol):
    """Money movement records. Returns the stored transaction id."""

    def append(self, transaction: dict) -> str: ...


@runtime_checkable
class ProfileDirectory(Protocol):
    """Read-only display data for participants."""

    def display(self, user_id: str) -> Optional[dict]: ...


class SqlSellerAggregate:
    def increment_orders_and_earnings(self, gig_id, amount):
        gig_service.increment_orders_and_earnings(gig_id, amount)

    def add_review(self, gig_id, review):
        gig_service.add_review(gig_id, review)


class SqlAccountAggregate:
    def credit_balance(self, user_id, amount):
        wallet_service.credit_balance(user_id, amount)

    def recalculate_metrics(self, user_id):
        metrics_service.update_user_metrics(user_id)


class SqlLedger:
    def append(self, transaction):
        tx = wallet_service.record_transaction(
            user_id=transaction["user_id"],
            amount=transaction["amount"],
            tx_type=transaction["type"],
            status=transaction.get("status", "completed"),
            currency=transaction.get("currency"),
            description=transaction.get("description", ""),
            ref_type=transaction.get("reference_type"),
            ref_id=transaction.get("reference_id"),
            details=transaction.get("details"),
        )
        return tx.id


class SqlProfileDirectory:
    def display(self, user_id):
        return profile_service.display(user_id)


def default_collaborators():
    return {
        "gigs": SqlSellerAggregate(),
        "accounts": SqlAccountAggregate(),
        "ledger": SqlLedger(),
        "profiles": SqlProfileDirectory(),
    }
