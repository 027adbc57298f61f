"""Order lifecycle engine.

``OrderLifecycleManager`` is the single entry point for reading and mutating
orders. Every mutation follows the same unit of work: load the order, let a
workflow function validate and change it in memory, then commit once with the
optimistic version check on the order row. A lost race reloads the order and
re-runs the workflow from scratch.
"""
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from app.extensions import db
from app.models.gig import Gig
from app.models.order import DEFAULT_ORDER_STATUS, ORDER_STATUSES, Order, gen_order_id
from app.models.user import User
from app.schemas.order_schema import (
    activities_schema,
    cancellation_schema,
    order_detail_schema,
    order_summary_schema,
)
from app.services import cancellation_service, extension_service, payout_service, review_service
from app.services.activity_log import append_activity, open_request_ids, visible_activities
from app.services.collaborators import default_collaborators
from app.services.refund_service import RefundProcessor
from app.utils.exceptions import ServiceError, bad_request, forbidden, not_found
from app.utils.pagination import paginate_query


def _money(value, field, required=False):
    if value is None or value == "":
        if required:
            raise bad_request(f"{field} is required", {"field": field})
        return None
    if isinstance(value, bool):
        raise bad_request(f"{field} must be a number", {"field": field})
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise bad_request(f"{field} must be a number", {"field": field})
    if not amount.is_finite() or amount < 0:
        raise bad_request(f"{field} must be a non-negative number", {"field": field})
    return amount


ACCEPTABLE_STATUSES = ("active", "inprogress")
DECLINABLE_STATUSES = ("pending_payment", "active", "inprogress")


def _now():
    return datetime.now(timezone.utc)


class OrderLifecycleManager:
    def __init__(self, gigs, accounts, ledger, profiles, refunds=None):
        self.gigs = gigs
        self.accounts = accounts
        self.ledger = ledger
        self.profiles = profiles
        self.refunds = refunds or RefundProcessor(accounts, ledger)

    # ------------------------------------------------------------
    #  Unit of work
    # ------------------------------------------------------------
    def _load(self, order_id):
        order = db.session.get(Order, order_id)
        if not order:
            raise not_found("Order not found", {"order_id": order_id})
        return order

    def _mutate(self, order_id, operation):
        """Run ``operation(order)`` and commit, retrying on a stale version."""
        attempts = max(1, int(current_app.config.get("ORDER_SAVE_MAX_RETRIES", 3)))

        for attempt in range(1, attempts + 1):
            try:
                order = self._load(order_id)
                result = operation(order)
                # the order row itself must be updated so its version is checked
                order.updated_at = _now()
                db.session.commit()
                return order, result
            except StaleDataError:
                db.session.rollback()
                current_app.logger.warning(
                    "Order %s changed concurrently (attempt %s/%s), retrying",
                    order_id, attempt, attempts,
                )
            except ServiceError:
                db.session.rollback()
                raise
            except SQLAlchemyError as e:
                db.session.rollback()
                current_app.logger.exception("Failed to save order %s", order_id)
                raise ServiceError(
                    "INTERNAL", "Failed to save order", {"order_id": order_id}, status=500
                ) from e

        raise ServiceError(
            "CONFLICT",
            "Order was modified concurrently, please retry",
            {"order_id": order_id},
            status=409,
        )

    def _after_commit(self, description, effect):
        """Collaborator updates that must not undo an already committed change."""
        try:
            effect()
            db.session.commit()
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Post-commit step failed: %s", description)

    def _display_name(self, user_id):
        profile = self.profiles.display(user_id)
        if profile and profile.get("name"):
            return profile["name"]
        return user_id

    # ------------------------------------------------------------
    #  Serialization
    # ------------------------------------------------------------
    def serialize(self, order, user):
        data = order_detail_schema.dump(order)
        data["activities"] = activities_schema.dump(visible_activities(order))
        data["pending_extensions"] = open_request_ids(order, "extend_requested")
        data["pending_cancellations"] = open_request_ids(order, "cancel_requested")

        role = order.participant_role(user.id)
        data["my_role"] = role or user.role
        data["other_user"] = (
            self.profiles.display(order.other_participant_id(user.id)) if role else None
        )
        return data

    def _summary(self, order, user_id):
        data = order_summary_schema.dump(order)
        data["my_role"] = order.participant_role(user_id)
        data["other_user"] = self.profiles.display(order.other_participant_id(user_id))
        return data

    # ------------------------------------------------------------
    #  Creation & reads
    # ------------------------------------------------------------
    def create_order(self, payload, actor_id=None):
        payload = payload or {}
        seller_id = payload.get("seller_id")
        buyer_id = payload.get("buyer_id")
        if not seller_id or not buyer_id:
            raise bad_request("seller_id and buyer_id are required")
        if str(seller_id) == str(buyer_id):
            raise bad_request("Seller and buyer must be different users")

        for field, user_id in (("seller_id", seller_id), ("buyer_id", buyer_id)):
            if not db.session.get(User, user_id):
                raise not_found("User not found", {field: user_id})

        price = _money(payload.get("price"), "price", required=True)
        total_amount = _money(payload.get("total_amount"), "total_amount") or price

        status = payload.get("status") or DEFAULT_ORDER_STATUS
        if status not in ORDER_STATUSES:
            raise bad_request("Invalid status", {"allowed": list(ORDER_STATUSES)})

        gig_id = payload.get("gig_id")
        if gig_id and not db.session.get(Gig, gig_id):
            raise not_found("Gig not found", {"gig_id": gig_id})

        delivery_time = payload.get("delivery_time", 0)
        if isinstance(delivery_time, bool) or not isinstance(delivery_time, int) or delivery_time < 0:
            raise bad_request("delivery_time must be a non-negative integer")

        order = Order(
            id=gen_order_id(),
            title=payload.get("title"),
            description=payload.get("description"),
            requirements=payload.get("requirements"),
            seller_id=seller_id,
            buyer_id=buyer_id,
            created_by=actor_id,
            gig_id=gig_id,
            package_type=payload.get("package_type"),
            price=price,
            tip=Decimal("0"),
            total_amount=total_amount,
            delivery_time=delivery_time,
            currency=payload.get("currency") or current_app.config.get("DEFAULT_CURRENCY", "USD"),
            payment_method=payload.get("payment_method"),
            payment_id=payload.get("payment_id"),
            payment_status=payload.get("payment_status"),
            payment_amount=_money(payload.get("payment_amount"), "payment_amount"),
            status=status,
        )
        append_activity(order, "created", by=actor_id, note="Order created", to_status=status)

        try:
            db.session.add(order)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception("Failed to create order")
            raise ServiceError("INTERNAL", "Failed to create order", status=500) from e

        current_app.logger.info("Order %s created (%s)", order.id, status)
        return order

    def get_order(self, order_id, user):
        order = self._load(order_id)
        if not (order.is_participant(user.id) or user.is_admin):
            raise forbidden("Not authorized to view this order")
        return order

    def get_order_by_id(self, order_id, user):
        return self.serialize(self.get_order(order_id, user), user)

    def get_my_orders(self, user):
        statuses = current_app.config.get("MY_ORDERS_STATUSES", ())
        orders = (
            Order.query
            .filter(or_(Order.seller_id == user.id, Order.buyer_id == user.id))
            .filter(Order.status.in_(statuses))
            .order_by(Order.created_at.desc())
            .all()
        )
        return [self._summary(o, user.id) for o in orders]

    def get_completed_orders(self, user):
        orders = (
            Order.query
            .filter(Order.seller_id == user.id, Order.status == "complete")
            .order_by(Order.completed_at.desc())
            .all()
        )
        seller_name = self._display_name(user.id)
        return [
            {
                "id": o.id,
                "title": o.title,
                "price": float(o.price or 0),
                "tip": float(o.tip or 0),
                "started_at": o.started_at.isoformat() if o.started_at else None,
                "by": seller_name,
                "buyer": self._display_name(o.buyer_id),
            }
            for o in orders
        ]

    def get_user_seller_reviews(self, user_id):
        orders = (
            Order.query
            .filter(
                Order.seller_id == user_id,
                Order.status == "complete",
                or_(Order.buyer_rating.isnot(None), Order.buyer_review.isnot(None)),
            )
            .order_by(Order.buyer_review_at.desc())
            .all()
        )
        return [
            {
                "order_id": o.id,
                "title": o.title,
                "rating": o.buyer_rating,
                "review": o.buyer_review,
                "reviewed_at": o.buyer_review_at.isoformat() if o.buyer_review_at else None,
                "reply": o.seller_reply,
                "replied_at": o.seller_replied_at.isoformat() if o.seller_replied_at else None,
                "buyer": self.profiles.display(o.buyer_id),
            }
            for o in orders
        ]

    # ------------------------------------------------------------
    #  Status machine
    # ------------------------------------------------------------
    def _apply_status(self, order, status, message, actor_id):
        if status not in ORDER_STATUSES:
            raise bad_request("Invalid status", {"allowed": list(ORDER_STATUSES)})
        if order.is_terminal and status != order.status:
            raise bad_request(
                f"Order is already {order.status} and can no longer change status",
                {"status": order.status},
            )

        previous = order.status
        order.status = status

        if status == "revision":
            order.revision_message = message
        elif status == "cancel":
            order.cancel_message = message
        elif status == "complete":
            order.completed_at = _now()
            order.total_amount = Decimal(order.price or 0) + Decimal(order.tip or 0)

        append_activity(
            order,
            "status_changed",
            by=actor_id,
            note=message,
            from_status=previous,
            to_status=status,
        )
        return previous

    def _on_completed(self, order):
        if order.gig_id:
            self._after_commit(
                f"gig counters for order {order.id}",
                lambda: self.gigs.increment_orders_and_earnings(order.gig_id, order.total_amount),
            )
        self._refresh_metrics(order)

    def _refresh_metrics(self, order):
        for user_id in (order.seller_id, order.buyer_id):
            self._after_commit(
                f"metrics for user {user_id}",
                lambda uid=user_id: self.accounts.recalculate_metrics(uid),
            )

    def update_order_status(self, order_id, status, message, actor_id, is_admin=False):
        current = self._load(order_id)
        if not (is_admin or current.is_participant(actor_id)):
            raise forbidden("Not authorized to update this order")
        if current.is_terminal and status == current.status:
            return current

        order, previous = self._mutate(
            order_id, lambda o: self._apply_status(o, status, message, actor_id)
        )
        current_app.logger.info("Order %s status %s -> %s", order.id, previous, status)

        if status == "complete":
            self._on_completed(order)
        return order

    def accept_order(self, order_id, message, actor_id):
        def accept(order):
            if order.participant_role(actor_id) != "seller":
                raise forbidden("Only the seller can accept this order")
            if order.status not in ACCEPTABLE_STATUSES:
                raise bad_request(
                    f"Order cannot be accepted while {order.status}", {"status": order.status}
                )

            previous = order.status
            order.status = "accepted"
            append_activity(
                order,
                "order_accepted",
                by=actor_id,
                note=message or "Order accepted",
                from_status=previous,
                to_status="accepted",
            )

        order, _ = self._mutate(order_id, accept)
        current_app.logger.info("Order %s accepted by seller %s", order.id, actor_id)
        return order

    def decline_order(self, order_id, reason, actor_id):
        def decline(order):
            if order.participant_role(actor_id) != "seller":
                raise forbidden("Only the seller can decline this order")
            if order.status not in DECLINABLE_STATUSES:
                raise bad_request(
                    f"Order cannot be declined while {order.status}", {"status": order.status}
                )

            previous = order.status
            order.status = "cancel"
            order.cancel_message = reason or "Order declined"
            append_activity(
                order,
                "order_declined",
                by=actor_id,
                note=order.cancel_message,
                from_status=previous,
                to_status="cancel",
            )
            # nothing was paid yet
            if previous != "pending_payment":
                self.refunds.process_cancellation_refund(order, actor_id)

        order, _ = self._mutate(order_id, decline)
        current_app.logger.info("Order %s declined by seller %s", order.id, actor_id)
        self._refresh_metrics(order)
        return order

    def submit_delivery(self, order_id, message, actor_id):
        def deliver(order):
            if order.participant_role(actor_id) != "seller":
                raise forbidden("Only the seller can submit a delivery")
            if order.is_terminal:
                raise bad_request(f"Order is already {order.status}", {"status": order.status})
            if cancellation_service.pending_cancellation(order) is not None:
                raise bad_request("Cannot submit a delivery while a cancellation request is pending")

            previous = order.status
            order.status = "delivered"
            append_activity(
                order,
                "delivery_submitted",
                by=actor_id,
                note=message or "Delivery submitted",
                from_status=previous,
                to_status="delivered",
            )

        order, _ = self._mutate(order_id, deliver)
        current_app.logger.info("Order %s delivered", order.id)
        return order

    def accept_delivery(self, order_id, message, actor_id):
        def accept(order):
            if order.participant_role(actor_id) != "buyer":
                raise forbidden("Only the buyer can accept a delivery")
            if order.status != "delivered":
                raise bad_request("Order has no delivery to accept", {"status": order.status})

            order.refund_eligible = False
            append_activity(
                order,
                "delivery_accepted",
                by=actor_id,
                note=message or "Delivery accepted",
            )
            self._apply_status(order, "complete", message or "Order completed", actor_id)
            payout_service.pay_seller(order, actor_id, self.accounts, self.ledger)

        order, _ = self._mutate(order_id, accept)
        current_app.logger.info("Order %s completed on delivery acceptance", order.id)
        self._on_completed(order)
        return order

    def request_delivery_revision(self, order_id, message, actor_id, attachments=None):
        def request_revision(order):
            if order.participant_role(actor_id) != "buyer":
                raise forbidden("Only the buyer can request a revision")
            if order.status != "delivered":
                raise bad_request("Order has no delivery to revise", {"status": order.status})

            note = message or "Revision requested"
            order.status = "revision"
            order.revision_message = note
            append_activity(
                order,
                "delivery_revision_requested",
                by=actor_id,
                note=note,
                from_status="delivered",
                to_status="revision",
                attachments=list(attachments or []),
            )

        order, _ = self._mutate(order_id, request_revision)
        current_app.logger.info("Revision requested on order %s", order.id)
        return order

    # ------------------------------------------------------------
    #  Extensions
    # ------------------------------------------------------------
    def request_extension(self, order_id, days, reason, actor_id):
        order, ext = self._mutate(
            order_id,
            lambda o: extension_service.request_extension(o, days, reason, actor_id),
        )
        current_app.logger.info("Extension %s requested on order %s", ext.id, order.id)
        return order

    def decide_extension(self, order_id, index, decision, decider_id):
        order, ext = self._mutate(
            order_id,
            lambda o: extension_service.decide_extension(o, index, decision, decider_id),
        )
        current_app.logger.info("Extension %s on order %s %s", ext.id, order.id, decision)
        return order

    def decide_extension_by_id(self, order_id, extension_id, decision, decider_id):
        order, ext = self._mutate(
            order_id,
            lambda o: extension_service.decide_extension_by_id(o, extension_id, decision, decider_id),
        )
        current_app.logger.info("Extension %s on order %s %s", ext.id, order.id, decision)
        return order

    def decide_latest_pending(self, order_id, decision, decider_id):
        order, ext = self._mutate(
            order_id,
            lambda o: extension_service.decide_latest_pending(o, decision, decider_id),
        )
        current_app.logger.info("Extension %s on order %s %s", ext.id, order.id, decision)
        return order

    def extend_delivery(self, order_id, extra_days, actor_id, is_admin=False):
        order, _ = self._mutate(
            order_id,
            lambda o: extension_service.extend_delivery(o, extra_days, actor_id, is_admin),
        )
        return order

    # ------------------------------------------------------------
    #  Cancellations
    # ------------------------------------------------------------
    def can_cancel_order(self, order_id, user_id):
        return cancellation_service.can_cancel_order(self._load(order_id), user_id)

    def request_cancellation(self, order_id, reason, actor_id, attachments=None):
        order, req = self._mutate(
            order_id,
            lambda o: cancellation_service.request_cancellation(o, reason, actor_id, attachments),
        )
        current_app.logger.info("Cancellation %s requested on order %s", req.id, order.id)
        return order

    def decide_latest_cancel(self, order_id, decision, decider_id):
        decider_name = self._display_name(decider_id)
        order, req = self._mutate(
            order_id,
            lambda o: cancellation_service.decide_latest_cancel(
                o, decision, decider_id, self.refunds, decider_name
            ),
        )
        current_app.logger.info(
            "Cancellation %s on order %s decided: %s", req.id, order.id, req.status
        )
        if order.status == "cancel":
            self._refresh_metrics(order)
        return order

    def direct_cancel_order(self, order_id, reason, actor_id):
        order, _ = self._mutate(
            order_id,
            lambda o: cancellation_service.direct_cancel_order(o, reason, actor_id, self.refunds),
        )
        current_app.logger.info("Order %s cancelled by %s", order.id, actor_id)
        self._refresh_metrics(order)
        return order

    def list_admin_review_cancellations(self, page=1, limit=20):
        orders, meta = paginate_query(cancellation_service.orders_under_admin_review(), page, limit)
        result = []
        for order in orders:
            req = cancellation_service.latest_admin_review(order)
            result.append({
                "order": order_summary_schema.dump(order),
                "cancellation": cancellation_schema.dump(req),
                "seller": self.profiles.display(order.seller_id),
                "buyer": self.profiles.display(order.buyer_id),
            })
        return result, meta

    def admin_accept_cancellation(self, order_id, admin_reason, admin_id):
        order, req = self._mutate(
            order_id,
            lambda o: cancellation_service.admin_accept_cancellation(
                o, admin_reason, admin_id, self.refunds
            ),
        )
        current_app.logger.info("Admin %s accepted cancellation %s", admin_id, req.id)
        self._refresh_metrics(order)
        return order

    def admin_reject_cancellation(self, order_id, admin_reason, admin_id):
        order, req = self._mutate(
            order_id,
            lambda o: cancellation_service.admin_reject_cancellation(o, admin_reason, admin_id),
        )
        current_app.logger.info("Admin %s rejected cancellation %s", admin_id, req.id)
        return order

    # ------------------------------------------------------------
    #  Reviews
    # ------------------------------------------------------------
    def add_review_and_rating(self, order_id, payload, actor_id):
        order, _ = self._mutate(
            order_id,
            lambda o: review_service.add_review_and_rating(o, payload, actor_id),
        )
        current_app.logger.info("Review submitted on order %s", order.id)

        review = review_service.review_for_gig(order)
        if review:
            self._after_commit(
                f"gig review for order {order.id}",
                lambda: self.gigs.add_review(order.gig_id, review),
            )
        self._refresh_metrics(order)
        return order

    def submit_review_reply(self, order_id, reply, actor_id):
        order, _ = self._mutate(
            order_id,
            lambda o: review_service.submit_review_reply(o, reply, actor_id),
        )
        return order


def build_order_manager(**overrides):
    collaborators = default_collaborators()
    collaborators.update(overrides)
    return OrderLifecycleManager(**collaborators)
