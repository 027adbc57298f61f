from flask import Blueprint, request
from flask_jwt_extended import jwt_required, get_jwt_identity
from app.extensions import db
from app.models.user import User
from app.services.order_service import build_order_manager
from app.utils.exceptions import bad_request, not_found
from app.utils.response_formatter import success_response

bp = Blueprint("orders", __name__, url_prefix="/api/v1/orders")


def current_user():
    uid = get_jwt_identity()
    user = db.session.get(User, uid)
    if not user:
        raise not_found("User not found")
    return user


def _int_field(data, name):
    value = data.get(name)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return value


# ------------------------------------------------------------
#  POST /orders: create an order
# ------------------------------------------------------------
@bp.route("", methods=["POST"])
@jwt_required()
def create_order():
    user = current_user()
    data = request.get_json(silent=True) or {}

    manager = build_order_manager()
    order = manager.create_order(data, actor_id=user.id)
    return success_response({"order": manager.serialize(order, user)}, status=201)


# ------------------------------------------------------------
#  GET /orders: orders the user sells or buys
# ------------------------------------------------------------
@bp.route("", methods=["GET"])
@jwt_required()
def my_orders():
    user = current_user()
    orders = build_order_manager().get_my_orders(user)
    return success_response({"orders": orders})


@bp.route("/completed", methods=["GET"])
@jwt_required()
def completed_orders():
    user = current_user()
    orders = build_order_manager().get_completed_orders(user)
    return success_response({"orders": orders})


@bp.route("/<string:order_id>", methods=["GET"])
@jwt_required()
def get_order(order_id):
    user = current_user()
    order = build_order_manager().get_order_by_id(order_id, user)
    return success_response({"order": order})


@bp.route("/<string:order_id>/status", methods=["PATCH"])
@jwt_required()
def update_status(order_id):
    user = current_user()
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if not status:
        raise bad_request("status is required")

    manager = build_order_manager()
    order = manager.update_order_status(
        order_id, status, data.get("message"), user.id, is_admin=user.is_admin
    )
    return success_response({"order": manager.serialize(order, user)})


# ------------------------------------------------------------
#  Seller response to a new order
# ------------------------------------------------------------
@bp.route("/<string:order_id>/accept", methods=["POST"])
@jwt_required()
def accept_order(order_id):
    user = current_user()
    data = request.get_json(silent=True) or {}

    manager = build_order_manager()
    order = manager.accept_order(order_id, data.get("message"), user.id)
    return success_response({"order": manager.serialize(order, user)}, message="Order accepted")


@bp.route("/<string:order_id>/decline", methods=["POST"])
@jwt_required()
def decline_order(order_id):
    user = current_user()
    data = request.get_json(silent=True) or {}

    manager = build_order_manager()
    order = manager.decline_order(order_id, data.get("reason"), user.id)
    return success_response({"order": manager.serialize(order, user)}, message="Order declined")


# ------------------------------------------------------------
#  Delivery
# ------------------------------------------------------------
@bp.route("/<string:order_id>/delivery", methods=["POST"])
@jwt_required()
def submit_delivery(order_id):
    user = current_user()
    data = request.get_json(silent=True) or {}

    manager = build_order_manager()
    order = manager.submit_delivery(order_id, data.get("message"), user.id)
    return success_response({"order": manager.serialize(order, user)}, message="Delivery submitted")


@bp.route("/<string:order_id>/delivery/accept", methods=["POST"])
@jwt_required()
def accept_delivery(order_id):
    user = current_user()
    data = request.get_json(silent=True) or {}

    manager = build_order_manager()
    order = manager.accept_delivery(order_id, data.get("message"), user.id)
    return success_response({"order": manager.serialize(order, user)}, message="Delivery accepted")


@bp.route("/<string:order_id>/delivery/revision", methods=["POST"])
@jwt_required()
def request_delivery_revision(order_id):
    user = current_user()
    data = request.get_json(silent=True) or {}
    attachments = data.get("attachments") or []
    if not isinstance(attachments, list):
        raise bad_request("attachments must be a list")

    manager = build_order_manager()
    order = manager.request_delivery_revision(order_id, data.get("message"), user.id, attachments)
    return success_response({"order": manager.serialize(order, user)}, message="Revision requested")


# ------------------------------------------------------------
#  Extensions
# ------------------------------------------------------------
@bp.route("/<string:order_id>/extensions", methods=["POST"])
@jwt_required()
def request_extension(order_id):
    user = current_user()
    data = request.get_json(silent=True) or {}

    manager = build_order_manager()
    order = manager.request_extension(order_id, _int_field(data, "days"), data.get("reason"), user.id)
    return success_response({"order": manager.serialize(order, user)}, status=201)


@bp.route("/<string:order_id>/extensions/<string:extension_id>/decision", methods=["POST"])
@jwt_required()
def decide_extension_by_id(order_id, extension_id):
    user = current_user()
    data = request.get_json(silent=True) or {}

    manager = build_order_manager()
    order = manager.decide_extension_by_id(order_id, extension_id, data.get("decision"), user.id)
    return success_response({"order": manager.serialize(order, user)})


@bp.route("/<string:order_id>/extensions/index/<int:index>/decision", methods=["POST"])
@jwt_required()
def decide_extension_by_index(order_id, index):
    user = current_user()
    data = request.get_json(silent=True) or {}

    manager = build_order_manager()
    order = manager.decide_extension(order_id, index, data.get("decision"), user.id)
    return success_response({"order": manager.serialize(order, user)})


@bp.route("/<string:order_id>/extensions/latest/decision", methods=["POST"])
@jwt_required()
def decide_latest_extension(order_id):
    user = current_user()
    data = request.get_json(silent=True) or {}

    manager = build_order_manager()
    order = manager.decide_latest_pending(order_id, data.get("decision"), user.id)
    return success_response({"order": manager.serialize(order, user)})


@bp.route("/<string:order_id>/extend-delivery", methods=["POST"])
@jwt_required()
def extend_delivery(order_id):
    user = current_user()
    data = request.get_json(silent=True) or {}

    manager = build_order_manager()
    order = manager.extend_delivery(
        order_id, _int_field(data, "extra_days"), user.id, is_admin=user.is_admin
    )
    return success_response({"order": manager.serialize(order, user)})


# ------------------------------------------------------------
#  Cancellations
# ------------------------------------------------------------
@bp.route("/<string:order_id>/cancellation-eligibility", methods=["GET"])
@jwt_required()
def cancellation_eligibility(order_id):
    user = current_user()
    build_order_manager().can_cancel_order(order_id, user.id)
    return success_response({"can_cancel": True})


@bp.route("/<string:order_id>/cancellations", methods=["POST"])
@jwt_required()
def request_cancellation(order_id):
    user = current_user()
    data = request.get_json(silent=True) or {}
    attachments = data.get("attachments") or []
    if not isinstance(attachments, list):
        raise bad_request("attachments must be a list")

    manager = build_order_manager()
    order = manager.request_cancellation(order_id, data.get("reason"), user.id, attachments)
    return success_response({"order": manager.serialize(order, user)}, status=201)


@bp.route("/<string:order_id>/cancellations/latest/decision", methods=["POST"])
@jwt_required()
def decide_latest_cancellation(order_id):
    user = current_user()
    data = request.get_json(silent=True) or {}

    manager = build_order_manager()
    order = manager.decide_latest_cancel(order_id, data.get("decision"), user.id)
    return success_response({"order": manager.serialize(order, user)})


@bp.route("/<string:order_id>/cancel", methods=["POST"])
@jwt_required()
def cancel_order(order_id):
    user = current_user()
    data = request.get_json(silent=True) or {}

    manager = build_order_manager()
    order = manager.direct_cancel_order(order_id, data.get("reason"), user.id)
    return success_response({"order": manager.serialize(order, user)}, message="Order cancelled")
