from flask import Blueprint, request
from flask_jwt_extended import jwt_required, get_jwt_identity
from app.extensions import db
from app.models.user import User
from app.services.order_service import build_order_manager
from app.utils.response_formatter import success_response, error_response

bp = Blueprint("admin_orders", __name__, url_prefix="/api/v1/admin")


def admin_required(user):
    return user is not None and user.is_admin


def _admin():
    return db.session.get(User, get_jwt_identity())


@bp.route("/cancellations", methods=["GET"])
@jwt_required()
def list_cancellations():
    admin = _admin()
    if not admin_required(admin):
        return error_response("FORBIDDEN", "Admin privileges required", status=403)

    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", 20, type=int)

    items, meta = build_order_manager().list_admin_review_cancellations(page, limit)
    return success_response({"cancellations": items, "pagination": meta})


@bp.route("/orders/<string:order_id>/cancellations/accept", methods=["POST"])
@jwt_required()
def accept_cancellation(order_id):
    admin = _admin()
    if not admin_required(admin):
        return error_response("FORBIDDEN", "Admin privileges required", status=403)

    data = request.get_json(silent=True) or {}
    manager = build_order_manager()
    order = manager.admin_accept_cancellation(order_id, data.get("admin_reason"), admin.id)
    return success_response(
        {"order": manager.serialize(order, admin)},
        message="Cancellation approved and refund processed",
    )


@bp.route("/orders/<string:order_id>/cancellations/reject", methods=["POST"])
@jwt_required()
def reject_cancellation(order_id):
    admin = _admin()
    if not admin_required(admin):
        return error_response("FORBIDDEN", "Admin privileges required", status=403)

    data = request.get_json(silent=True) or {}
    manager = build_order_manager()
    order = manager.admin_reject_cancellation(order_id, data.get("admin_reason"), admin.id)
    return success_response({"order": manager.serialize(order, admin)}, message="Cancellation rejected")
