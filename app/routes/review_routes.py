from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from app.routes.order_routes import current_user
from app.services.order_service import build_order_manager
from app.utils.response_formatter import success_response

bp = Blueprint("reviews", __name__, url_prefix="/api/v1")


@bp.route("/orders/<string:order_id>/review", methods=["POST"])
@jwt_required()
def submit_review(order_id):
    user = current_user()
    data = request.get_json(silent=True) or {}

    manager = build_order_manager()
    order = manager.add_review_and_rating(order_id, data, user.id)
    return success_response({"order": manager.serialize(order, user)}, message="Review submitted")


@bp.route("/orders/<string:order_id>/review/reply", methods=["POST"])
@jwt_required()
def reply_to_review(order_id):
    user = current_user()
    data = request.get_json(silent=True) or {}

    manager = build_order_manager()
    order = manager.submit_review_reply(order_id, data.get("reply"), user.id)
    return success_response({"order": manager.serialize(order, user)}, message="Reply submitted")


@bp.route("/reviews/users/<string:user_id>", methods=["GET"])
def seller_reviews(user_id):
    reviews = build_order_manager().get_user_seller_reviews(user_id)
    return success_response({"reviews": reviews})
