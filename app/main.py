from flask import Flask
from .config import DevelopmentConfig, ProductionConfig, TestingConfig
from .extensions import db, migrate, jwt, ma, cors, enable_sqlite_savepoints
import os

CONFIGS = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def create_app(config_name=None, overrides=None):
    app = Flask(__name__, instance_relative_config=False)
    env = config_name or os.getenv("FLASK_ENV", "development")
    app.config.from_object(CONFIGS.get(env, DevelopmentConfig))
    if overrides:
        app.config.update(overrides)

    # initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)
    origins = [o.strip() for o in app.config["CORS_ORIGINS"].split(",")]
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": origins}},
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )

    # models must be imported before create_all / migrations see the metadata
    from app.models import (  # noqa: F401
        user, wallet, wallet_transaction, gig, gig_review,
        order, extension_request, cancellation_request, order_activity,
    )

    with app.app_context():
        enable_sqlite_savepoints(db.engine)

    # register blueprints
    from app.routes.order_routes import bp as order_bp
    from app.routes.review_routes import bp as review_bp
    from app.routes.admin_order_routes import bp as admin_orders_bp

    app.register_blueprint(order_bp)
    app.register_blueprint(review_bp)
    app.register_blueprint(admin_orders_bp)

    # error handlers to match required error format
    from app.utils.exceptions import ServiceError
    from app.utils.response_formatter import error_response, service_error_response

    @app.errorhandler(ServiceError)
    def service_error(e):
        return service_error_response(e)

    @app.errorhandler(400)
    def bad_request(e):
        return error_response("BAD_REQUEST", str(e), status=400)

    @app.errorhandler(401)
    def unauthorized(e):
        return error_response("UNAUTHORIZED", str(e), status=401)

    @app.errorhandler(404)
    def not_found(e):
        return error_response("NOT_FOUND", "Resource not found", status=404)

    @app.errorhandler(500)
    def server_error(e):
        return error_response("SERVER_ERROR", "Internal server error", status=500)

    return app
