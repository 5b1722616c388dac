import logging
import os

from flask import Flask
from flask_cors import CORS

from .config import CONFIGS
from .extensions import db, migrate, jwt, ma


def create_app(config_name=None, overrides=None):
    app = Flask(__name__, instance_relative_config=False)
    env = config_name or os.getenv("FLASK_ENV", "development")
    app.config.from_object(CONFIGS.get(env, CONFIGS["development"]))
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(level=app.config["LOG_LEVEL"])
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)
    origins = [o.strip() for o in app.config["CORS_ORIGINS"].split(",")]
    CORS(
        app,
        resources={r"/api/*": {"origins": origins}},
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )

    # models must be imported before create_all / migrations see them
    from gigmarket.models import (  # noqa: F401
        user, worker_profile, order, proposal, message,
        payment_intent, review, report, notification,
    )

    # change feed + notification fan-out
    from gigmarket.services.change_feed import ChangeFeed
    from gigmarket.services.notification_service import register_fanout

    feed = ChangeFeed()
    app.extensions["change_feed"] = feed
    app.extensions["notification_fanout"] = register_fanout(feed)

    # register blueprints
    from gigmarket.routes.order_routes import bp as order_bp
    from gigmarket.routes.feed_routes import bp as feed_bp
    from gigmarket.routes.proposal_routes import bp as proposal_bp
    from gigmarket.routes.chat_routes import bp as chat_bp
    from gigmarket.routes.payment_routes import bp as payment_bp
    from gigmarket.routes.notification_routes import bp as notification_bp
    from gigmarket.routes.profile_routes import bp as profile_bp
    from gigmarket.routes.user_routes import bp as user_bp
    from gigmarket.routes.admin_routes import bp as admin_bp

    app.register_blueprint(order_bp)
    app.register_blueprint(feed_bp)
    app.register_blueprint(proposal_bp)
    app.register_blueprint(chat_bp)
    app.register_blueprint(payment_bp)
    app.register_blueprint(notification_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(admin_bp)

    # error handlers to match required error format
    from gigmarket.services.repository import rollback
    from gigmarket.utils.exceptions import ServiceError
    from gigmarket.utils.response_formatter import error_response, service_error_response

    @app.errorhandler(ServiceError)
    def service_error(e):
        rollback()
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
