# --- storefront/__init__.py ---
import uuid

import structlog
from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import InternalError, StorefrontError
from .extensions import db, jwt, cors, migrate
from .utils.api import api_error, request_language
from .utils.logging import bind_request_context, clear_request_context, configure_logging

logger = structlog.get_logger(__name__)


def register_error_handlers(app):
    @app.errorhandler(StorefrontError)
    def handle_storefront_error(e: StorefrontError):
        r = jsonify(api_error(e.message(request_language()), {"error": e.as_api()}))
        r.status_code = e.status_code
        return r

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return e
        db.session.rollback()
        logger.exception("Unhandled error", path=request.path)
        return handle_storefront_error(InternalError())


def register_request_logging(app):
    @app.before_request
    def _bind():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        bind_request_context(request_id=g.request_id, method=request.method, path=request.path)

    @app.teardown_request
    def _clear(exc=None):
        clear_request_context()


def create_app(config_object=None, overrides: dict | None = None, gateway=None):
    app = Flask(__name__, instance_relative_config=True)

    config_object = config_object or Config
    app.config.from_object(config_object)
    if overrides:
        app.config.update(overrides)
    config_object.init_app(app)

    configure_logging(app.config["LOG_LEVEL"], app.config["LOG_JSON"])

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, resources={r"/*": {"origins": "*"}})
    migrate.init_app(app, db)

    from .gateway import init_gateway
    init_gateway(app, gateway)

    # Register blueprints
    from .cart import bp as cart_bp; app.register_blueprint(cart_bp)
    from .order import bp as order_bp, admin_bp as admin_order_bp
    app.register_blueprint(order_bp)
    app.register_blueprint(admin_order_bp)
    from .payment import bp as payment_bp; app.register_blueprint(payment_bp)
    from .coupon import bp as coupon_bp; app.register_blueprint(coupon_bp)
    from .inventory import bp as inventory_bp; app.register_blueprint(inventory_bp)

    register_error_handlers(app)
    register_request_logging(app)

    from .cli import register_cli
    register_cli(app)

    @app.get("/")
    def health():
        return jsonify(ok=True, msg="API running")

    with app.app_context():
        from . import model  # noqa: F401
        db.create_all()

    return app
