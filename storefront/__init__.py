# --- storefront/__init__.py ---
import logging

from flask import Flask, jsonify
from sqlalchemy import inspect

from .config import Capabilities, Config
from .extensions import db, jwt, cors, migrate


def _resolve_capabilities(app):
    caps = app.config.get("CAPABILITIES")
    if isinstance(caps, Capabilities):
        return caps
    tables = set(inspect(db.engine).get_table_names())
    caps = Capabilities(
        variants="product_variants" in tables,
        settings="store_settings" in tables,
    )
    app.config["CAPABILITIES"] = caps
    return caps


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)

    config_object = config_object or Config
    app.config.from_object(config_object)
    config_object.init_app(app)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, resources={r"/api/*": {"origins": "*"}})
    migrate.init_app(app, db)

    # Register blueprints
    from .pricing import bp as pricing_bp; app.register_blueprint(pricing_bp)
    from .promotions import bp as promotions_bp; app.register_blueprint(promotions_bp)
    from .orders import bp as orders_bp; app.register_blueprint(orders_bp)
    from .admin import bp as admin_bp; app.register_blueprint(admin_bp)

    from .utils.api import register_error_handlers
    register_error_handlers(app)

    from .cli import register_cli
    register_cli(app)

    @app.get("/api/health")
    def health():
        return jsonify(ok=True, msg="API running")

    with app.app_context():
        from . import model  # noqa: F401  (register tables on the metadata)
        if app.config.get("AUTO_CREATE_TABLES", True):
            db.create_all()
        caps = _resolve_capabilities(app)
        app.logger.info("capabilities resolved: variants=%s settings=%s", caps.variants, caps.settings)

    return app
