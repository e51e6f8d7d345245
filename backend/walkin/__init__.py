# backend/walkin/__init__.py
from flask import Flask, current_app, jsonify, request
from sqlalchemy.exc import OperationalError

from .config import Config
from .extensions import db, install_sqlite_functions, migrate
from .validation import DomainError



def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before db.init_app reads SQLALCHEMY_DATABASE_URI
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    with app.app_context():
        install_sqlite_functions(db.engine)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.walkins import walkins_bp
    from .routes.customers import customers_bp
    from .routes.services import services_bp
    from .routes.staff import staff_bp
    from .routes.categories import categories_bp
    from .routes.products import products_bp

    app.register_blueprint(walkins_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(services_bp)
    app.register_blueprint(staff_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(products_bp)

    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(OperationalError)
    def handle_store_unavailable(e: OperationalError):
        current_app.logger.error("Database unavailable: %s", e)
        db.session.rollback()
        return jsonify({"error": "Database temporarily unavailable", "retryable": True}), 503

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PATCH,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
