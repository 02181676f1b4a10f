import os
import logging
import traceback

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from werkzeug.exceptions import HTTPException

from config import Config

db = SQLAlchemy()
login_manager = LoginManager()

_startup_errors = []


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)

    os.makedirs(app.instance_path, exist_ok=True)
    os.makedirs(app.config.get("UPLOAD_FOLDER", os.path.join(app.instance_path, "evidence")), exist_ok=True)

    # HTTPS support behind a reverse proxy
    if os.environ.get("BEHIND_PROXY"):
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    db.init_app(app)
    login_manager.init_app(app)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Authentication required."}), 401

    # Gzip compression for JSON responses
    from flask_compress import Compress
    Compress(app)

    from esg_portal.auth.routes import auth_bp, admin_bp
    from esg_portal.company.routes import company_bp
    from esg_portal.metrics.routes import metrics_bp
    from esg_portal.esg.routes import esg_bp
    from esg_portal.compliance.routes import compliance_bp
    from esg_portal.tasks.routes import tasks_bp
    from esg_portal.evidence.routes import evidence_bp
    from esg_portal.features.routes import features_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(company_bp)
    app.register_blueprint(metrics_bp)
    app.register_blueprint(esg_bp)
    app.register_blueprint(compliance_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(evidence_bp)
    app.register_blueprint(features_bp)

    @app.route("/api/health")
    def health():
        """Health check: app status and database connectivity."""
        db_url = app.config["SQLALCHEMY_DATABASE_URI"]
        db_type = db_url.split("://")[0] if "://" in db_url else "sqlite"

        db_ok = False
        db_error = None
        tables = []
        try:
            from sqlalchemy import inspect, text
            db.session.execute(text("SELECT 1"))
            db_ok = True
            tables = inspect(db.engine).get_table_names()
        except Exception as e:
            db_error = str(e)

        return jsonify({
            "status": "ok" if db_ok else "db_error",
            "database_type": db_type,
            "database_connected": db_ok,
            "database_error": db_error,
            "tables": tables,
            "startup_errors": _startup_errors,
        })

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({"error": error.description or error.name}), error.code

    @app.errorhandler(413)
    def file_too_large(error):
        max_mb = app.config.get("MAX_CONTENT_LENGTH", 0) // (1024 * 1024)
        return jsonify({"error": f"File too large. Maximum size is {max_mb} MB."}), 413

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        original = getattr(error, "original_exception", None) or error
        logger.error(f"500 error: {type(original).__name__}: {original}\n{traceback.format_exc()}")
        return jsonify({"error": "Internal server error. The error has been logged."}), 500

    with app.app_context():
        from esg_portal import models  # noqa: F401  (registers tables)

        try:
            db.create_all()
            logger.info("Database tables created/verified.")
        except Exception as e:
            msg = f"db.create_all() failed: {e}"
            logger.error(msg)
            _startup_errors.append(msg)

        try:
            _seed_admin(app)
        except Exception as e:
            msg = f"_seed_admin() failed: {e}"
            logger.error(msg)
            _startup_errors.append(msg)

    return app


def _seed_admin(app):
    """Create the system admin account if none exists."""
    from esg_portal.models import User, ROLE_ADMIN

    email = app.config.get("ADMIN_EMAIL")
    password = app.config.get("ADMIN_PASSWORD")
    if not email or not password:
        return
    if not User.query.filter_by(email=email).first():
        admin = User(
            email=email,
            name="Administrator",
            role=ROLE_ADMIN,
            plan="enterprise",
            must_change_password=True,
        )
        admin.set_password(password)
        db.session.add(admin)
        db.session.commit()
