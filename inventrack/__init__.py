import os
import logging
from zoneinfo import ZoneInfo
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from apscheduler.schedulers.background import BackgroundScheduler
from pytz import timezone as _pytz_tz
from .errors import Unauthorized, register_error_handlers

# shared extensions
db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
scheduler = BackgroundScheduler()


def _env_flag(name, default="true"):
    return os.environ.get(name, default).lower() in ("1", "true", "yes", "on")


def create_app(config=None):
    app = Flask(__name__)

    # --- Config ---
    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "devkey-change-me")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///inventory.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["TZ_NAME"] = os.environ.get("TZ_NAME", "UTC")
    app.config["ADMIN_USERNAME"] = os.environ.get("ADMIN_USERNAME", "admin")
    app.config["ADMIN_PASSWORD"] = os.environ.get("ADMIN_PASSWORD", "admin")
    app.config["ARCHIVE_INTERVAL_HOURS"] = float(os.environ.get("ARCHIVE_INTERVAL_HOURS", "24"))
    app.config["ARCHIVE_REJECTED_DAYS"] = int(os.environ.get("ARCHIVE_REJECTED_DAYS", "3"))
    app.config["ARCHIVE_APPROVED_DAYS"] = int(os.environ.get("ARCHIVE_APPROVED_DAYS", "5"))
    app.config["SCHEDULER_ENABLED"] = _env_flag("SCHEDULER_ENABLED")
    app.config["LOG_LEVEL"] = os.environ.get("LOG_LEVEL", "INFO").upper()
    if config:
        app.config.update(config)
    app.config["APP_TZ"] = ZoneInfo(app.config["TZ_NAME"])
    app.json.ensure_ascii = False

    # --- Logging ---
    logging.basicConfig(format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    logging.getLogger(__name__).setLevel(app.config["LOG_LEVEL"])
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # --- Extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    @login_manager.unauthorized_handler
    def _unauthorized():
        err = Unauthorized()
        return jsonify(err.to_dict()), err.status_code

    # --- Models and blueprints ---
    from .models import User, ItemRequest, ArchivedRequest, ChangeLog  # noqa
    from .inventory_models import InventoryItem  # noqa
    from .auth import bp as auth_bp
    from .inventory import bp as inventory_bp
    from .procurement import bp as requests_bp
    from .admin import bp as admin_bp

    register_error_handlers(app)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(inventory_bp, url_prefix="/items")
    app.register_blueprint(requests_bp, url_prefix="/requests")
    app.register_blueprint(admin_bp, url_prefix="/admin")

    # --- Schema and default admin ---
    from .identity import ensure_admin
    with app.app_context():
        db.create_all()
        ensure_admin(app.config["ADMIN_USERNAME"], app.config["ADMIN_PASSWORD"])

    # ====================== Jobs (scheduler) ======================
    def archive_sweep_job():
        from .lifecycle import archive_stale_requests
        with app.app_context():
            try:
                return archive_stale_requests()
            finally:
                db.session.remove()

    app.archive_sweep_job = archive_sweep_job

    should_start = (not app.debug) or (os.environ.get("WERKZEUG_RUN_MAIN") in ("true", "True", "1"))
    if app.config["SCHEDULER_ENABLED"] and not scheduler.running and should_start:
        scheduler.configure(timezone=_pytz_tz(app.config["TZ_NAME"]))
        interval_h = app.config["ARCHIVE_INTERVAL_HOURS"]
        scheduler.add_job(
            archive_sweep_job, "interval",
            hours=interval_h, id="archive_requests", replace_existing=True
        )
        scheduler.start()
        app.logger.info("scheduler started (debug=%s, interval=%sh)", app.debug, interval_h)

    return app
