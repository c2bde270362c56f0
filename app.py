import uuid
from pathlib import Path

from flask import Flask, g
from werkzeug.middleware.proxy_fix import ProxyFix

from config import Config
from extensions import db, limiter, migrate
from routes.auth_routes import auth_bp
from routes.backup_routes import backup_bp
from routes.dashboard_routes import dashboard_bp
from routes.jenis_tagihan_routes import jenis_tagihan_bp
from routes.orangtua_routes import orangtua_bp
from routes.pembayaran_routes import pembayaran_bp
from routes.siswa_routes import siswa_bp
from routes.tagihan_routes import tagihan_bp
from routes.tahun_ajaran_routes import tahun_ajaran_bp
from utils.roles import load_current_user


def _ensure_sqlite_dir(uri: str) -> None:
    if uri.startswith("sqlite:///") and ":memory:" not in uri:
        Path(uri[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Trust reverse proxy headers for scheme/host when enabled
    if app.config.get("TRUST_PROXY"):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)  # type: ignore[method-assign]

    # Backup directory is fixed for the life of the process
    backup_dir = Path(app.config["BACKUP_DIRECTORY"]).resolve()
    backup_dir.mkdir(parents=True, exist_ok=True)
    app.config["BACKUP_DIRECTORY"] = str(backup_dir)

    _ensure_sqlite_dir(app.config.get("SQLALCHEMY_DATABASE_URI", ""))
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(backup_bp)
    app.register_blueprint(tahun_ajaran_bp)
    app.register_blueprint(siswa_bp)
    app.register_blueprint(jenis_tagihan_bp)
    app.register_blueprint(tagihan_bp)
    app.register_blueprint(pembayaran_bp)
    app.register_blueprint(orangtua_bp)

    @app.before_request
    def _assign_request_context():
        # Per-request correlation id and the logged-in user, if any
        g.request_id = uuid.uuid4().hex[:16]
        load_current_user()

    @app.after_request
    def _set_security_headers(resp):
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
        resp.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        if app.config.get("SESSION_COOKIE_SECURE", False):
            resp.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return resp

    if app.config.get("AUTO_CREATE_TABLES", True):
        with app.app_context():
            db.create_all()

    app.logger.info("SPP app ready (backups in %s)", backup_dir)
    return app

