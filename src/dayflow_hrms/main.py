from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, request
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from werkzeug.exceptions import HTTPException

from .common.datetime_utils import now_local, parse_duration
from .common.http import failure, success
from .common.rate_limit import RateLimiter
from .config import get_settings_module
from .container import Container, build_container
from .core.constants import API_VERSION
from .core.exceptions import DomainError
from .database.bootstrap import ensure_demo_users, ensure_indexes, list_collections
from .database.connection import DatabaseConnection, MongoConfig

from .attendance.controller import register as register_attendance
from .dashboard.controller import register as register_dashboard
from .leaves.controller import register as register_leaves
from .payroll.controller import register as register_payroll
from .reports.controller import register as register_reports
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

CONTAINER_KEY = "dayflow_container"
RATE_LIMITER_KEY = "dayflow_rate_limiter"


def _load_settings(settings_module: Optional[str], overrides: Optional[dict]) -> dict:
    module = importlib.import_module(settings_module or get_settings_module())
    values = {name: getattr(module, name) for name in dir(module) if name.isupper()}
    values.update(overrides or {})
    values["SETTINGS_MODULE"] = module.__name__
    return values


def _configure_logging(level_name: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level_name).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _register_jwt_handlers(jwt: JWTManager) -> None:
    @jwt.unauthorized_loader
    def _missing_token(reason: str):
        return failure("Not authorized, no token", 401)

    @jwt.invalid_token_loader
    def _invalid_token(reason: str):
        return failure("Not authorized, token failed", 401)

    @jwt.expired_token_loader
    def _expired_token(jwt_header, jwt_payload):
        return failure("Token has expired, please log in again", 401)


def _register_rate_limit(app: Flask, settings: dict) -> None:
    limit = int(settings.get("RATE_LIMIT", 0) or 0)
    window = int(settings.get("RATE_LIMIT_WINDOW_SECONDS", 0) or 0)
    if limit <= 0 or window <= 0:
        return

    limiter = RateLimiter(limit=limit, window_seconds=window)
    app.extensions[RATE_LIMITER_KEY] = limiter

    @app.before_request
    def _rate_limit():
        if not request.path.startswith("/api/"):
            return None
        state = limiter.check(identity=request.remote_addr or "unknown")
        if state.allowed:
            return None
        response, status = failure("Too many requests from this IP, please try again later.", 429)
        response.headers["Retry-After"] = str(state.reset_in)
        return response, status


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def _domain_error(e: DomainError):
        return failure(str(e), e.status_code)

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        if e.code == 404:
            return failure("API endpoint not found", 404)
        return failure(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def _unexpected_error(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        if app.config.get("DEBUG"):
            return failure(f"Something went wrong! {e}", 500)
        return failure("Something went wrong!", 500)


def _build_default_container(settings: dict) -> Container:
    conn = DatabaseConnection.get_instance(MongoConfig(**settings["MONGO_CONFIG"]))
    db = conn.database()

    if settings.get("AUTO_INIT_DB"):
        ensure_indexes(db)
        logger.info("Indexes ready on %s (collections=%d)", db.name, len(list_collections(db)))
    if settings.get("AUTO_SEED_DB"):
        ensure_demo_users(db)
        logger.info("Demo accounts ready")

    return build_container(db=db, pf_deducted_from_net=bool(settings.get("PF_DEDUCTED_FROM_NET", False)))


def create_app(
    *,
    settings_module: Optional[str] = None,
    container: Optional[Container] = None,
    overrides: Optional[dict] = None,
) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings = _load_settings(settings_module, overrides)
    _configure_logging(settings.get("LOG_LEVEL", "INFO"))

    app.secret_key = settings["SECRET_KEY"]
    app.config["DEBUG"] = bool(settings.get("DEBUG", False))
    app.config["TESTING"] = bool(settings.get("TESTING", False))
    app.config["PORT"] = int(settings.get("PORT", 5000))
    app.config["JWT_SECRET_KEY"] = settings["JWT_SECRET"]
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = parse_duration(settings.get("JWT_EXPIRE", "1d"))
    app.config["JWT_TOKEN_LOCATION"] = ["headers"]

    logger.debug("Settings module %s", settings["SETTINGS_MODULE"])

    CORS(app, resources={r"/api/*": {"origins": settings.get("FRONTEND_URL")}}, supports_credentials=True)
    _register_jwt_handlers(JWTManager(app))
    _register_rate_limit(app, settings)

    if container is None:
        container = _build_default_container(settings)
    app.extensions[CONTAINER_KEY] = container

    register_users(app, container)
    register_attendance(app, container)
    register_leaves(app, container)
    register_payroll(app, container)
    register_reports(app, container)
    register_dashboard(app, container)

    @app.route("/api/health", methods=["GET"], endpoint="health")
    def health():
        return success(
            status="OK",
            message="DayFlow HRMS API is running",
            timestamp=now_local().isoformat(),
            version=API_VERSION,
        )

    _register_error_handlers(app)
    return app


def run() -> None:
    app = create_app()
    app.run(host="0.0.0.0", port=app.config["PORT"], debug=app.config["DEBUG"])


if __name__ == "__main__":
    run()
