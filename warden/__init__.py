"""warden application factory and security pipeline bootstrap."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from flask import Flask

from warden.config import config_by_name
from warden.core.auth.users import InMemoryUserLookupService
from warden.core.pipeline import REMEMBER_ME_SERVICES, ConfigurationError, SecurityPipeline, SecurityPipelineBuilder
from warden.core.rememberme import InMemoryTokenStore, SqlAlchemyTokenStore
from warden.extensions import init_extensions


def create_app(config_name: Optional[str] = None) -> Flask:
    """Create and configure the warden Flask application."""
    env_name = (config_name or os.environ.get("APP_ENV") or "development").lower()
    project_root = Path(__file__).resolve().parent.parent
    instance_root = project_root / "instance"

    app = Flask(__name__, instance_path=str(instance_root), instance_relative_config=True)
    config_cls = config_by_name.get(env_name, config_by_name["development"])
    app.config.from_object(config_cls)

    # Normalize sqlite path to absolute to avoid "unable to open database file"
    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    if db_uri.startswith("sqlite:///") and db_uri != "sqlite:///:memory:":
        db_path = Path(db_uri.replace("sqlite:///", "", 1))
        abs_path = db_path if db_path.is_absolute() else project_root / db_path
        abs_path.parent.mkdir(parents=True, exist_ok=True)
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{abs_path}"

    init_extensions(app)
    _register_blueprints(app)
    _register_error_handlers(app)

    pipeline = build_security_pipeline(app)
    pipeline.init_app(app)

    @app.get("/health")
    def health():
        return {"ok": True}, 200

    # Register CLI commands
    from warden.scripts.revoke_remember_me import register_commands

    register_commands(app)

    return app


def build_security_pipeline(app: Flask) -> SecurityPipeline:
    """Assemble form login, logout and remember-me from the app config."""
    config = app.config

    users = InMemoryUserLookupService()
    for username, password in (config.get("IN_MEMORY_USERS") or {}).items():
        users.with_user(username, password)

    builder = SecurityPipelineBuilder()
    builder.user_lookup_service(users)
    builder.logout().set_logout_url(config["LOGOUT_URL"])
    builder.form_login().set_login_url(config["LOGIN_URL"])

    remember_me = builder.remember_me()
    remember_me.set_remember_parameter(config["REMEMBER_ME_PARAMETER"])
    remember_me.set_cookie_name(config["REMEMBER_ME_COOKIE_NAME"])
    if config.get("REMEMBER_ME_KEY"):
        remember_me.set_key(config["REMEMBER_ME_KEY"])
    if config.get("REMEMBER_ME_TOKEN_VALIDITY_SECONDS") is not None:
        remember_me.set_token_validity_seconds(config["REMEMBER_ME_TOKEN_VALIDITY_SECONDS"])
    if config.get("REMEMBER_ME_USE_SECURE_COOKIE") is not None:
        remember_me.set_use_secure_cookie(config["REMEMBER_ME_USE_SECURE_COOKIE"])

    store_kind = (config.get("REMEMBER_ME_TOKEN_STORE") or "stateless").lower()
    if store_kind == "memory":
        remember_me.set_token_store(InMemoryTokenStore())
    elif store_kind == "sqlalchemy":
        remember_me.set_token_store(SqlAlchemyTokenStore())
    elif store_kind != "stateless":
        raise ConfigurationError(f"Unknown REMEMBER_ME_TOKEN_STORE {store_kind!r}")

    if not config.get("REMEMBER_ME_KEY"):
        app.logger.warning("No REMEMBER_ME_KEY set. Using a generated key; remember-me cookies will not survive restarts")

    pipeline = builder.build()
    app.extensions["warden.remember_me"] = remember_me
    app.extensions["warden.remember_me_services"] = builder.get_shared_object(REMEMBER_ME_SERVICES)
    return pipeline


def _register_blueprints(app: Flask) -> None:
    from warden.core.auth.controllers import auth_bp  # local import to avoid circulars

    app.register_blueprint(auth_bp)


def _register_error_handlers(app: Flask) -> None:
    """Basic JSON error responses."""
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        return {"ok": False, "error": exc.description}, exc.code

    @app.errorhandler(Exception)
    def _generic_error(exc: Exception):
        app.logger.exception("Unhandled error: %s", exc)
        # In debug/testing, surface the exception message to speed up diagnosis
        if app.debug or app.testing:
            return {"ok": False, "error": str(exc)}, 500
        return {"ok": False, "error": "unexpected_error"}, 500
