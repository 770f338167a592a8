"""Application configuration for warden."""

from __future__ import annotations

import os
from typing import Dict, Optional, Type

from dotenv import load_dotenv
from sqlalchemy.engine.url import make_url

load_dotenv()

_TRUTHY = ("1", "true", "yes")


def _engine_options_from_uri(uri: str) -> dict:
    url = make_url(uri)
    # Always keep pool_pre_ping, vary connect_args by dialect.
    if url.get_backend_name() == "sqlite":
        return {"pool_pre_ping": True, "connect_args": {"timeout": 30}}
    if url.get_backend_name() in {"postgresql", "postgres"}:
        timeout = int(os.environ.get("DB_CONNECT_TIMEOUT_SECONDS", "10"))
        return {"pool_pre_ping": True, "connect_args": {"connect_timeout": timeout}}
    return {"pool_pre_ping": True}


def _optional_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    return int(raw) if raw not in (None, "") else None


def _optional_bool(name: str) -> Optional[bool]:
    raw = os.environ.get(name)
    if raw in (None, ""):
        return None
    return raw.lower() in _TRUTHY


class BaseConfig:
    """Base configuration loaded for all environments."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///instance/warden.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options_from_uri(SQLALCHEMY_DATABASE_URI)
    BCRYPT_LOG_ROUNDS = int(os.environ.get("BCRYPT_LOG_ROUNDS", "12"))

    LOGIN_URL = os.environ.get("LOGIN_URL", "/login")
    LOGOUT_URL = os.environ.get("LOGOUT_URL", "/logout")

    # Remember-me; unset values fall back to the configurator defaults.
    REMEMBER_ME_KEY = os.environ.get("REMEMBER_ME_KEY") or None
    REMEMBER_ME_TOKEN_VALIDITY_SECONDS = _optional_int("REMEMBER_ME_TOKEN_VALIDITY_SECONDS")
    REMEMBER_ME_USE_SECURE_COOKIE = _optional_bool("REMEMBER_ME_USE_SECURE_COOKIE")
    REMEMBER_ME_PARAMETER = os.environ.get("REMEMBER_ME_PARAMETER", "remember-me")
    REMEMBER_ME_COOKIE_NAME = os.environ.get("REMEMBER_ME_COOKIE_NAME", "remember-me")
    # One of "stateless", "memory", "sqlalchemy"
    REMEMBER_ME_TOKEN_STORE = os.environ.get("REMEMBER_ME_TOKEN_STORE", "stateless").lower()

    # username -> plaintext password, hashed at startup
    IN_MEMORY_USERS: Dict[str, str] = {}


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    ENV = "development"
    IN_MEMORY_USERS = {"marissa": "wombat", "sam": "kangaroo"}


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options_from_uri(SQLALCHEMY_DATABASE_URI)
    BCRYPT_LOG_ROUNDS = 4
    REMEMBER_ME_KEY = "testing-remember-me-key"
    REMEMBER_ME_TOKEN_VALIDITY_SECONDS = None
    REMEMBER_ME_USE_SECURE_COOKIE = None
    REMEMBER_ME_TOKEN_STORE = "stateless"
    IN_MEMORY_USERS = {"marissa": "wombat", "sam": "kangaroo"}


class ProductionConfig(BaseConfig):
    ENV = "production"
    REMEMBER_ME_USE_SECURE_COOKIE = True


config_by_name: Dict[str, Type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    # CI pipelines set APP_ENV=ci; map to testing defaults.
    "ci": TestingConfig,
}
