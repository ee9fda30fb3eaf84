# --- storefront/config.py ---
import os
from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class Capabilities:
    """Optional tables the pricing code may rely on, resolved once at startup."""
    variants: bool = True
    settings: bool = True


def _env_float(name, default):
    try:
        return float(os.environ.get(name, default))
    except (TypeError, ValueError):
        return float(default)


class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    ENV = os.getenv("FLASK_ENV", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=1)

    # pricing
    CURRENCY = "JOD"
    BASE_SHIPPING_JOD = _env_float("BASE_SHIPPING_JOD", "3.5")
    FREE_SHIPPING_THRESHOLD_JOD = _env_float("FREE_SHIPPING_THRESHOLD_JOD", "50")
    MAX_AUTO_PROMOTIONS = 30
    MAX_LINE_QTY = 99

    AUTO_CREATE_TABLES = True
    # None -> inspect the database at startup
    CAPABILITIES = None

    @staticmethod
    def init_app(app):
        if not os.getenv("DATABASE_URL"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'store.db')}"
        else:
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL")


class TestConfig(Config):
    TESTING = True
    JWT_SECRET_KEY = "test-secret-key-that-is-long-enough-for-hs256"
    FREE_SHIPPING_THRESHOLD_JOD = 50.0
    BASE_SHIPPING_JOD = 3.5

    @staticmethod
    def init_app(app):
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
