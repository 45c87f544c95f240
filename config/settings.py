"""
RMS – Django Settings (Infrastructure Only)
============================================
Django provides the ORM, transactions and logging configuration for
the database-backed store. RMS architecture is the authority —
Django does not dictate structure.

RMS knobs are read from the environment (RMS_* names) and picked up
by core.config.load_settings().
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("RMS_SECRET_KEY", "rms-dev-key-replace-before-deployment")

DEBUG = os.environ.get("RMS_DEBUG", "1") == "1"

ALLOWED_HOSTS = []

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    # ── RMS Modules ───────────────────────────────────────
    "core.store_db",
]

# ── Database ──────────────────────────────────────────────────
# SQLite for development. Production DB configured separately.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("RMS_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Logging ───────────────────────────────────────────────────
RMS_LOG_LEVEL = os.environ.get("RMS_LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "loggers": {
        "rms": {
            "handlers": ["console"],
            "level": RMS_LOG_LEVEL,
            "propagate": True,
        },
    },
}

# ── RMS ───────────────────────────────────────────────────────
RMS_STORE_ROOT = os.environ.get("RMS_STORE_ROOT", "rms")
RMS_STRICT_TRANSITIONS = os.environ.get("RMS_STRICT_TRANSITIONS", "0").lower() in ("1", "true", "yes")
RMS_TRANSACTION_MAX_ATTEMPTS = int(os.environ.get("RMS_TRANSACTION_MAX_ATTEMPTS", "5"))
RMS_REPORT_TIMEZONE = os.environ.get("RMS_REPORT_TIMEZONE", "UTC")
RMS_CURRENCY_SYMBOL = os.environ.get("RMS_CURRENCY_SYMBOL", "$")
RMS_ORDER_ID_PREFIX = os.environ.get("RMS_ORDER_ID_PREFIX", "order")
RMS_ORDER_ID_WIDTH = int(os.environ.get("RMS_ORDER_ID_WIDTH", "3"))
