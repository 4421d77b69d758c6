"""
Django settings for fl_project.

Every deploy-specific value comes from the environment; the defaults are
meant for local development and the test suite.
"""
import os
from decimal import Decimal
from pathlib import Path

from celery.schedules import crontab

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = _env_bool("DJANGO_DEBUG", default=True)
ALLOWED_HOSTS = [
    h.strip()
    for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")
    if h.strip()
]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "billing_core.apps.BillingCoreConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "fl_project.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "fl_project.wsgi.application"

# Postgres when configured, SQLite otherwise (local dev + tests)
if os.environ.get("POSTGRES_DB"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ["POSTGRES_DB"],
            "USER": os.environ.get("POSTGRES_USER", "postgres"),
            "PASSWORD": os.environ.get("POSTGRES_PASSWORD", ""),
            "HOST": os.environ.get("POSTGRES_HOST", "localhost"),
            "PORT": os.environ.get("POSTGRES_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
            "OPTIONS": {
                # writers take the lock at BEGIN and wait for each other
                "transaction_mode": "IMMEDIATE",
                "timeout": 20,
            },
            # on disk so worker threads share the test database
            "TEST": {"NAME": BASE_DIR / "test_db.sqlite3"},
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("DJANGO_TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

# ---------- Billing core ----------
BILLING_INVOICE_PREFIX = os.environ.get("BILLING_INVOICE_PREFIX", "INV-")
BILLING_INVOICE_NUMBER_WIDTH = int(os.environ.get("BILLING_INVOICE_NUMBER_WIDTH", "5"))
# Lowest value an invoice total may take after tax and discount
BILLING_TOTAL_FLOOR = Decimal(os.environ.get("BILLING_TOTAL_FLOOR", "0.00"))
BILLING_REVENUE_SERIES_MONTHS = 6
BILLING_TOP_CLIENTS_LIMIT = 5
BILLING_DEFAULT_CURRENCY = "USD"

# ---------- Celery ----------
CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_TASK_ALWAYS_EAGER = _env_bool("CELERY_TASK_ALWAYS_EAGER", default=False)
CELERY_TIMEZONE = TIME_ZONE
CELERY_BEAT_SCHEDULE = {
    "retry-pending-aggregate-deltas": {
        "task": "billing_core.tasks.retry_pending_deltas_task",
        "schedule": crontab(minute="*/10"),
    },
    "reconcile-aggregates-nightly": {
        "task": "billing_core.tasks.reconcile_aggregates_task",
        "schedule": crontab(hour=3, minute=0),
    },
    "mark-overdue-invoices": {
        "task": "billing_core.tasks.mark_overdue_invoices_task",
        "schedule": crontab(hour=0, minute=15),
    },
}

# ---------- Logging ----------
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "billing_core": {
            "handlers": ["console"],
            "level": os.environ.get("BILLING_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}
