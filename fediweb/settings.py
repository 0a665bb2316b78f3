"""Django settings for fediweb.

Values that differ between deployments are taken from the environment.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "insecure-key-for-development-only")
DEBUG = os.environ.get("DJANGO_DEBUG", "") == "1"
ALLOWED_HOSTS = os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "fediweb.mastodon",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "fediweb.mastodon.middleware.SessionContextMiddleware",
]

ROOT_URLCONF = "fediweb.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "fediweb.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("FEDIWEB_DATABASE", BASE_DIR / "db.sqlite3"),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-gb"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = os.environ.get("DJANGO_STATIC_ROOT")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "{asctime} {levelname} {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "fediweb": {
            "handlers": ["console"],
            "level": os.environ.get("FEDIWEB_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}

# Name and home page we give when registering with Mastodon instances.
# The OAuth2 callback is FEDIWEB_CLIENT_WEBSITE + '/oauth_callback'.
FEDIWEB_CLIENT_NAME = os.environ.get("FEDIWEB_CLIENT_NAME", "fediweb")
FEDIWEB_CLIENT_WEBSITE = os.environ.get("FEDIWEB_CLIENT_WEBSITE", "http://localhost:8000")
FEDIWEB_CLIENT_SCOPES = os.environ.get("FEDIWEB_CLIENT_SCOPES", "read write follow")

FEDIWEB_SESSION_COOKIE_NAME = "session_id"
FEDIWEB_SESSION_COOKIE_AGE = 365 * 24 * 60 * 60

# Seconds to wait for a Mastodon instance to respond; None means no limit.
FEDIWEB_REQUEST_TIMEOUT = float(os.environ["FEDIWEB_REQUEST_TIMEOUT"]) if os.environ.get("FEDIWEB_REQUEST_TIMEOUT") else None
