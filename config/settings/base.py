import os

DEBUG = False

SECRET_KEY = os.getenv("SPPCAT_SECRET_KEY", "")

# Application definition
INSTALLED_APPS = [
    "sppcat.core",
]

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            # Reports are written to disk and never served, nothing request-related belongs here
            "context_processors": [],
        },
    },
]

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "[%(asctime)s] [%(name)s:%(lineno)d] %(levelname)s: %(message)s",
            "datefmt": "%d/%b/%Y:%H:%M:%S %z",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "WARNING"},
        "sppcat": {
            "handlers": ["console"],
            "level": os.getenv("SPPCAT_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}

# Database
# The catalog lives only as long as the process which loaded the bundles
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# Default primary key field type
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True

# Language of the <*_xlate lang="..."> element picked out of the bundle manifests
SPPCAT_LANGUAGE = os.getenv("SPPCAT_LANGUAGE", "en")

# Heading used by the HTML component report
SPPCAT_REPORT_TITLE = os.getenv("SPPCAT_REPORT_TITLE", "Service Pack component report")
