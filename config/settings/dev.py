from .base import *  # noqa: F401, F403

DEBUG = True

SECRET_KEY = "helloworld"  # pragma: allowlist secret

LOGGING["loggers"]["sppcat"]["level"] = "DEBUG"  # type: ignore # noqa: F405
