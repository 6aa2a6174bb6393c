from django.core.management.utils import get_random_secret_key

from .base import *  # noqa: F401, F403

DEBUG = True

SECRET_KEY = get_random_secret_key()

# Tests always pick English translations, regardless of the environment
SPPCAT_LANGUAGE = "en"

# Report template errors loudly in tests
TEMPLATES[0]["OPTIONS"]["debug"] = True  # noqa: F405
