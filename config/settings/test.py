"""
With these settings, tests run faster.
"""

from .base import *  # noqa: F403
from .base import DATABASES
from .base import env

# GENERAL
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#secret-key
SECRET_KEY = env(
    "DJANGO_SECRET_KEY",
    default="t9nXq4LwKc2mB7vYpR1sZ8eH3uJ6fA0dG5kN2oQ7iW4xV9bT1yC8rM3lP6hE0jS5",
)
# https://docs.djangoproject.com/en/dev/ref/settings/#test-runner
TEST_RUNNER = "django.test.runner.DiscoverRunner"
# https://docs.djangoproject.com/en/dev/ref/settings/#allowed-hosts
ALLOWED_HOSTS = ["localhost", "127.0.0.1", "testserver"]

# DATABASES
# ------------------------------------------------------------------------------
# SQLite unless DATABASE_URL points at PostgreSQL.
DATABASES["default"] = env.db("DATABASE_URL", default="sqlite:///:memory:")
DATABASES["default"]["ATOMIC_REQUESTS"] = False

# PASSWORDS
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#password-hashers
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# PAYMENT GATEWAY
# ------------------------------------------------------------------------------
# Dummy credentials; the gateway HTTP client is always mocked in tests.
PAYMENT_GATEWAY_KEY_ID = "rzp_test_dummykey"
PAYMENT_GATEWAY_KEY_SECRET = "test_key_secret"  # noqa: S105
PAYMENT_GATEWAY_WEBHOOK_SECRET = "test_webhook_secret"  # noqa: S105
PAYMENT_GATEWAY_PUBLIC_KEY = "rzp_test_dummykey"
PAYMENT_GATEWAY_API_BASE = "https://gateway.invalid/v1"
