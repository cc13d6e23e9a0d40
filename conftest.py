import pytest


@pytest.fixture(autouse=True)
def fast_password_hashing(settings):
    """bcrypt at production cost makes every user fixture slow."""
    settings.PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
    settings.BCRYPT_ROUNDS = 4
