"""Shared test fixtures and configuration."""
import os

import jwt
import pytest

from tests.auth_helpers import TEST_SECRET

# Settings.from_env() requires these; tests that exercise parsing override them
os.environ.setdefault("SECRET_KEY", TEST_SECRET)
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:3000")


@pytest.fixture
def make_token():
    def factory(subject: str = "u1", **claims) -> str:
        payload = {"sub": subject, **claims}
        return jwt.encode(payload, TEST_SECRET, algorithm="HS256")

    return factory
