from datetime import datetime, timedelta, timezone

import jwt
import pytest

from smartnav.auth.principal import principal_from_claims
from smartnav.security.token_inspection import (
    ExpiredTokenError,
    InvalidTokenError,
    JWTTokenVerifier,
)
from tests.auth_helpers import TEST_SECRET


@pytest.fixture
def verifier() -> JWTTokenVerifier:
    return JWTTokenVerifier(TEST_SECRET)


def test_verify_returns_claims(verifier: JWTTokenVerifier, make_token) -> None:
    claims = verifier.verify(make_token("u1", role="organizer"))
    assert claims["sub"] == "u1"
    assert claims["role"] == "organizer"


def test_verify_accepts_uid_claim(verifier: JWTTokenVerifier) -> None:
    token = jwt.encode({"uid": "firebase-uid"}, TEST_SECRET, algorithm="HS256")
    assert verifier.verify(token)["uid"] == "firebase-uid"


def test_expired_token(verifier: JWTTokenVerifier, make_token) -> None:
    expired = datetime.now(timezone.utc) - timedelta(minutes=5)
    with pytest.raises(ExpiredTokenError):
        verifier.verify(make_token("u1", exp=expired))


def test_wrong_signature(verifier: JWTTokenVerifier) -> None:
    token = jwt.encode({"sub": "u1"}, "another-secret-key-of-sufficient-length", algorithm="HS256")
    with pytest.raises(InvalidTokenError):
        verifier.verify(token)


def test_garbage_token(verifier: JWTTokenVerifier) -> None:
    with pytest.raises(InvalidTokenError):
        verifier.verify("not-a-jwt")


def test_empty_token(verifier: JWTTokenVerifier) -> None:
    with pytest.raises(InvalidTokenError):
        verifier.verify("")


def test_token_without_subject(verifier: JWTTokenVerifier) -> None:
    token = jwt.encode({"email": "a@campus.edu"}, TEST_SECRET, algorithm="HS256")
    with pytest.raises(InvalidTokenError):
        verifier.verify(token)


def test_audience_enforced(make_token) -> None:
    verifier = JWTTokenVerifier(TEST_SECRET, audience="smart-navigator")
    assert verifier.verify(make_token("u1", aud="smart-navigator"))["sub"] == "u1"
    with pytest.raises(InvalidTokenError):
        verifier.verify(make_token("u1", aud="someone-else"))


class TestPrincipalFromClaims:

    def test_profile_role_wins(self) -> None:
        principal = principal_from_claims(
            {"sub": "u1", "role": "admin", "email": "ana@campus.edu"},
            {"role": "student", "name": "Ana"},
        )
        assert principal.id == "u1"
        assert principal.role == "student"
        assert principal.name == "Ana"

    def test_claim_role_used_without_profile(self) -> None:
        principal = principal_from_claims({"uid": "u1", "role": "organizer"})
        assert principal.role == "organizer"
        assert principal.known_role

    def test_missing_role_stays_missing(self) -> None:
        principal = principal_from_claims({"sub": "u1"}, {"name": "Ana"})
        assert principal.role is None
        assert not principal.known_role

    def test_unknown_role_is_kept_but_unknown(self) -> None:
        principal = principal_from_claims({"sub": "u1", "role": "user"})
        assert principal.role == "user"
        assert not principal.known_role

    def test_name_falls_back_to_email_local_part(self) -> None:
        principal = principal_from_claims({"sub": "u1", "email": "ana.lee@campus.edu"})
        assert principal.name == "ana.lee"

    def test_subject_required(self) -> None:
        with pytest.raises(ValueError, match="no subject"):
            principal_from_claims({"email": "ana@campus.edu"})
