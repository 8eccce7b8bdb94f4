from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .policy import enum_value, parse_role


@dataclass(frozen=True)
class Principal:
    """Authenticated actor for one request. Built once, never mutated."""
    id: str
    role: str | None = None
    email: str | None = None
    name: str | None = None

    @property
    def known_role(self) -> bool:
        return parse_role(self.role) is not None


def _display_name(claims: Mapping[str, Any], profile: Mapping[str, Any] | None) -> str | None:
    if profile and profile.get("name"):
        return profile["name"]
    if claims.get("name"):
        return claims["name"]
    email = claims.get("email")
    if isinstance(email, str) and "@" in email:
        return email.split("@", 1)[0]
    return None


def principal_from_claims(
    claims: Mapping[str, Any],
    profile: Mapping[str, Any] | None = None,
) -> Principal:
    """
    Assemble a Principal from verified token claims and the stored profile.

    The stored profile role wins over the role claim. A missing role stays
    missing so every decision for this principal fails closed.

    Raises:
        ValueError: If the claims carry no subject
    """
    subject = claims.get("uid") or claims.get("sub")
    if not isinstance(subject, str) or not subject:
        raise ValueError("Token claims carry no subject")

    role = None
    if profile:
        role = enum_value(profile.get("role"))
    if role is None:
        role = enum_value(claims.get("role"))

    return Principal(
        id=subject,
        role=role,
        email=claims.get("email"),
        name=_display_name(claims, profile),
    )
