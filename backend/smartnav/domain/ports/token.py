from __future__ import annotations

from typing import Any, Protocol


class TokenVerifier(Protocol):
    """
    Verifies a bearer ID token and returns its claims.

    Implementations raise the errors from security.token_inspection:
    InvalidTokenError, ExpiredTokenError, RevokedTokenError.
    """

    def verify(self, token: str) -> dict[str, Any]:
        ...
