from typing import Any, Dict

import jwt


class InvalidTokenError(Exception):
    """Raised when a token cannot be parsed or is malformed."""


class ExpiredTokenError(Exception):
    """Raised when a token has expired."""


class RevokedTokenError(Exception):
    """Raised when the identity provider reports the token as revoked."""


class JWTTokenVerifier:
    """
    Verifies HS/RS-signed ID tokens with PyJWT.

    Stands in for the identity provider's own verifier; any object with a
    matching verify() can be injected instead.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        algorithm: str = "HS256",
        audience: str | None = None,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.audience = audience

    def _decode(self, token: str) -> Dict[str, Any]:
        options = {"verify_aud": self.audience is not None}
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                options=options,
            )
        except jwt.ExpiredSignatureError as exc:
            raise ExpiredTokenError from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError from exc

    def verify(self, token: str) -> Dict[str, Any]:
        if not token or not isinstance(token, str):
            raise InvalidTokenError()

        payload = self._decode(token)

        subject = payload.get("uid") or payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise InvalidTokenError()

        return payload
