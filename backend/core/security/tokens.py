"""
JWT bearer verification for request authentication.

Token issuance belongs to the identity service; this module only needs to
mint tokens for tooling and tests, and to verify the ``sub`` claim that
identifies the content owner.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt


@dataclass
class TokenPayload:
    """JWT token payload structure."""

    sub: str  # Subject (owner ID)
    exp: datetime
    iat: datetime
    type: str  # "access" or "refresh"


class TokenService:
    """Creates and validates owner access tokens."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_token_expire_minutes: int = 60,
    ):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._access_token_expire_minutes = access_token_expire_minutes

    def create_access_token(self, owner_id: str, expire_minutes: int | None = None) -> str:
        """
        Create an access token for ``owner_id``.

        Args:
            owner_id: Owner identifier encoded as the ``sub`` claim
            expire_minutes: Override the service-level expiry

        Returns:
            Encoded JWT access token
        """
        now = datetime.now(UTC)
        minutes = (
            expire_minutes if expire_minutes is not None else self._access_token_expire_minutes
        )
        payload = {
            "sub": owner_id,
            "exp": now + timedelta(minutes=minutes),
            "iat": now,
            "type": "access",
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def decode_token(self, token: str) -> TokenPayload | None:
        """
        Decode and validate a JWT token.

        Returns:
            TokenPayload if valid, None if invalid or expired
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
            )

            for field in ("sub", "exp", "type"):
                if field not in payload:
                    raise JWTError(f"Missing required field: {field}")

            return TokenPayload(
                sub=str(payload["sub"]),
                exp=datetime.fromtimestamp(payload["exp"], tz=UTC),
                iat=datetime.fromtimestamp(payload.get("iat", 0), tz=UTC),
                type=payload["type"],
            )
        except JWTError:
            return None

    def verify_access_token(self, token: str) -> TokenPayload | None:
        """Return the payload of a valid access token, None otherwise."""
        payload = self.decode_token(token)
        if payload and payload.type == "access" and payload.sub:
            return payload
        return None
