import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from hardware_store.config import TOKEN_AUDIENCE, TOKEN_ISSUER
from hardware_store.core.errors import SigningError, TokenExpiredError, TokenInvalidError
from hardware_store.models.user import Role

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    username: str
    role: str
    expires_at: datetime


def extract_token_from_header(auth_header: Optional[str]) -> Optional[str]:
    """
    Return the token of an ``Authorization: Bearer <token>`` header.

    Anything other than exactly two space-separated parts starting with the
    literal ``Bearer`` yields None: the caller treats it as no credential.
    """
    if not auth_header:
        return None
    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


class TokenService:
    """Issues and verifies signed, time-bound identity tokens."""

    def __init__(
        self,
        secret: str,
        expires_in: timedelta = timedelta(hours=24),
        issuer: str = TOKEN_ISSUER,
        audience: str = TOKEN_AUDIENCE,
    ):
        self.secret = secret
        self.expires_in = expires_in
        self.issuer = issuer
        self.audience = audience

    def issue(self, user_id: int, username: str, role: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "username": username,
            "role": role.value if isinstance(role, Role) else role,
            "iat": now,
            "exp": now + self.expires_in,
            "iss": self.issuer,
            "aud": self.audience,
        }
        try:
            return jwt.encode(payload, self.secret, algorithm=ALGORITHM)
        except Exception as e:
            logger.error(f"Error signing token: {str(e)}")
            raise SigningError("Unable to generate the authentication token") from e

    def verify(self, token: str) -> TokenClaims:
        """
        Verify signature, expiry, issuer and audience.

        Raises:
            TokenExpiredError: the token is past its expiry
            TokenInvalidError: anything else wrong with the token
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                issuer=self.issuer,
                audience=self.audience,
                options={"require": ["exp", "iss", "aud", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Your session has expired, please log in again") from e
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError("The authentication token provided is invalid") from e

        try:
            user_id = int(payload["sub"])
            username = payload["username"]
            role = payload["role"]
        except (KeyError, TypeError, ValueError) as e:
            raise TokenInvalidError("The authentication token provided is invalid") from e

        return TokenClaims(
            user_id=user_id,
            username=username,
            role=role,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
