import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from hardware_store.core.errors import AuthenticationError, IdentityNotFoundError
from hardware_store.core.security import TokenService
from hardware_store.models.user import Role, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedIdentity:
    id: int
    username: str
    role: Role


class IdentityResolver:
    """
    Turns a bearer token into the live, active user it names.

    The token only says who the caller claims to be; the user row is
    re-read on every request, so a deactivation or role change applies to
    the very next request made with an older token.
    """

    def __init__(self, tokens: TokenService):
        self.tokens = tokens

    def resolve(self, db: Session, token: str) -> ResolvedIdentity:
        claims = self.tokens.verify(token)

        user = db.query(User).filter(User.id == claims.user_id, User.active.is_(True)).first()
        if not user:
            logger.warning(f"Token presented for missing or inactive user {claims.user_id}")
            raise IdentityNotFoundError("Your account no longer exists or has been deactivated")

        return ResolvedIdentity(id=user.id, username=user.username, role=Role(user.role))

    def resolve_optional(self, db: Session, token: Optional[str]) -> Optional[ResolvedIdentity]:
        if not token:
            return None
        try:
            return self.resolve(db, token)
        except AuthenticationError:
            return None
