import logging
import re
import secrets
import string
from dataclasses import dataclass, field
from typing import List, Optional

from passlib.context import CryptContext

from hardware_store.core.errors import WeakInputError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 128

pwd_context = CryptContext(
    schemes=["argon2"],
    default="argon2",
    deprecated="auto",
)

_TEMPORARY_CHARSET = string.ascii_letters + string.digits + "!@#$%^&*"


@dataclass
class PasswordStrength:
    valid: bool
    violations: List[str] = field(default_factory=list)


def hash_password(password: str) -> str:
    """Hash a password with argon2; the result embeds salt and parameters."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise WeakInputError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    return pwd_context.hash(password)


def verify_password(plain_password: Optional[str], hashed_password: Optional[str]) -> bool:
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        # Unknown or malformed hash
        logger.warning(f"Password verification failed on malformed hash: {str(e)}")
        return False


def validate_password_strength(password: Optional[str]) -> PasswordStrength:
    """
    Check a candidate password against the account policy.

    Never raises. Every violated rule is reported so clients can show the
    complete list at once.
    """
    if not password:
        return PasswordStrength(valid=False, violations=["Password is required"])

    violations = []
    if len(password) < MIN_PASSWORD_LENGTH:
        violations.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(password) > MAX_PASSWORD_LENGTH:
        violations.append(f"Password cannot exceed {MAX_PASSWORD_LENGTH} characters")
    if not re.search(r"[a-zA-Z]", password):
        violations.append("Password must contain at least one letter")
    if not re.search(r"\d", password):
        violations.append("Password must contain at least one digit")

    return PasswordStrength(valid=not violations, violations=violations)


def generate_temporary_password(length: int = 12) -> str:
    if length < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Temporary passwords need at least {MIN_PASSWORD_LENGTH} characters")
    while True:
        password = "".join(secrets.choice(_TEMPORARY_CHARSET) for _ in range(length))
        if validate_password_strength(password).valid:
            return password
