import logging
from typing import List, Tuple

from hardware_store.core.errors import (
    AuthenticationError,
    ConflictError,
    DuplicateError,
    NotFoundError,
    ValidationError,
)
from hardware_store.core.passwords import (
    generate_temporary_password,
    hash_password,
    validate_password_strength,
    verify_password,
)
from hardware_store.core.security import TokenService
from hardware_store.database import Database, UniqueViolationError
from hardware_store.models.user import Role, User
from hardware_store.schemas.user import PasswordReset, User as UserSchema

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Incorrect username or password"


def _check_strength(password: str) -> None:
    strength = validate_password_strength(password)
    if not strength.valid:
        raise ValidationError("Password is too weak", details=strength.violations)


class UserService:
    """User accounts: login, self-service password change and manager administration."""

    def __init__(self, database: Database, tokens: TokenService):
        self.database = database
        self.tokens = tokens

    def authenticate(self, username: str, password: str) -> Tuple[UserSchema, str]:
        with self.database.session() as db:
            user = db.query(User).filter(
                User.username == (username or "").strip(), User.active.is_(True)
            ).first()
            # Same answer for unknown users and wrong passwords
            if not user or not verify_password(password, user.password_hash):
                logger.warning(f"Failed login attempt for username: {username}")
                raise AuthenticationError(INVALID_CREDENTIALS)

            token = self.tokens.issue(user.id, user.username, user.role)
            logger.info(f"User {user.username} logged in")
            return UserSchema.model_validate(user), token

    def get_user(self, user_id: int) -> UserSchema:
        with self.database.session() as db:
            user = db.query(User).filter(User.id == user_id).first()
            if not user:
                raise NotFoundError("User not found")
            return UserSchema.model_validate(user)

    def get_profile(self, user_id: int) -> UserSchema:
        with self.database.session() as db:
            user = db.query(User).filter(User.id == user_id, User.active.is_(True)).first()
            if not user:
                raise NotFoundError("User not found")
            return UserSchema.model_validate(user)

    def list_users(self) -> List[UserSchema]:
        with self.database.session() as db:
            users = db.query(User).order_by(User.username.asc()).all()
            return [UserSchema.model_validate(u) for u in users]

    def create_user(self, username: str, password: str, role) -> UserSchema:
        username = (username or "").strip()
        if not username:
            raise ValidationError("Username, password and role are required")
        try:
            role = Role(role)
        except ValueError:
            raise ValidationError(
                "Invalid role",
                details=[f"Valid roles: {', '.join(r.value for r in Role)}"],
            )
        _check_strength(password)

        logger.info(f"Creating user account {username} with role {role.value}")
        try:
            with self.database.unit_of_work() as db:
                user = User(
                    username=username,
                    password_hash=hash_password(password),
                    role=role.value,
                    active=True,
                )
                db.add(user)
                db.flush()
                db.refresh(user)
                result = UserSchema.model_validate(user)
        except UniqueViolationError as e:
            logger.warning(f"Username already taken: {username}")
            raise DuplicateError("A user with this username already exists") from e

        logger.info(f"Successfully created user {result.username} (ID: {result.id})")
        return result

    def change_password(self, user_id: int, old_password: str, new_password: str) -> None:
        _check_strength(new_password)
        with self.database.unit_of_work() as db:
            user = db.query(User).filter(User.id == user_id, User.active.is_(True)).first()
            if not user:
                raise NotFoundError("User not found")
            if not verify_password(old_password, user.password_hash):
                raise ValidationError("Old password is incorrect")
            user.password_hash = hash_password(new_password)
        logger.info(f"Password changed for user {user_id}")

    def deactivate_user(self, actor_id: int, user_id: int) -> None:
        if actor_id == user_id:
            raise ConflictError("You cannot deactivate your own account")
        with self.database.unit_of_work() as db:
            user = db.query(User).filter(User.id == user_id).first()
            if not user:
                raise NotFoundError("User not found")
            user.active = False
        logger.info(f"User {user_id} deactivated by {actor_id}")

    def reactivate_user(self, user_id: int) -> None:
        with self.database.unit_of_work() as db:
            user = db.query(User).filter(User.id == user_id).first()
            if not user:
                raise NotFoundError("User not found")
            user.active = True
        logger.info(f"User {user_id} reactivated")

    def reset_password(self, actor_id: int, user_id: int) -> PasswordReset:
        """Replace a user's password with a generated one, returned once to the manager"""
        if actor_id == user_id:
            raise ConflictError("Use change-password to change your own password")
        temporary_password = generate_temporary_password()
        with self.database.unit_of_work() as db:
            user = db.query(User).filter(User.id == user_id).first()
            if not user:
                raise NotFoundError("User not found")
            user.password_hash = hash_password(temporary_password)
            username = user.username
        logger.info(f"Password reset for user {user_id} by {actor_id}")
        return PasswordReset(username=username, temporary_password=temporary_password)
