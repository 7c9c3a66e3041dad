"""Authentication service: user CRUD, password hashing, role assignment.

All password operations use bcrypt via passlib. Passwords are never stored
or logged in plaintext. The service layer owns user lifecycle; endpoints
are thin wrappers.
"""

import logging
import uuid
from typing import List, Optional

from passlib.hash import bcrypt
from sqlalchemy.orm import Session

from ..exceptions import AuthenticationError, ValidationError
from ..models.user import User
from ..repositories.role_repository import RoleRepository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
USER_ID_LENGTH = 12


def register_user(db: Session, username: str, password: str) -> User:
    """Create a new user account.

    The first user registered receives the admin role (created on the fly).
    Later users start without roles and see nothing until an admin assigns
    some.

    Raises ValidationError if the username is taken or inputs are invalid.
    """
    username = username.strip()
    if not username:
        raise ValidationError("Username required", field="username")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
        )

    existing = db.query(User).filter(User.username == username).first()
    if existing is not None:
        raise ValidationError("Username already registered", field="username")

    # FOR UPDATE so two concurrent first registrations cannot both become admin.
    is_first_user = db.query(User).with_for_update().count() == 0

    user = User(
        user_id=uuid.uuid4().hex[:USER_ID_LENGTH],
        username=username,
        password_hash=bcrypt.hash(password),
        is_active=True,
    )
    if is_first_user:
        user.roles = [RoleRepository(db).get_or_create_admin()]
        logger.info("First user registered as admin: %s", username)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def authenticate(db: Session, username: str, password: str) -> User:
    """Validate credentials and return the user.

    Raises AuthenticationError on unknown user, wrong password, or inactive account.
    """
    user = db.query(User).filter(User.username == username.strip()).first()

    if user is None or not bcrypt.verify(password, user.password_hash):
        raise AuthenticationError("Invalid username or password")

    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    return user


def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.user_id == user_id).first()


def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.created_at, User.username).all()


def set_user_roles(db: Session, user_id: str, role_ids: List[str]) -> User:
    """Replace the roles of a user. Unknown role ids are rejected."""
    user = get_user_by_id(db, user_id)
    if user is None:
        raise ValidationError("User not found", field="user_id")

    wanted = list(dict.fromkeys(role_ids))
    roles = RoleRepository(db).get_many(wanted)
    missing = sorted(set(wanted) - {role.id for role in roles})
    if missing:
        raise ValidationError(f"Unknown roles: {', '.join(missing)}", field="role_ids")

    user.roles = roles
    db.commit()
    db.refresh(user)
    return user


def deactivate_user(db: Session, user_id: str) -> User:
    user = get_user_by_id(db, user_id)
    if user is None:
        raise ValidationError("User not found", field="user_id")
    user.is_active = False
    db.commit()
    db.refresh(user)
    return user
