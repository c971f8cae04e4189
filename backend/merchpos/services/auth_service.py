# Overview: Service-layer operations for associates; code generation, directory edits and code login.

"""
Associate Authentication Service

WHY: Every sale and stock change must be attributable. Associates sign in
with a 6-character associate code instead of a password, so the code is
looked up directly; the bearer session (session_service) carries identity
after that.

SECURITY NOTES:
- Codes are drawn from the `secrets` CSPRNG over A-Z0-9
- Codes are unique across all users (retry on collision)
- Deactivating an associate revokes their open sessions
"""

import re
import secrets
import string

from ..extensions import db
from ..models import User
from ..models.auth import ROLES
from .session_service import revoke_all_user_sessions
from merchpos.time_utils import utcnow

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6


class AssociateError(Exception):
    """Raised for associate directory errors."""
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def generate_associate_code(attempts: int = 20) -> str:
    """Random unused code, e.g. "K7Q2ZD"."""
    for _ in range(attempts):
        code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
        if not db.session.query(User.id).filter_by(associate_code=code).first():
            return code
    raise AssociateError("Could not generate a unique associate code", status_code=500)


def split_name(name: str) -> tuple[str, str]:
    """'Mary Jo Smith' -> ('Mary', 'Jo Smith')."""
    parts = (name or "").split()
    if not parts:
        raise AssociateError("Name is required")
    return parts[0], " ".join(parts[1:])


def _generate_username(name: str) -> str:
    base = re.sub(r"\s+", "", name.lower())[:56] or "associate"
    for _ in range(20):
        candidate = f"{base}{secrets.randbelow(1000)}"
        if not db.session.query(User.id).filter_by(username=candidate).first():
            return candidate
    raise AssociateError("Could not generate a unique username", status_code=500)


def _require_role(role: str) -> str:
    if role not in ROLES:
        raise AssociateError(f"role must be one of: {', '.join(ROLES)}")
    return role


def create_associate(name: str, email: str | None = None, role: str = "associate") -> User:
    """
    Create an associate from a display name.

    The username is derived from the name plus a random number; the
    associate code is what the person types at the register.
    """
    first_name, last_name = split_name(name)
    _require_role(role)

    user = User(
        username=_generate_username(name),
        associate_code=generate_associate_code(),
        first_name=first_name,
        last_name=last_name,
        email=(email or "").strip() or None,
        role=role,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def get_associate(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise AssociateError("Associate not found", status_code=404)
    return user


def update_associate(
    user_id: int,
    *,
    name: str | None = None,
    email: str | None = None,
    is_active: bool | None = None,
    role: str | None = None,
    clear_email: bool = False,
) -> User:
    """
    Rename, change contact details, role, or (de)activate an associate.

    Deactivation revokes all of the associate's sessions.
    """
    user = get_associate(user_id)

    if name is not None:
        user.first_name, user.last_name = split_name(name)
    if email is not None or clear_email:
        user.email = (email or "").strip() or None
    if role is not None:
        user.role = _require_role(role)

    deactivated = is_active is False and user.is_active
    if is_active is not None:
        user.is_active = is_active

    db.session.commit()

    if deactivated:
        revoke_all_user_sessions(user.id, reason="User account deactivated")
    return user


def list_associates(include_inactive: bool = True) -> list[User]:
    query = db.session.query(User)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.first_name.asc(), User.last_name.asc(), User.id.asc()).all()


def authenticate_code(associate_code: str) -> User | None:
    """
    Returns the active user owning associate_code, or None.

    Codes are case-insensitive at the keypad; stored codes are uppercase.
    """
    code = (associate_code or "").strip().upper()
    if not code:
        return None

    user = db.session.query(User).filter_by(associate_code=code).first()
    if not user or not user.is_active:
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
