"""
Accounts: invite-code gated registration, user login and invite codes.

Registration consumes the invite code, creates the user and grants the user
a fresh code of their own, all in one transaction.
"""

import hmac
import logging
from typing import List

import bcrypt
from sqlalchemy.exc import IntegrityError

from gembreak.database.config.config import settings
from gembreak.database.core.db import session_scope
from gembreak.database.daos import InviteCodeDao, UserDao
from gembreak.database.entities.base import utcnow
from gembreak.database.entities.invite_code import ADMIN_CREATOR
from gembreak.errors import BadRequest, Conflict, InternalError, NotFound, Unauthorized

logger = logging.getLogger(__name__)

SALT_ROUNDS = 10
# bcrypt only hashes the first 72 bytes and newer releases reject longer input.
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=SALT_ROUNDS)).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))


def register_user(username: str, password: str, invite_code: str) -> dict:
    """
    Create a user from a valid, unused invite code.

    Returns:
        dict: ``{"userId": str, "username": str}``

    Raises:
        BadRequest: missing field, over-long password, invalid or used code.
        Conflict: the username is taken.
    """
    if not username or not password or not invite_code:
        raise BadRequest("Username, password, and invite code are required.")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise BadRequest(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")

    try:
        with session_scope() as db:
            users = UserDao(db)
            invites = InviteCodeDao(db)

            invite = invites.get_unused(invite_code)
            if invite is None:
                raise BadRequest("Invalid or already used invite code.")
            if users.get_by_username(username) is not None:
                raise Conflict("Username already exists.")

            user = users.create(username, hash_password(password), invite_code)
            invites.mark_used(invite, user.id, utcnow())
            own_code = invites.create(created_by=user.id)
            logger.info("Registered user %s (%s) with code from %s", user.id, user.username, invite.created_by)
            return {"userId": user.id, "username": user.username, "inviteCode": own_code.code}
    except IntegrityError:
        raise Conflict("Username already exists.")


def login_user(username: str, password: str) -> dict:
    if not username or not password:
        raise BadRequest("Username and password are required.")
    with session_scope() as db:
        user = UserDao(db).get_by_username(username)
        if user is None or not check_password(password, user.password_hash):
            raise Unauthorized("Invalid credentials.")
        return {"userId": user.id, "username": user.username}


def verify_admin_credentials(username: str, password: str) -> None:
    """Check the fixed admin credential pair from settings."""
    if not settings.ADMIN_USERNAME or not settings.ADMIN_PASSWORD:
        logger.error("ADMIN_USERNAME or ADMIN_PASSWORD is not configured")
        raise InternalError("Server configuration error.")
    username_ok = hmac.compare_digest((username or "").encode(), settings.ADMIN_USERNAME.encode())
    password_ok = hmac.compare_digest((password or "").encode(), settings.ADMIN_PASSWORD.encode())
    if not (username_ok and password_ok):
        raise Unauthorized("Invalid credentials")


def get_user_invite_code(user_id: str) -> dict:
    with session_scope() as db:
        if UserDao(db).get(user_id) is None:
            raise NotFound("User not found.")
        invite = InviteCodeDao(db).latest_created_by(user_id)
        if invite is None:
            raise NotFound("No invite code issued for this user.")
        return {"inviteCode": invite.code, "isInviteCodeUsed": invite.is_used}


def create_admin_invite_code() -> dict:
    with session_scope() as db:
        invite = InviteCodeDao(db).create(created_by=ADMIN_CREATOR)
        logger.info("Admin generated invite code %s", invite.code)
        return invite.to_dict()


def list_admin_invite_codes() -> List[dict]:
    with session_scope() as db:
        return [i.to_dict() for i in InviteCodeDao(db).list_created_by(ADMIN_CREATOR)]
