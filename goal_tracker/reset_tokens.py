"""
Password reset tokens.

Only the SHA-256 of a reset token is persisted. The raw value leaves the
server once, inside the reset link, and is single use: consuming it deletes
the row. A user holds at most one token at a time, the ``user_id`` column
is unique and a new token replaces the previous one in the same transaction.
"""
import hashlib
import secrets
from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlmodel import Session, select

from goal_tracker.config import Settings, logger
from goal_tracker.errors import Expired, NotFound
from goal_tracker.models import ResetToken


def hash_reset_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def issue_reset_token(session: Session, user_id: str) -> str:
    """Replace any reset token of ``user_id`` and return the new raw value."""
    raw_token = secrets.token_hex(20)

    session.exec(delete(ResetToken).where(ResetToken.user_id == user_id))
    session.add(ResetToken(user_id=user_id, token_hash=hash_reset_token(raw_token)))
    session.commit()

    logger.info(f"Issued password reset token for user {user_id}")
    return raw_token


def consume_reset_token(session: Session, raw_token: str,
                        expire_seconds: int = Settings.RESET_TOKEN_EXPIRE_SECONDS) -> str:
    """
    Redeem a raw reset token and return the id of the user it was issued to.

    Raises:
        NotFound: no token matches ``raw_token``
        Expired: the token is older than ``expire_seconds``
    """
    token = session.exec(
        select(ResetToken).where(ResetToken.token_hash == hash_reset_token(raw_token))
    ).first()
    if token is None:
        raise NotFound("Invalid token")

    user_id = token.user_id
    expired = datetime.utcnow() - token.created_at > timedelta(seconds=expire_seconds)

    session.delete(token)
    session.commit()

    if expired:
        logger.info(f"Rejected expired password reset token for user {user_id}")
        raise Expired("Reset Token expired")
    return user_id
