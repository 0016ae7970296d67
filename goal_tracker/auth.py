import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends
from fastapi.security import APIKeyHeader
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import delete
from sqlmodel import Session

from goal_tracker.config import Settings, get_settings, logger
from goal_tracker.errors import Forbidden, Unauthorized
from goal_tracker.models import RevokedToken, User, get_session

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)

# Raw Authorization header, parsed by authenticate() (returns 401 instead of 403)
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    token_id: str
    expires_at: datetime


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, handed to handlers by the auth dependencies."""
    user: User
    token_id: str
    token_expires_at: datetime


####################
#    Passwords     #
####################

def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against its hash."""
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Unrecognised or corrupted hash
        return False


####################
#   Access Tokens  #
####################

def create_access_token(subject: Any, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT asserting ``subject`` until it expires."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    now = datetime.utcnow()
    to_encode = {
        "sub": str(subject),
        "iat": now,
        "exp": now + expires_delta,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> Optional[TokenClaims]:
    """
    Verify signature and expiry of a JWT.

    Returns None for a malformed token, a bad signature, an expired token
    or a token without subject.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None

    subject = payload.get("sub")
    exp = payload.get("exp")
    if not subject or exp is None:
        return None
    expires_at = datetime.fromtimestamp(exp, tz=timezone.utc).replace(tzinfo=None)
    return TokenClaims(subject=subject, token_id=payload.get("jti") or "", expires_at=expires_at)


def verify_token(token: str, settings: Settings) -> Optional[str]:
    """Verify JWT token and return its subject."""
    claims = decode_access_token(token, settings)
    return claims.subject if claims else None


####################
#    Revocation    #
####################

def is_token_revoked(session: Session, token_id: str) -> bool:
    return session.get(RevokedToken, token_id) is not None


def revoke_token(session: Session, identity: Identity) -> None:
    """Deny further use of the token ``identity`` was authenticated with."""
    # Entries past their expiry can no longer match a valid token
    session.exec(delete(RevokedToken).where(RevokedToken.expires_at < datetime.utcnow()))
    if not is_token_revoked(session, identity.token_id):
        session.add(RevokedToken(
            jti=identity.token_id,
            user_id=identity.user.id,
            expires_at=identity.token_expires_at,
        ))
    session.commit()
    logger.info(f"Revoked access token for user {identity.user.id}")


####################
#     Auth Gate    #
####################

def authenticate(authorization: Optional[str], session: Session, settings: Settings) -> Identity:
    """Resolve an ``Authorization: Bearer <token>`` header to the calling user."""
    if not authorization:
        raise Unauthorized("Not authorized, no token")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise Unauthorized("Not authorized, malformed authorization header")

    claims = decode_access_token(parts[1], settings)
    if claims is None or not claims.token_id:
        raise Unauthorized("Not authorized, token failed")

    if is_token_revoked(session, claims.token_id):
        raise Unauthorized("Not authorized, token revoked")

    user = session.get(User, claims.subject)
    if user is None:
        raise Unauthorized("Not authorized, user not found")

    return Identity(user=user, token_id=claims.token_id, token_expires_at=claims.expires_at)


def get_current_identity(
    authorization: Optional[str] = Depends(authorization_header),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> Identity:
    """Auth dependency for protected routes."""
    return authenticate(authorization, session, settings)


def get_current_user(identity: Identity = Depends(get_current_identity)) -> User:
    return identity.user


####################
#     Ownership    #
####################

def assert_owner(resource_owner_id: Any, caller_id: Any) -> None:
    """Raise Forbidden unless the caller owns the resource."""
    if str(resource_owner_id) != str(caller_id):
        raise Forbidden("Not authorized to modify this resource")
