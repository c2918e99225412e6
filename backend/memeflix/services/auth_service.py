"""
Memeflix Backend — Auth Service
================================

What:  Account registration, credential checks and bearer-token handling.
How:   Passwords are hashed with bcrypt; access tokens are HS256 JWTs
       signed with settings.jwt_secret_key and carrying:

           sub       user id (string, per RFC 7519)
           username  for log lines and the frontend header
           iat, exp  issue / expiry timestamps

Who:   Called by routes/auth.py and by the get_current_user dependency.

bcrypt is slow by construction: hashing and checking run in a worker
thread instead of blocking the event loop.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Tuple

import bcrypt
import jwt
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from memeflix.config import settings
from memeflix.exceptions import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
    ForbiddenError,
)
from memeflix.models import User
from memeflix.schemas.auth import LoginResponse, RegisterRequest, UserResponse

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid username or password"


# ── Password Hashing ──────────────────────────────────────────────────────
def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a stored hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


# ── Tokens ────────────────────────────────────────────────────────────────
def create_access_token(user: User) -> Tuple[str, int]:
    """
    Returns:
        (encoded token, lifetime in seconds)
    """
    now = datetime.now(timezone.utc)
    lifetime = timedelta(minutes=settings.jwt_expiration_minutes)
    payload = {
        "sub": str(user.id),
        "username": user.username,
        "iat": now,
        "exp": now + lifetime,
    }
    token = jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return token, int(lifetime.total_seconds())


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Validates signature and expiry.

    Raises:
        ForbiddenError: expired, tampered, or missing a usable subject
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Token expired")
        raise ForbiddenError(message="Token has expired")
    except jwt.InvalidTokenError as e:
        logger.debug("Invalid token: %s", e)
        raise ForbiddenError(message="Invalid token")

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.isdigit():
        raise ForbiddenError(message="Invalid token")
    return payload


class AuthService:
    """
    Business logic layer for accounts.

    Responsibilities:
        - register(): create a user, rejecting taken usernames/emails (409)
        - login(): check credentials and issue a token (401 on failure)
        - get_user(): resolve a token subject back to a User
    """

    async def register(self, db: AsyncSession, payload: RegisterRequest) -> User:
        try:
            taken = (
                await db.execute(
                    select(User.username, User.email).where(
                        or_(User.username == payload.username, User.email == payload.email)
                    )
                )
            ).first()
        except SQLAlchemyError as e:
            logger.error("Database error checking registration: %s", str(e), exc_info=True)
            raise DatabaseError(message="Registration failed. Please try again.")

        if taken is not None:
            field = "username" if taken.username == payload.username else "email"
            raise ConflictError(message=f"That {field} is already registered", field=field)

        password_hash = await asyncio.to_thread(hash_password, payload.password)
        user = User(username=payload.username, email=payload.email, password_hash=password_hash)
        try:
            db.add(user)
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration
            await db.rollback()
            raise ConflictError(message="Username or email is already registered")
        except SQLAlchemyError as e:
            logger.error("Database error creating user: %s", str(e), exc_info=True)
            raise DatabaseError(message="Registration failed. Please try again.")

        logger.info("User registered: id=%s username=%s", user.id, user.username)
        return user

    async def login(self, db: AsyncSession, username: str, password: str) -> LoginResponse:
        """
        Raises:
            AuthenticationError: unknown user or wrong password (same message)
        """
        try:
            user = (
                await db.execute(select(User).where(User.username == username))
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error during login: %s", str(e), exc_info=True)
            raise DatabaseError(message="Login failed. Please try again.")

        if user is None or not await asyncio.to_thread(verify_password, password, user.password_hash):
            logger.info("Failed login for username=%s", username)
            raise AuthenticationError(message=INVALID_CREDENTIALS)

        token, expires_in = create_access_token(user)
        logger.info("User logged in: id=%s", user.id)
        return LoginResponse(
            access_token=token,
            expires_in=expires_in,
            user=UserResponse.model_validate(user),
        )

    async def get_user(self, db: AsyncSession, user_id: int) -> User | None:
        try:
            return await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error loading user %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(message="Could not load the current user.")


auth_service = AuthService()
