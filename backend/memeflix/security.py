"""
Memeflix Backend — Request Authentication Dependency
=====================================================

What:  `get_current_user`, the FastAPI dependency guarding every
       per-user endpoint (votes, favorites, history, /auth/me).
How:   Reads `Authorization: Bearer <token>` via HTTPBearer with
       auto_error=False, so a missing header reaches our handler and is
       answered in the standard error envelope:

           no header / not Bearer       → 401 AuthenticationError
           bad signature / expired      → 403 ForbiddenError
           valid token, user deleted    → 403 ForbiddenError
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from memeflix.database import get_db_session
from memeflix.exceptions import AuthenticationError, ForbiddenError
from memeflix.models import User
from memeflix.services.auth_service import auth_service, decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Authentication token required")

    payload = decode_access_token(credentials.credentials)
    user = await auth_service.get_user(db, int(payload["sub"]))
    if user is None:
        raise ForbiddenError(message="Invalid token")
    return user
