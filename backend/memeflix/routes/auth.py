"""
Memeflix Backend — Auth Route Handlers
=======================================

What:  Registration, login and "who am I".
How:   Login returns a bearer token; clients send it back as
       `Authorization: Bearer <token>` on every per-user endpoint.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from memeflix.database import get_db_session
from memeflix.models import User
from memeflix.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    UserResponse,
)
from memeflix.schemas.common import ErrorResponse
from memeflix.security import get_current_user
from memeflix.services.auth_service import auth_service

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=201,
    responses={
        400: {"description": "Malformed input", "model": ErrorResponse},
        409: {"description": "Username or email taken", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> RegisterResponse:
    user = await auth_service.register(db, body)
    return RegisterResponse(user=UserResponse.model_validate(user))


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Exchange credentials for a bearer token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    return await auth_service.login(db, body.username, body.password)


@router.get(
    "/me",
    response_model=UserResponse,
    responses={
        401: {"description": "Missing token", "model": ErrorResponse},
        403: {"description": "Invalid token", "model": ErrorResponse},
    },
    summary="The authenticated user",
)
async def me(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)
