"""
Memeflix Backend — Authentication Schemas
==========================================

What:  Request/response bodies for /api/auth.
How:   Field constraints are checked by FastAPI before the handler runs;
       failures are answered with 400 by the RequestValidationError
       handler in main.py.

Password bounds:
    min 6   short enough for the demo accounts the frontend ships with
    max 72  UTF-8 bytes; bcrypt rejects longer input, so multibyte
            passwords hit the limit with fewer characters
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

# Deliberately loose: one "@" with something on both sides and a dot after it.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
BCRYPT_MAX_BYTES = 72


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=6, max_length=72)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        """max_length counts characters; bcrypt counts UTF-8 bytes."""
        if len(v.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes when UTF-8 encoded")
        return v


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=72)


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    created_at: datetime

    model_config = {"from_attributes": True}


class RegisterResponse(BaseModel):
    message: str = "User registered successfully"
    user: UserResponse


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Token lifetime in seconds")
    user: UserResponse
