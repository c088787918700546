"""
FastAPI routes for authentication.

Prefix: /auth

Login and register answer with the public identity record and an opaque
session token, also set as an http-only cookie.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field

from lifeboard.auth.models import User
from lifeboard.utils.exceptions import AuthenticationError
from lifeboard.utils.logger import get_logger
from .auth_middleware import extract_token, get_credentials, require_login

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class Credentials(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


def _set_session_cookie(request: Request, response: Response, token: str) -> None:
    settings = request.app.state.settings
    response.set_cookie(
        key=settings.auth.cookie_name,
        value=token,
        max_age=settings.auth.session_expiry_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.app.environment == "production",
        samesite="lax",
    )


def _auth_response(request: Request, user: User, message: str, status_code: int) -> JSONResponse:
    token = get_credentials(request).create_session(user.id)
    response = JSONResponse(
        status_code=status_code,
        content={"user": user.public(), "token": token, "message": message},
    )
    _set_session_cookie(request, response, token)
    return response


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(request: Request, credentials: Credentials) -> Any:
    """
    Register a new user and log them in.

    Request:
        {"email": "...", "password": "..."}

    Response (201):
        {"user": {"id", "email", "createdAt"}, "token": "...", "message": "..."}

    400 on a short password, 409 when the email is taken.
    """
    user = get_credentials(request).create_user(credentials.email, credentials.password)
    return _auth_response(request, user, "User registered successfully", status.HTTP_201_CREATED)


@router.post("/login")
def login(request: Request, credentials: Credentials) -> Any:
    """
    Log in an existing user.

    Response: same shape as /register, or 401 {"message": "Invalid credentials"}.
    """
    user = get_credentials(request).authenticate(credentials.email, credentials.password)
    if not user:
        raise AuthenticationError("Invalid credentials")
    logger.info("User logged in", user_id=user.id)
    return _auth_response(request, user, "Login successful", status.HTTP_200_OK)


@router.post("/logout")
def logout(request: Request) -> Any:
    """Invalidate the current session token, if any."""
    token = extract_token(request)
    if token:
        get_credentials(request).logout(token)
    response = JSONResponse({"message": "Logged out"})
    response.delete_cookie(request.app.state.settings.auth.cookie_name)
    return response


@router.get("/me")
async def me(current_user: User = Depends(require_login)) -> Dict[str, Any]:
    """Return the current authenticated user."""
    return current_user.public()
