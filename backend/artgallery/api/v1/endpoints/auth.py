"""
Auth API Endpoints.

Sign-up with e-mailed codes, login and password reset.
"""

from typing import Any

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, EmailStr, Field

from artgallery.api.v1.deps import get_account_service
from artgallery.core.config import settings
from artgallery.core.security import TOKEN_COOKIE, get_current_user
from artgallery.models.user import User
from artgallery.modules.accounts import AccountService, serialize_user

router = APIRouter()


# ==================== Schemas ====================


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: str | None = None


class VerifyOtpRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=6, max_length=6)


class EmailRequest(BaseModel):
    email: EmailStr


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ResetPasswordRequest(BaseModel):
    email: str = ""
    otp: str = ""
    new_password: str = ""


def _set_token_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.jwt_access_token_expire_minutes * 60,
    )


# ==================== Registration ====================


@router.post("/register", status_code=201)
async def register(
    request: RegisterRequest,
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    """Create an account and e-mail a verification code."""
    user = await accounts.register(
        name=request.name,
        email=request.email,
        password=request.password,
        phone=request.phone,
    )
    return {
        "success": True,
        "message": "Registration successful. Please verify your email with the OTP sent.",
        "email": user.email,
    }


@router.post("/verify-otp")
async def verify_otp(
    request: VerifyOtpRequest,
    response: Response,
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    user, token = await accounts.verify_otp(request.email, request.otp)
    _set_token_cookie(response, token)
    return {
        "success": True,
        "message": "Email verified successfully",
        "token": token,
        "user": serialize_user(user),
    }


@router.post("/resend-otp")
async def resend_otp(
    request: EmailRequest,
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    await accounts.resend_otp(request.email)
    return {"success": True, "message": "OTP sent successfully"}


# ==================== Session ====================


@router.post("/login")
async def login(
    request: LoginRequest,
    response: Response,
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    """
    Log in with e-mail and password.

    The token is returned in the body and set as an http-only cookie.
    Unverified accounts get 401 with ``requires_verification``.
    """
    user, token = await accounts.login(request.email, request.password)
    _set_token_cookie(response, token)
    return {
        "success": True,
        "message": "Login successful",
        "token": token,
        "user": serialize_user(user),
    }


@router.post("/logout")
async def logout(response: Response) -> dict[str, Any]:
    response.delete_cookie(TOKEN_COOKIE)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me")
async def me(user: User = Depends(get_current_user)) -> dict[str, Any]:
    return {"success": True, "user": serialize_user(user)}


# ==================== Password reset ====================


@router.post("/forgot-password")
async def forgot_password(
    request: EmailRequest,
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    await accounts.forgot_password(request.email)
    return {"success": True, "message": "Password reset OTP sent to your email"}


@router.post("/reset-password")
async def reset_password(
    request: ResetPasswordRequest,
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    await accounts.reset_password(request.email, request.otp, request.new_password)
    return {"success": True, "message": "Password reset successfully"}
