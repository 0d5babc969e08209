"""
Authentication Router

Handles OTP registration, login, password reset and role elevation endpoints.
"""

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Literal, Optional

from ..core.auth import get_current_user
from ..core.exceptions import InputValidationError
from ..core.rate_limit import otp_rate_limit
from ..models.user import User, UserRole
from ..services.auth_service import AuthService, get_auth_service


router = APIRouter(prefix="/api/auth", tags=["Authentication"])

OTP_PATTERN = r"^[0-9]{4,10}$"


# Pydantic Models
class SendOtpRequest(BaseModel):
    """Registration request, nothing is stored until the code is verified"""
    email: EmailStr
    name: str = Field(..., min_length=2, max_length=50)
    phone: Optional[str] = Field(None, pattern=r"^[0-9]{10}$")
    password: str = Field(..., min_length=6, max_length=72)  # bcrypt limit is 72 bytes
    role: Optional[UserRole] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Name must be between 2 and 50 characters")
        return value


class VerifyOtpRequest(BaseModel):
    """Registration verification when tempData is present, password-reset verification otherwise"""
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    otp: str = Field(..., pattern=OTP_PATTERN)
    temp_data: Optional[str] = Field(None, alias="tempData")
    purpose: Optional[Literal["registration", "password-reset"]] = None


class ResendOtpRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    temp_data: str = Field(..., alias="tempData")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class VerifyResetOtpRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., pattern=OTP_PATTERN)


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    otp: str = Field(..., pattern=OTP_PATTERN)
    new_password: str = Field(..., min_length=6, max_length=72, alias="newPassword")


# Endpoints

@router.post("/send-otp", dependencies=[Depends(otp_rate_limit)])
def send_otp(body: SendOtpRequest, auth: AuthService = Depends(get_auth_service)):
    """
    Start registration by mailing a one-time code

    - **email**: Valid email address (unique)
    - **name**: User's full name
    - **phone**: Optional 10-digit phone number
    - **password**: Password (min 6 characters)
    - **role**: seeker (default) or owner

    Returns the email and the tempData bundle to send back on verification
    """
    data = auth.request_registration_otp(
        name=body.name,
        email=body.email,
        password=body.password,
        phone=body.phone,
        role=body.role.value if body.role else None,
    )
    return {"success": True, "message": "OTP sent successfully to your email", "data": data}


@router.post("/verify-otp")
def verify_otp(body: VerifyOtpRequest, response: Response, auth: AuthService = Depends(get_auth_service)):
    """
    Verify a one-time code

    With **tempData** this completes registration and returns the new user
    and a token; without it the code is checked as a password-reset code.
    A registration purpose without tempData is rejected untouched.
    """
    if body.purpose == "registration" and body.temp_data is None:
        raise InputValidationError("tempData is required to verify a registration")

    if body.temp_data is None or body.purpose == "password-reset":
        auth.verify_reset_otp(email=body.email, code=body.otp)
        return {"success": True, "message": "OTP verified successfully. You can now reset your password."}

    user, token = auth.verify_registration_otp(email=body.email, code=body.otp, temp_data=body.temp_data)
    response.status_code = status.HTTP_201_CREATED
    return {
        "success": True,
        "message": "Email verified and registration successful!",
        "data": {"user": user.to_dict(), "token": token},
    }


@router.post("/verify-reset-otp")
def verify_reset_otp(body: VerifyResetOtpRequest, auth: AuthService = Depends(get_auth_service)):
    auth.verify_reset_otp(email=body.email, code=body.otp)
    return {"success": True, "message": "OTP verified successfully. You can now reset your password."}


@router.post("/resend-otp", dependencies=[Depends(otp_rate_limit)])
def resend_otp(body: ResendOtpRequest, auth: AuthService = Depends(get_auth_service)):
    data = auth.resend_registration_otp(email=body.email, temp_data=body.temp_data)
    return {"success": True, "message": "New OTP sent successfully to your email", "data": data}


@router.post("/login")
def login(body: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    """
    Login with email and password

    Returns JWT token and user information
    """
    user, token = auth.login(email=body.email, password=body.password)
    return {"success": True, "message": "Login successful", "data": {"user": user.to_dict(), "token": token}}


@router.get("/me")
def get_me(current_user: User = Depends(get_current_user)):
    """
    Get current authenticated user information

    Requires: Bearer token in Authorization header
    """
    return {"success": True, "data": {"user": current_user.to_dict()}}


@router.post("/become-owner")
def become_owner(current_user: User = Depends(get_current_user), auth: AuthService = Depends(get_auth_service)):
    user = auth.become_owner(current_user)
    return {"success": True, "message": "Successfully became an owner", "data": {"user": user.to_dict()}}


@router.post("/forgot-password", dependencies=[Depends(otp_rate_limit)])
def forgot_password(body: ForgotPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    auth.request_password_reset(email=body.email)
    return {"success": True, "message": "Password reset OTP sent successfully to your email"}


@router.post("/reset-password")
def reset_password(body: ResetPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    auth.reset_password(email=body.email, code=body.otp, new_password=body.new_password)
    return {"success": True, "message": "Password reset successfully"}


@router.post("/logout")
def logout():
    """
    Logout endpoint (client-side token removal)

    Note: Since JWT tokens are stateless, actual logout happens on client side
    by removing the token from storage.
    """
    return {"success": True, "message": "Logged out successfully. Please remove token from client."}
