"""
User Router

Profile, password, dashboards and account deletion. Every route needs a
bearer token.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from ..core.auth import get_current_user, require_owner
from ..models.user import User
from ..services.user_service import UserService, get_user_service


router = APIRouter(prefix="/api/user", tags=["User"])


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone: Optional[str] = Field(None, pattern=r"^[0-9]{10}$")
    profile_image: Optional[str] = Field(None, alias="profileImage")  # URL or base64 data URL


class ChangePassword(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(..., min_length=1, alias="currentPassword")
    new_password: str = Field(..., min_length=6, max_length=72, alias="newPassword")


class DeleteAccount(BaseModel):
    password: str = Field(..., min_length=1)


@router.put("/profile")
def update_profile(
    body: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    user = users.update_profile(current_user, body.name, body.phone, body.profile_image)
    return {"success": True, "message": "Profile updated successfully", "data": {"user": user.to_dict()}}


@router.put("/change-password")
def change_password(
    body: ChangePassword,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    users.change_password(current_user, body.current_password, body.new_password)
    return {"success": True, "message": "Password changed successfully"}


@router.get("/dashboard")
def get_dashboard(current_user: User = Depends(get_current_user), users: UserService = Depends(get_user_service)):
    return {"success": True, "data": users.dashboard(current_user)}


@router.get("/owner-dashboard")
def get_owner_dashboard(owner: User = Depends(require_owner), users: UserService = Depends(get_user_service)):
    return {"success": True, "data": users.owner_dashboard(owner)}


@router.delete("/account")
def delete_account(
    body: DeleteAccount,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    users.delete_account(current_user, body.password)
    return {"success": True, "message": "Account deleted successfully"}
