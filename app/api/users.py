"""
Users API
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core import get_db, get_settings, Settings
from app.models import AppUser
from app.schemas.user import UserCreate, UserUpdate, PasswordChange
from app.services import UserService
from app.api.auth import get_current_user, require_admin

router = APIRouter(prefix="/users", tags=["users"])

# ============== Users Endpoints ==============

@router.get("")
def list_users(
    db: Session = Depends(get_db),
    admin: AppUser = Depends(require_admin)
):
    users = UserService.get_users(db)
    return {"success": True, "users": [UserService.serialize(u) for u in users]}


@router.post("")
def create_user(
    user: UserCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    admin: AppUser = Depends(require_admin)
):
    created = UserService.create_user(db, user, settings)
    return {"success": True, "user": UserService.serialize(created)}


@router.put("/{user_id}")
def update_user(
    user_id: int,
    user: UserUpdate,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    updated = UserService.update_user(db, user_id, user, actor=current_user)
    return {"success": True, "user": UserService.serialize(updated)}


@router.post("/{user_id}/password")
def change_password(
    user_id: int,
    data: PasswordChange,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: AppUser = Depends(get_current_user)
):
    UserService.change_password(
        db, user_id, data.new_password,
        actor=current_user,
        settings=settings,
        current_password=data.current_password
    )
    return {"success": True, "message": "Password changed successfully"}
