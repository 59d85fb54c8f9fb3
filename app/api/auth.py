"""
Authentication API - Login, JWT Token, Password Management
"""
from fastapi import APIRouter, Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from typing import Optional

from app.core import get_db, get_settings, Settings
from app.core.exceptions import AuthenticationError, PermissionDeniedError
from app.core.security import decode_access_token
from app.models import AppUser
from app.schemas.user import LoginRequest, PasswordChange
from app.services import UserService

router = APIRouter(prefix="/auth", tags=["auth"])

# OAuth2 scheme
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


# ============== Dependencies ==============

async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
) -> AppUser:
    """Require a valid bearer token for an active user"""
    if not token:
        raise AuthenticationError("No authorization token provided")
    
    payload = decode_access_token(token, settings)
    if not payload or payload.get("sub") is None:
        raise AuthenticationError("Invalid or expired token")
    
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid or expired token")
    
    user = db.query(AppUser).filter(AppUser.id == user_id).first()
    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")
    return user


async def require_admin(current_user: AppUser = Depends(get_current_user)) -> AppUser:
    if not current_user.is_admin:
        raise PermissionDeniedError("Admin privileges required")
    return current_user


# ============== API Endpoints ==============

@router.post("/login")
async def login(
    data: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """
    Login with username and password, returns JWT token
    """
    ip_address = request.client.host if request.client else None
    result = UserService.authenticate(db, data.username, data.password, settings, ip_address)
    return {"success": True, **result}


@router.get("/me")
async def get_me(current_user: AppUser = Depends(get_current_user)):
    """Get current authenticated user info"""
    return {"success": True, "user": UserService.serialize(current_user)}


@router.post("/password")
async def change_password(
    password_data: PasswordChange,
    current_user: AppUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """Change password for current user"""
    UserService.change_password(
        db,
        current_user.id,
        password_data.new_password,
        actor=current_user,
        settings=settings,
        current_password=password_data.current_password
    )
    return {"success": True, "message": "Password changed successfully"}
