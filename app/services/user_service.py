"""
User Service - accounts, login and login-attempt auditing
"""
from sqlalchemy.orm import Session
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from typing import List, Optional
from datetime import datetime, timedelta, timezone
import logging

from app.core.config import Settings
from app.core.database import transaction
from app.core.exceptions import (
    ValidationError, AuthenticationError, PermissionDeniedError,
    NotFoundError, TooManyAttemptsError
)
from app.core.security import verify_password, get_password_hash, create_access_token
from app.models import AppUser, UserRoleCode, LoginAttempt
from app.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)

ROLES = [r.value for r in UserRoleCode]


class UserService:
    """User management business logic"""
    
    @staticmethod
    def get_user(db: Session, user_id: int) -> AppUser:
        user = db.query(AppUser).filter(AppUser.id == user_id).first()
        if not user:
            raise NotFoundError("User", user_id)
        return user
    
    @staticmethod
    def get_users(db: Session) -> List[AppUser]:
        return db.query(AppUser).order_by(AppUser.username).all()
    
    @staticmethod
    def _validate_password(password: str, settings: Settings) -> None:
        if len(password or "") < settings.PASSWORD_MIN_LENGTH:
            raise ValidationError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters")
    
    @staticmethod
    def _validate_role(role: str) -> None:
        if role not in ROLES:
            raise ValidationError(f"Invalid role. Must be: {', '.join(ROLES)}")
    
    # ===================== LOGIN =====================
    
    @staticmethod
    def count_recent_failures(db: Session, username: str, settings: Settings) -> int:
        since = datetime.now(timezone.utc) - timedelta(minutes=settings.FAILED_LOGIN_WINDOW_MINUTES)
        return db.query(func.count(LoginAttempt.id)).filter(
            LoginAttempt.username == username,
            LoginAttempt.success == False,
            LoginAttempt.attempted_at >= since
        ).scalar() or 0
    
    @staticmethod
    def record_attempt(db: Session, username: str, success: bool, ip_address: Optional[str] = None) -> None:
        """Audit write; a failure here must not block the login itself"""
        try:
            with transaction(db):
                db.add(LoginAttempt(
                    username=username,
                    ip_address=ip_address,
                    success=success,
                    attempted_at=datetime.now(timezone.utc)
                ))
        except SQLAlchemyError:
            logger.exception(f"Failed to record login attempt for {username}")
    
    @staticmethod
    def authenticate(
        db: Session,
        username: str,
        password: str,
        settings: Settings,
        ip_address: Optional[str] = None
    ) -> dict:
        """Verify credentials and issue a token. Returns the login response payload."""
        username = (username or "").strip()
        if not username or not password:
            raise ValidationError("Username and password are required")
        
        if UserService.count_recent_failures(db, username, settings) >= settings.MAX_FAILED_LOGINS:
            logger.warning(f"Login blocked for {username}: too many failed attempts")
            raise TooManyAttemptsError("Too many failed login attempts. Please try again later.")
        
        user = db.query(AppUser).filter(AppUser.username == username).first()
        if not user or not verify_password(password, user.hashed_password):
            UserService.record_attempt(db, username, False, ip_address)
            logger.warning(f"Failed login for {username}")
            raise AuthenticationError("Invalid username or password")
        
        if not user.is_active:
            UserService.record_attempt(db, username, False, ip_address)
            raise PermissionDeniedError("Account is disabled")
        
        with transaction(db):
            user.last_login = datetime.now(timezone.utc)
        UserService.record_attempt(db, username, True, ip_address)
        
        token = create_access_token(
            data={"sub": str(user.id), "username": user.username, "role": user.role},
            settings=settings
        )
        logger.info(f"User {user.username} logged in")
        
        return {
            "access_token": token,
            "token_type": "bearer",
            "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            "user": UserService.serialize(user),
        }
    
    # ===================== ACCOUNTS =====================
    
    @staticmethod
    def seed_admin(db: Session, settings: Settings) -> Optional[AppUser]:
        """Create the initial admin account if it does not exist yet"""
        username = settings.INITIAL_ADMIN_USERNAME
        if db.query(AppUser.id).filter(AppUser.username == username).first():
            return None
        user = UserService.create_user(
            db, UserCreate(username=username, password=settings.INITIAL_ADMIN_PASSWORD, role=UserRoleCode.ADMIN.value), settings
        )
        logger.info(f"Seeded admin account {username}")
        return user
    
    @staticmethod
    def create_user(db: Session, data: UserCreate, settings: Settings) -> AppUser:
        username = data.username.strip()
        if not username:
            raise ValidationError("Username is required")
        UserService._validate_role(data.role)
        UserService._validate_password(data.password, settings)
        
        with transaction(db):
            if db.query(AppUser.id).filter(AppUser.username == username).first():
                raise ValidationError(f"Username {username} already exists")
            user = AppUser(
                username=username,
                email=data.email,
                hashed_password=get_password_hash(data.password),
                role=data.role,
                is_active=True
            )
            db.add(user)
        
        db.refresh(user)
        logger.info(f"Created user {user.username} ({user.role})")
        return user
    
    @staticmethod
    def update_user(db: Session, user_id: int, data: UserUpdate, actor: AppUser) -> AppUser:
        """Users may edit their own email; role and active flag are admin-only"""
        if not actor.is_admin and actor.id != user_id:
            raise PermissionDeniedError("You can only edit your own account")
        
        changes = data.model_dump(exclude_unset=True)
        if not actor.is_admin and ({"role", "is_active"} & set(changes)):
            raise PermissionDeniedError("Only admins can change roles or activation")
        if changes.get("role") is not None:
            UserService._validate_role(changes["role"])
        if actor.id == user_id and changes.get("is_active") is False:
            raise ValidationError("You cannot deactivate your own account")
        
        with transaction(db):
            user = UserService.get_user(db, user_id)
            for field, value in changes.items():
                if field in ("role", "is_active") and value is None:
                    continue
                setattr(user, field, value)
        
        db.refresh(user)
        return user
    
    @staticmethod
    def change_password(
        db: Session,
        user_id: int,
        new_password: str,
        actor: AppUser,
        settings: Settings,
        current_password: Optional[str] = None
    ) -> None:
        """Self-service needs the current password; admins may reset anyone's"""
        if not actor.is_admin and actor.id != user_id:
            raise PermissionDeniedError("You can only change your own password")
        UserService._validate_password(new_password, settings)
        
        with transaction(db):
            user = UserService.get_user(db, user_id)
            if actor.id == user_id and not verify_password(current_password or "", user.hashed_password):
                raise ValidationError("Current password is incorrect")
            user.hashed_password = get_password_hash(new_password)
        
        logger.info(f"Password changed for user {user_id}")
    
    @staticmethod
    def serialize(user: AppUser) -> dict:
        return {
            "user_id": user.id,
            "username": user.username,
            "email": user.email,
            "role": user.role,
            "is_active": user.is_active,
            "last_login": user.last_login.isoformat() if user.last_login else None,
            "created_at": user.created_at.isoformat() if user.created_at else None,
        }
