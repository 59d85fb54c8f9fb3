from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    # Application
    APP_NAME: str = "WarehouseWrangler"
    APP_PORT: int = 9210
    DEBUG: bool = False
    SECRET_KEY: str = "warehousewrangler-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours
    PASSWORD_MIN_LENGTH: int = 8
    MAX_FAILED_LOGINS: int = 5
    FAILED_LOGIN_WINDOW_MINUTES: int = 15
    
    # First admin account, created at startup when no user has that name
    INITIAL_ADMIN_USERNAME: str = "admin"
    INITIAL_ADMIN_PASSWORD: Optional[str] = None
    
    # Database
    DATABASE_URL: str = "sqlite:///./warehousewrangler.db"
    
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_PATH: Optional[str] = None
    
    # Coverage dashboard defaults (overridable via system_config table)
    LEAD_TIME_WEEKS: int = 13
    AWS_UNIT: str = "boxes"  # boxes | pairs
    
    class Config:
        env_file = ".env"
        extra = "ignore"

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
