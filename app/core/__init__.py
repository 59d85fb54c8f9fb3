from .config import settings, get_settings, Settings
from .database import engine, SessionLocal, get_db, Base, transaction

__all__ = ["settings", "get_settings", "Settings", "engine", "SessionLocal", "get_db", "Base", "transaction"]
