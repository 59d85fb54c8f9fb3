"""
Shared fixtures: in-memory database, API client, users and seed data.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core import Base, get_db, get_settings
from app.core.database import build_engine
from app.models import CartonLocation, UserRoleCode
from app.schemas.user import UserCreate
from app.services import UserService
from main import app
from tests.factories import auth_headers, make_product, make_carton


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def client(session_factory):
    """API client on the test database. Lifespan is not run, so no file database is touched."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()
    
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_user(db, settings):
    return UserService.create_user(
        db, UserCreate(username="admin", password="adminpass1", role=UserRoleCode.ADMIN.value), settings
    )


@pytest.fixture
def regular_user(db, settings):
    return UserService.create_user(
        db, UserCreate(username="picker", password="pickerpass1", role=UserRoleCode.USER.value), settings
    )


@pytest.fixture
def admin_headers(admin_user, settings):
    return auth_headers(admin_user, settings)


@pytest.fixture
def user_headers(regular_user, settings):
    return auth_headers(regular_user, settings)


@pytest.fixture
def product(db):
    return make_product(db)


@pytest.fixture
def carton(db, product):
    return make_carton(db, "C1", CartonLocation.WML.value, [(product, 10)])
