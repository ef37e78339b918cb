import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import crud
from database.database import Base, get_db, init_db
from database.models import Role, TransactionType
from main import app
from services.auth_service import create_access_token, hash_password

PASSWORD = "password123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user(db_session):
    return crud.create_user(db_session, "alice", "alice@budget-tracker.io", hash_password(PASSWORD))


@pytest.fixture
def other_user(db_session):
    return crud.create_user(db_session, "bob", "bob@budget-tracker.io", hash_password(PASSWORD))


@pytest.fixture
def admin(db_session):
    return crud.create_user(db_session, "root", "root@budget-tracker.io", hash_password(PASSWORD), role=Role.ADMIN)


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {create_access_token(admin)}"}


@pytest.fixture
def add_transaction(db_session):
    """Fabrique de transactions pour les tests"""
    def _add(owner, amount, category="Food", type=TransactionType.EXPENSE, on=None, title=None, description=None):
        return crud.create_transaction(db_session, owner.id, {
            'title': title or f"{category} {amount}",
            'category': category,
            'type': type,
            'amount': amount,
            'description': description,
            'transaction_date': on or date.today(),
        })
    return _add
