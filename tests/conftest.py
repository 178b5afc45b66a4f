import os
import tempfile
from decimal import Decimal
from pathlib import Path

# БД для тестов — временный SQLite-файл; env задаём до импорта приложения
_TMP_DIR = tempfile.mkdtemp(prefix="inventory-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + (Path(_TMP_DIR) / "test.db").as_posix()
os.environ["SECRET_KEY"] = "test-secret"
os.environ["LOGIN_MAX_ATTEMPTS"] = "5"
os.environ["LOG_DIR"] = ""

import pytest
from fastapi.testclient import TestClient

from inventory_app.db import Base, SessionLocal, engine
from inventory_app.main import app
from inventory_app.models.user import User
from inventory_app.routers import auth as auth_router
from inventory_app.services import products as products_service
from inventory_app.utils.security import hash_password

PASSWORD = "secret-pass"
# bcrypt медленный — хешируем один раз на весь прогон
PASSWORD_HASH = hash_password(PASSWORD)


def create_user(username: str) -> int:
    """Создаёт пользователя в отдельной короткой сессии и возвращает id."""
    with SessionLocal() as s:
        user = User(username=username, password_hash=PASSWORD_HASH)
        s.add(user)
        s.commit()
        return user.id


def product_data(**overrides) -> dict:
    data = {
        "sku": "A1",
        "name": "Молоко",
        "description": "1 литр",
        "price": Decimal("5.00"),
        "quantity": 10,
        "category": "Молочные",
    }
    data.update(overrides)
    return data


@pytest.fixture(autouse=True)
def reset_db():
    """Чистая схема на каждый тест"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    auth_router.login_attempts.clear()
    yield


# ---------- сервисный уровень ----------

@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _add_user(db, username: str) -> User:
    # та же сессия, что и у теста: вторая сессия ждала бы блокировку SQLite
    user = User(username=username, password_hash=PASSWORD_HASH)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def user(db):
    return _add_user(db, "alice")


@pytest.fixture()
def other_user(db):
    return _add_user(db, "bob")


@pytest.fixture()
def make_product(db, user):
    def _make(owner=None, **overrides):
        return products_service.create_product(db, product_data(**overrides), owner or user)
    return _make


# ---------- HTTP ----------
# API-тесты не держат открытых сессий: SQLite пишет под BEGIN IMMEDIATE,
# открытая транзакция в тесте заблокировала бы запрос.

def login(client: TestClient, username: str, password: str = PASSWORD):
    return client.post("/api/auth/login", json={"username": username, "password": password})


@pytest.fixture()
def client():
    return TestClient(app)


@pytest.fixture()
def auth_client():
    create_user("alice")
    c = TestClient(app)
    assert login(c, "alice").status_code == 200
    return c


@pytest.fixture()
def other_client():
    create_user("bob")
    c = TestClient(app)
    assert login(c, "bob").status_code == 200
    return c
