import logging
import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from inventory_app import config
from inventory_app.db import get_db
from inventory_app.middleware.auth import get_current_user
from inventory_app.models.user import User
from inventory_app.schemas import LoginRequest
from inventory_app.utils.security import verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

# 🔹 Rate limit: { "ip": {"count": int, "last": timestamp} }
login_attempts = {}


def check_rate_limit(ip: str) -> bool:
    """Проверка лимита по IP"""
    now = time.time()
    data = login_attempts.get(ip)

    if not data:
        return True

    # если ещё идёт блокировка
    if data["count"] >= config.LOGIN_MAX_ATTEMPTS and now - data["last"] < config.LOGIN_BLOCK_TIME:
        return False

    return True


def add_attempt(ip: str):
    """Запись неудачной попытки входа"""
    now = time.time()
    attempts = login_attempts.get(ip)
    if not attempts or now - attempts["last"] > config.LOGIN_BLOCK_TIME:
        # сбрасываем после блокировки
        login_attempts[ip] = {"count": 1, "last": now}
    else:
        attempts["count"] += 1
        attempts["last"] = now


def reset_attempts(ip: str):
    """Сброс после успешного логина"""
    login_attempts.pop(ip, None)


@router.post("/login")
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)):
    client_ip = request.client.host if request.client else "unknown"

    if not check_rate_limit(client_ip):
        logger.warning("Логин заблокирован rate limit: ip=%s", client_ip)
        return JSONResponse(
            {"detail": "Слишком много попыток. Подождите {0} секунд.".format(config.LOGIN_BLOCK_TIME)},
            status_code=429,
        )

    user = db.query(User).filter(User.username == body.username).first()
    if not user or not verify_password(body.password, user.password_hash):
        add_attempt(client_ip)
        logger.info("Неудачный вход: username=%s ip=%s", body.username, client_ip)
        return JSONResponse({"detail": "Неверный логин или пароль"}, status_code=401)

    reset_attempts(client_ip)

    # сохраняем в сессии
    request.session["user_id"] = user.id
    logger.info("Вход: username=%s id=%s", user.username, user.id)
    return {"id": user.id, "username": user.username}


@router.post("/logout")
def logout(request: Request):
    request.session.clear()
    return {"ok": True}


@router.get("/whoami")
def whoami(user: User = Depends(get_current_user)):
    return {"id": user.id, "username": user.username}
