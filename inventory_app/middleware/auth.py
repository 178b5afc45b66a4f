from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from inventory_app.db import get_db
from inventory_app.models.user import User

# без сессии доступны только эти пути
PUBLIC_PATHS = ["/api/auth/login", "/api/health"]


class ApiAuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        # Проверяем только API (кроме логина и health)
        if path.startswith("/api") and not any(path.startswith(p) for p in PUBLIC_PATHS):
            if not request.session.get("user_id"):
                return JSONResponse({"detail": "Требуется авторизация"}, status_code=401)

        return await call_next(request)


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Пользователь из сессии — его передаём во все сервисы явно"""
    user_id = request.session.get("user_id")
    user = db.get(User, user_id) if user_id else None
    if not user:
        request.session.clear()
        raise HTTPException(status_code=401, detail="Требуется авторизация")
    return user
