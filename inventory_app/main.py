"""
InventoryManager: REST API склада и заказов.

Запуск:
    uvicorn inventory_app.main:app --host 0.0.0.0 --port 8000 --reload
или
    python -m inventory_app.main
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware

from inventory_app import config
from inventory_app.db import Base, engine
from inventory_app.errors import InventoryError
from inventory_app.middleware.auth import ApiAuthMiddleware
from inventory_app.utils.logger import setup_logger

# 1) Импортируем все модели до create_all(),
#    чтобы SQLAlchemy знал про классы и связи
import inventory_app.models  # noqa: F401

from sqlalchemy.orm import configure_mappers
configure_mappers()

setup_logger()
logger = logging.getLogger(__name__)

# 2) Создаём таблицы
Base.metadata.create_all(bind=engine)


# ==== FastAPI app ====
app = FastAPI(title=config.APP_NAME)

# Проверка доступа к /api (добавляем первой — сессия должна оборачивать её снаружи)
app.add_middleware(ApiAuthMiddleware)
# Сессии (user_id после логина)
app.add_middleware(SessionMiddleware, secret_key=config.SECRET_KEY)


# ==== Errors ====
@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    if exc.status_code >= 500:
        logger.error("%s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


@app.exception_handler(SQLAlchemyError)
async def db_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Ошибка БД: %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"detail": "Внутренняя ошибка сервера"}, status_code=500)


# ==== Routers ====
from inventory_app.routers import auth as auth_router
from inventory_app.routers import products as products_router
from inventory_app.routers import orders as orders_router
from inventory_app.routers import history as history_router
app.include_router(auth_router.router)
app.include_router(products_router.router)
app.include_router(orders_router.router)
app.include_router(history_router.router)


@app.get("/api/health")
def health():
    return {"ok": True, "service": config.APP_NAME, "env": config.ENV}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("inventory_app.main:app", host=config.HOST, port=config.PORT)
