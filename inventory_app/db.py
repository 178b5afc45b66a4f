from contextlib import contextmanager
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from inventory_app import config  # импортируем настройки
from inventory_app.errors import InfrastructureError

logger = logging.getLogger(__name__)

Base = declarative_base()


def _install_sqlite_hooks(engine):
    """
    SQLite: включаем внешние ключи и открываем транзакции через BEGIN IMMEDIATE,
    чтобы два параллельных заказа не читали один и тот же остаток.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # отключаем собственный BEGIN у pysqlite — его отправляем сами ниже
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # BEGIN IMMEDIATE на любую транзакцию, в том числе на чтение в GET-запросе:
    # на SQLite сессии с открытой транзакцией выполняются строго по очереди,
    # поэтому сессию держим не дольше запроса (get_db) или операции.
    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def make_engine(url: str):
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": config.SQLITE_TIMEOUT},
        )
        _install_sqlite_hooks(engine)
        return engine

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
    )


# Создаём engine
engine = make_engine(config.DATABASE_URL)

# Фабрика сессий
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependency для FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session):
    """
    Одна транзакция на бизнес-операцию: commit при успехе, rollback при любой ошибке.
    IntegrityError пробрасывается как есть — вызывающий знает, какой это конфликт.
    """
    try:
        yield db
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Ошибка БД, транзакция откатена")
        raise InfrastructureError() from exc
    except Exception:
        db.rollback()
        raise
