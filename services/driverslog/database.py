# services/driverslog/database.py

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from config import settings

# Отдельная схема для журнала парковок
DRIVERSLOG_SCHEMA = "driverslog"

# Движок SQLAlchemy (пул соединений, один на процесс)
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    future=True,
)

# Фабрика сессий
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
)


class Base(DeclarativeBase):
    """Базовый класс моделей SQLAlchemy для driverslog."""
    pass


def ensure_schema() -> None:
    """Создаёт схему driverslog, если она ещё не существует."""
    with engine.begin() as conn:
        conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{DRIVERSLOG_SCHEMA}"'))


def get_db():
    """
    Зависимость FastAPI: отдельная сессия на каждый запрос.
    Берётся из пула в начале запроса и закрывается по его завершении.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
