# services/driverslog/main.py

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from utils.logging import setup_logging
from database import engine, ensure_schema
from models import Base
from config import settings
from routers import logs as logs_router
from routers import events as events_router


# --- Логирование ---
logger = setup_logging()

# --- Приложение FastAPI ---
app = FastAPI(
    title=settings.SERVICE_NAME,
    version=settings.VERSION,
    description=(
        "Driver's Log — журнал парковок автомобиля: сохранённые события "
        "и упорядоченный список с адресами."
    ),
)

# --- Метрики Prometheus ---
Instrumentator().instrument(app).expose(app, include_in_schema=False)


# --- События приложения ---
@app.on_event("startup")
def startup_event():
    """Создаёт схему и таблицу driverslog при запуске."""
    ensure_schema()
    Base.metadata.create_all(bind=engine)
    logger.info("🚗 driverslog started and schema ensured.")


# --- Health & readiness ---
@app.get("/health", tags=["system"])
async def health():
    return {"status": "ok", "service": "driverslog"}


@app.get("/ready", tags=["system"])
async def ready():
    return {"status": "ready"}


@app.get("/", include_in_schema=False)
async def root():
    return {"message": "Driver's Log Service is operational"}


# --- Маршруты доменной логики ---
app.include_router(logs_router.router)
app.include_router(events_router.router)
