from fastapi import APIRouter, Depends, HTTPException

from errors import PipelineError
from pipeline import EventPipeline
from schemas import PipelineReport
from utils.logging import setup_logging

logger = setup_logging()

router = APIRouter(prefix="/api/v1", tags=["events"])


def get_pipeline() -> EventPipeline:
    """Новый pipeline на каждый запрос: проходы не делят состояние."""
    return EventPipeline()


@router.get("/events", response_model=PipelineReport)
async def list_events(pipeline: EventPipeline = Depends(get_pipeline)):
    """
    Возвращает события парковки с адресами, упорядоченные по
    carCapturedTimestamp. Документы, которые не удалось разобрать,
    перечислены в rejected; ошибка поиска адреса помечена addressError.
    """
    logger.info("🗺️ Building parking events list")

    try:
        return await pipeline.run_report()
    except PipelineError as e:
        logger.error(f"❌ Pipeline failed: {e}")
        raise HTTPException(status_code=503, detail="logs service unavailable")
