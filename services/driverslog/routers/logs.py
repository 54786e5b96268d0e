from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import get_db
from models import LogDocument
from utils.logging import setup_logging

logger = setup_logging()

router = APIRouter(prefix="/api", tags=["logs"])


@router.get("/logs")
async def list_logs(db: Session = Depends(get_db)):
    """
    Отдаёт все сохранённые события парковки как есть (в порядке сохранения).
    Разбор форматов полей — на стороне клиента (pipeline).
    Если у документа нет _id, подставляется id строки.
    """
    try:
        rows = db.query(LogDocument).order_by(LogDocument.id).all()
    except SQLAlchemyError as e:
        logger.error(f"❌ Database error: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch logs"})

    documents = []
    for row in rows:
        doc = dict(row.document)
        doc.setdefault("_id", str(row.id))
        documents.append(doc)

    logger.info(f"📤 Served {len(documents)} log documents")
    return documents
