from sqlalchemy import Integer, JSON, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime

from database import Base, DRIVERSLOG_SCHEMA


class LogDocument(Base):
    """
    Сохранённый документ события парковки.
    Хранится как есть (JSON), без приведения типов: формат полей
    зависит от источника выгрузки, разбором занимается decoder.
    """
    __tablename__ = "logs"
    __table_args__ = {"schema": DRIVERSLOG_SCHEMA}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    document: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
