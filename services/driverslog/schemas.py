from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict


class Event(BaseModel):
    """
    Каноническое событие парковки после разбора сырого документа.
    Наружу отдаётся с camelCase-именами полей (как в исходном API).
    """
    id: str = Field(description="Идентификатор документа в хранилище")
    latitude: float = Field(ge=-90.0, le=90.0, description="Широта, градусы")
    longitude: float = Field(ge=-180.0, le=180.0, description="Долгота, градусы")
    status: str = Field(description="Статус от источника, без валидации")
    timestamp: int = Field(description="Время события по устройству, epoch ms")
    car_captured_timestamp: int = Field(
        alias="carCapturedTimestamp",
        description="Время события по автомобилю, epoch ms (ключ сортировки)",
    )
    address: Optional[str] = Field(
        default=None,
        description="Адрес, если reverse geocoding отработал успешно",
    )
    address_error: bool = Field(
        default=False,
        alias="addressError",
        description="True, если поиск адреса запускался и завершился ошибкой",
    )

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class RejectedRecord(BaseModel):
    """Сырой документ, который не удалось разобрать (в список событий не попадает)."""
    index: int = Field(description="Позиция документа в ответе хранилища")
    id: Optional[str] = Field(default=None, description="Идентификатор, если его удалось прочитать")
    reason: str = Field(description="Причина отказа")


class PipelineReport(BaseModel):
    """Результат одного прохода pipeline: упорядоченные события + отброшенные документы."""
    events: List[Event]
    rejected: List[RejectedRecord] = Field(default_factory=list)
    count: int

    model_config = ConfigDict(populate_by_name=True)
