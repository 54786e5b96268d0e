from enum import Enum


class DecodeError(ValueError):
    """Сырой документ не удалось привести к Event (нет поля / поле не разбирается)."""


class PipelineErrorKind(str, Enum):
    FETCH_FAILED = "fetch_failed"


class PipelineError(Exception):
    """
    Ошибка уровня всего прохода pipeline.
    Частичный результат в этом случае не отдаётся.
    """

    def __init__(self, kind: PipelineErrorKind, detail: str = ""):
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)
        self.kind = kind
        self.detail = detail
