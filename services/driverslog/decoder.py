# services/driverslog/decoder.py

"""
Разбор сырых документов хранилища в Event.

В продакшене встречаются две формы одних и тех же полей:
  - MongoDB Extended JSON (прямая выгрузка драйвера):
      {"$oid": "..."}, {"$numberDouble": "48.1"},
      {"$date": {"$numberLong": "1700000000000"}}
  - уже «плоский» JSON: строки ISO-8601, обычные числа и строки.

Вместо ветвления по каждому полю используется небольшой набор
типизированных декодеров, которые применяются одинаково ко всем полям.
Все функции чистые: без побочных эффектов и обращения к сети.
"""

import math
import re
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo

from errors import DecodeError
from schemas import Event

# Логическое поле -> допустимые ключи в документе (берётся первый найденный)
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("_id", "id"),
    "latitude": ("latitude", "lat"),
    "longitude": ("longitude", "lon", "lng"),
    "status": ("status",),
    "timestamp": ("timestamp", "ts"),
    "car_captured_timestamp": ("carCapturedTimestamp", "carTs"),
}

# Обёртки Extended JSON для чисел
NUMBER_WRAPPERS = ("$numberDouble", "$numberDecimal", "$numberInt", "$numberLong")

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ONE_MS = timedelta(milliseconds=1)

# Голое число миллисекунд в строке (только ASCII-цифры)
EPOCH_MILLIS_RE = re.compile(r"-?[0-9]+\Z")


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """IANA-имя зоны -> tzinfo; None означает локальную зону хоста."""
    if not name:
        return None
    return ZoneInfo(name)


def _pick(raw: Mapping, field: str) -> Any:
    for key in FIELD_ALIASES[field]:
        value = raw.get(key)
        if value is not None:
            return value
    raise DecodeError(f"missing field '{field}'")


def _unwrap_number(value: Mapping, field: str) -> Any:
    for key in NUMBER_WRAPPERS:
        if key in value:
            return value[key]
    raise DecodeError(f"unsupported wrapper for '{field}': {sorted(value)}")


# ---------- Типизированные декодеры ----------


def decode_float(value: Any, field: str = "value") -> float:
    """
    Число с плавающей точкой из обёртки ($numberDouble и т.п.),
    голого числа или числовой строки. NaN/Infinity отвергаются.
    """
    if isinstance(value, Mapping):
        value = _unwrap_number(value, field)

    if isinstance(value, bool):
        raise DecodeError(f"'{field}' must be a number, got bool")

    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            raise DecodeError(f"'{field}' is not a number: {value!r}") from None
    else:
        raise DecodeError(f"'{field}' has unsupported type {type(value).__name__}")

    if not math.isfinite(result):
        raise DecodeError(f"'{field}' is not finite: {value!r}")
    return result


def parse_iso_millis(text: str, tz: Optional[tzinfo] = None) -> int:
    """
    ISO-8601 строка -> epoch ms.

    Строка со смещением или 'Z' задаёт абсолютный момент.
    Дата-время без смещения трактуется в зоне tz (по умолчанию — локальной).
    Только дата (YYYY-MM-DD) — полночь UTC.
    """
    s = text.strip()
    try:
        if "T" not in s and " " not in s and ":" not in s:
            d = date.fromisoformat(s)
            dt = datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
        else:
            if s.endswith(("Z", "z")):
                s = s[:-1] + "+00:00"
            dt = datetime.fromisoformat(s)
    except ValueError:
        raise DecodeError(f"invalid ISO-8601 date: {text!r}") from None

    try:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=tz) if tz is not None else dt.astimezone()
        return (dt - EPOCH) // ONE_MS
    except (ValueError, OverflowError):
        raise DecodeError(f"date out of range: {text!r}") from None


def _millis_from_scalar(value: Any, field: str, tz: Optional[tzinfo]) -> int:
    if isinstance(value, bool):
        raise DecodeError(f"'{field}' must be a timestamp, got bool")

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        if not math.isfinite(value):
            raise DecodeError(f"'{field}' is not finite: {value!r}")
        return int(value)

    if isinstance(value, str):
        stripped = value.strip()
        if EPOCH_MILLIS_RE.match(stripped):
            try:
                return int(stripped)
            except ValueError:
                raise DecodeError(f"'{field}' is not a valid epoch: {value!r}") from None
        return parse_iso_millis(stripped, tz)

    raise DecodeError(f"'{field}' has unsupported type {type(value).__name__}")


def decode_epoch_millis(value: Any, field: str = "timestamp", tz: Optional[tzinfo] = None) -> int:
    """
    Момент времени -> целое число миллисекунд с эпохи.

    Поддерживаются {"$date": {"$numberLong": "..."}}, {"$date": <ms>},
    {"$date": "<ISO>"}, {"$numberLong": "..."}, голые числа (ms)
    и ISO-строки.
    """
    if isinstance(value, Mapping):
        if "$date" in value:
            value = value["$date"]
            if isinstance(value, Mapping):
                value = _unwrap_number(value, field)
        else:
            value = _unwrap_number(value, field)

    return _millis_from_scalar(value, field, tz)


def decode_id(value: Any) -> str:
    """Идентификатор из {"$oid": "..."} или голой строки/целого."""
    if isinstance(value, Mapping):
        if "$oid" not in value:
            raise DecodeError(f"unsupported id wrapper: {sorted(value)}")
        value = value["$oid"]

    if isinstance(value, bool):
        raise DecodeError("id must be a string, got bool")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()

    raise DecodeError(f"invalid id: {value!r}")


# ---------- Документ целиком ----------


def record_identity(raw: Any) -> Optional[str]:
    """Идентификатор документа, если его удаётся прочитать (для отчёта об отказе)."""
    if not isinstance(raw, Mapping):
        return None
    try:
        return decode_id(_pick(raw, "id"))
    except DecodeError:
        return None


def decode_record(raw: Any, tz: Optional[tzinfo] = None) -> Event:
    """
    Сырой документ -> Event.
    Бросает DecodeError, если обязательного поля нет или его не разобрать.
    """
    if not isinstance(raw, Mapping):
        raise DecodeError(f"record must be an object, got {type(raw).__name__}")

    event_id = decode_id(_pick(raw, "id"))

    latitude = decode_float(_pick(raw, "latitude"), "latitude")
    if not -90.0 <= latitude <= 90.0:
        raise DecodeError(f"latitude out of range: {latitude}")

    longitude = decode_float(_pick(raw, "longitude"), "longitude")
    if not -180.0 <= longitude <= 180.0:
        raise DecodeError(f"longitude out of range: {longitude}")

    status = _pick(raw, "status")

    return Event(
        id=event_id,
        latitude=latitude,
        longitude=longitude,
        status=status if isinstance(status, str) else str(status),
        timestamp=decode_epoch_millis(_pick(raw, "timestamp"), "timestamp", tz),
        car_captured_timestamp=decode_epoch_millis(
            _pick(raw, "car_captured_timestamp"), "carCapturedTimestamp", tz
        ),
    )
