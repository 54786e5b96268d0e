# services/driverslog/pipeline.py

import asyncio
from typing import Any, List, Optional, Tuple

import httpx

from config import settings
from decoder import decode_record, record_identity, resolve_timezone
from errors import DecodeError, PipelineError, PipelineErrorKind
from geocoding import AddressResolver
from schemas import Event, PipelineReport, RejectedRecord
from utils.logging import setup_logging

logger = setup_logging()


def sort_events(events: List[Event]) -> List[Event]:
    """Стабильная сортировка по carCapturedTimestamp (время парковки по машине)."""
    return sorted(events, key=lambda e: e.car_captured_timestamp)


def decode_batch(raw_records: List[Any], tz=None) -> Tuple[List[Event], List[RejectedRecord]]:
    """
    Разбирает пачку сырых документов в исходном порядке.
    Неразборчивый документ не прерывает пачку: он попадает в rejected.
    """
    events: List[Event] = []
    rejected: List[RejectedRecord] = []

    for index, raw in enumerate(raw_records):
        try:
            events.append(decode_record(raw, tz))
        except DecodeError as e:
            item = RejectedRecord(index=index, id=record_identity(raw), reason=str(e))
            logger.warning(f"🧩 Record #{index} (id={item.id}) skipped: {e}")
            rejected.append(item)

    return events, rejected


class EventPipeline:
    """
    Один проход: fetch -> decode -> enrich (адреса) -> sort.

    Ошибка получения документов фатальна для прохода (PipelineError),
    ошибки разбора и поиска адреса локальны для конкретного события.
    Каждый проход открывает собственный httpx-клиент и закрывает его в конце.
    """

    def __init__(
        self,
        logs_url: str = settings.LOGS_API_URL,
        timeout: float = settings.REQUEST_TIMEOUT,
        local_timezone: Optional[str] = settings.LOCAL_TIMEZONE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        resolver_options: Optional[dict] = None,
    ):
        self.logs_url = logs_url
        self.timeout = timeout
        self.tz = resolve_timezone(local_timezone)
        self.transport = transport
        self.resolver_options = resolver_options or {}

    async def run(self) -> List[Event]:
        report = await self.run_report()
        return report.events

    async def run_report(self) -> PipelineReport:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            # 1. Получаем сырые документы
            raw_records = await self._fetch(client)

            # 2. Разбираем
            events, rejected = decode_batch(raw_records, self.tz)

            # 3. Параллельно ищем адреса, дожидаемся всех
            resolver = AddressResolver(client, **self.resolver_options)
            enriched = await asyncio.gather(
                *(self._enrich(resolver, event) for event in events)
            )

        # 4. Упорядочиваем
        ordered = sort_events(list(enriched))
        failed = sum(1 for e in ordered if e.address_error)

        logger.info(
            f"🚗 Pipeline finished: events={len(ordered)}, "
            f"rejected={len(rejected)}, address_errors={failed}"
        )
        return PipelineReport(events=ordered, rejected=rejected, count=len(ordered))

    async def _fetch(self, client: httpx.AsyncClient) -> List[Any]:
        try:
            resp = await client.get(self.logs_url)
            resp.raise_for_status()
            data = resp.json()
        except httpx.RequestError as e:
            logger.error(f"❌ Logs store unreachable: {e}")
            raise PipelineError(PipelineErrorKind.FETCH_FAILED, str(e)) from e
        except httpx.HTTPStatusError as e:
            logger.error(f"❌ Logs store returned HTTP {e.response.status_code}")
            raise PipelineError(
                PipelineErrorKind.FETCH_FAILED, f"HTTP {e.response.status_code}"
            ) from e
        except ValueError as e:
            logger.error(f"❌ Logs store sent malformed JSON: {e}")
            raise PipelineError(PipelineErrorKind.FETCH_FAILED, "malformed JSON body") from e

        if not isinstance(data, list):
            logger.error(f"❌ Logs store sent {type(data).__name__} instead of a list")
            raise PipelineError(PipelineErrorKind.FETCH_FAILED, "body is not a JSON array")

        logger.debug(f"📥 Fetched {len(data)} raw records from {self.logs_url}")
        return data

    @staticmethod
    async def _enrich(resolver: AddressResolver, event: Event) -> Event:
        address = await resolver.resolve(event.latitude, event.longitude)
        if address is None:
            return event.model_copy(update={"address_error": True})
        return event.model_copy(update={"address": address})
