import os
import sys
from pathlib import Path

import httpx
import pytest

# Сервис не тянет Postgres в тестах
os.environ.setdefault("DATABASE_URL", "sqlite://")

ROOT = Path(__file__).resolve().parents[3]
SERVICE_DIR = ROOT / "services" / "driverslog"
if str(SERVICE_DIR) not in sys.path:
    sys.path.insert(0, str(SERVICE_DIR))


LOGS_URL = "http://store.test/api/logs"
GEOCODER_URL = "http://geo.test"


def fake_backend(records, address_for=None, logs_response=None):
    """
    MockTransport, изображающий хранилище логов и геокодер.

    address_for(lat, lon) -> строка адреса или None (тогда геокодер отвечает 500).
    logs_response — готовый httpx.Response или исключение вместо списка записей.
    """
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path == "/api/logs":
            if isinstance(logs_response, Exception):
                raise logs_response
            if logs_response is not None:
                return logs_response
            return httpx.Response(200, json=records)

        if request.url.path == "/reverse":
            lat = float(request.url.params["lat"])
            lon = float(request.url.params["lon"])
            address = address_for(lat, lon) if address_for else "123 Main St"
            if address is None:
                return httpx.Response(500, json={"error": "boom"})
            return httpx.Response(200, json={"display_name": address})

        return httpx.Response(404)

    transport = httpx.MockTransport(handler)
    transport.calls = calls
    return transport


@pytest.fixture
def make_pipeline():
    from pipeline import EventPipeline

    def factory(transport):
        return EventPipeline(
            logs_url=LOGS_URL,
            timeout=1.0,
            local_timezone=None,
            transport=transport,
            resolver_options={"base_url": GEOCODER_URL, "max_concurrency": 2},
        )

    return factory
