# services/driverslog/geocoding.py

import asyncio
from typing import Optional

import httpx

from config import settings
from utils.logging import setup_logging

logger = setup_logging()


class AddressResolver:
    """
    Reverse geocoding координат в адрес через Nominatim-совместимый API.

    resolve() никогда не бросает исключений на сетевых/HTTP/JSON ошибках:
    при любой неудаче возвращается None, чтобы один неудачный запрос
    не ронял обработку всей пачки событий. Повторов и кэша нет.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = settings.GEOCODER_URL,
        user_agent: str = settings.GEOCODER_USER_AGENT,
        zoom: int = settings.GEOCODER_ZOOM,
        max_concurrency: int = settings.GEOCODER_MAX_CONCURRENCY,
    ):
        self.client = client
        self.url = base_url.rstrip("/") + "/reverse"
        self.user_agent = user_agent
        self.zoom = zoom
        # Ограничение одновременных запросов к провайдеру (0 — без ограничения)
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency > 0 else None

    async def resolve(self, lat: float, lon: float) -> Optional[str]:
        if self._semaphore is None:
            return await self._lookup(lat, lon)
        async with self._semaphore:
            return await self._lookup(lat, lon)

    async def _lookup(self, lat: float, lon: float) -> Optional[str]:
        params = {
            "format": "json",
            "lat": lat,
            "lon": lon,
            "zoom": self.zoom,
            "addressdetails": 1,
        }
        try:
            resp = await self.client.get(
                self.url,
                params=params,
                headers={"User-Agent": self.user_agent},
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.RequestError as e:
            logger.warning(f"🌍 Geocoder unreachable for ({lat}, {lon}): {e}")
            return None
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"⚠️ Geocoder returned HTTP {e.response.status_code} for ({lat}, {lon})"
            )
            return None
        except ValueError as e:
            logger.warning(f"⚠️ Geocoder sent malformed JSON for ({lat}, {lon}): {e}")
            return None
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"⚠️ Geocoder request failed for ({lat}, {lon}): {e}")
            return None

        address = data.get("display_name") if isinstance(data, dict) else None
        if not isinstance(address, str) or not address.strip():
            logger.warning(f"⚠️ Geocoder response has no display_name for ({lat}, {lon})")
            return None

        logger.debug(f"📍 ({lat}, {lon}) -> {address}")
        return address
