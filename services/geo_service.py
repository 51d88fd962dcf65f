import logging
from typing import Optional, Tuple

import requests
from starlette.concurrency import run_in_threadpool

from core.config import settings

KAKAO_ADDRESS_URL = "https://dapi.kakao.com/v2/local/search/address.json"

logger = logging.getLogger(__name__)


class GeoLookupError(Exception):
    """Адрес не удалось превратить в координаты."""


def _proxies() -> Optional[dict[str, str]]:
    if settings.PROXY:
        return {"http": settings.PROXY, "https": settings.PROXY}
    return None


def _lookup(address: str) -> Tuple[float, float]:
    try:
        resp = requests.get(
            KAKAO_ADDRESS_URL,
            headers={"Authorization": f"KakaoAK {settings.KAKAO_API_KEY}"},
            params={"query": address},
            proxies=_proxies(),
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        raise GeoLookupError(f"geo lookup failed for {address!r}: {e}") from e

    try:
        # x: долгота, y: широта
        first_document = data["documents"][0]
        lon = float(first_document["x"])
        lat = float(first_document["y"])
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise GeoLookupError(f"no coordinates for {address!r}") from e
    return lat, lon


async def resolve(address: str) -> Tuple[float, float]:
    """Возвращает (широта, долгота) для текстового адреса."""
    return await run_in_threadpool(_lookup, address)
