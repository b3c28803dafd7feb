"""Geocoding proxy.

Forwards forward (address -> coordinates) and reverse (coordinates -> address)
lookups to OpenStreetMap Nominatim, so the browser never calls it directly.
Responses are cached in Redis when it is configured.
"""

import json
import logging
from typing import Optional

import httpx
import redis
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..config import GEOCODE_RPM, NOMINATIM_BASE_URL, NOMINATIM_REFERER, NOMINATIM_USER_AGENT
from ..rate_limiter import create_rate_limiter, get_redis_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Geocoding"])

rate_limit_geocode = create_rate_limiter(
    limit=GEOCODE_RPM,
    window_seconds=60,
    key_prefix="geocode",
    use_ip=True,
)

CACHE_SECONDS = 24 * 3600
REQUEST_TIMEOUT_SECONDS = 10.0


def nominatim_request(
    address: Optional[str], lat: Optional[str], lon: Optional[str]
) -> tuple[str, dict]:
    if address:
        return f"{NOMINATIM_BASE_URL}/search", {"format": "json", "q": address, "limit": 1}
    return (
        f"{NOMINATIM_BASE_URL}/reverse",
        {"format": "json", "lat": lat, "lon": lon, "zoom": 18, "addressdetails": 1},
    )


def _cache_get(key: str):
    try:
        client = get_redis_client()
        cached = client.get(key) if client else None
        return json.loads(cached) if cached else None
    except redis.RedisError as e:
        logger.warning(f"Redis cache read error: {e}")
        return None


def _cache_set(key: str, data) -> None:
    try:
        client = get_redis_client()
        if client:
            client.setex(key, CACHE_SECONDS, json.dumps(data))
    except redis.RedisError as e:
        logger.warning(f"Redis cache write error: {e}")


@router.get("/geocode")
async def geocode(
    address: Optional[str] = None,
    lat: Optional[str] = None,
    lon: Optional[str] = None,
    _: None = Depends(rate_limit_geocode),
):
    """
    ``?address=...`` searches for the best match; ``?lat=..&lon=..`` reverse
    geocodes. The upstream JSON is returned unchanged.
    """
    address = (address or "").strip() or None
    if not address and (not lat or not lon):
        logger.info("Missing parameters: lat/lon or address required")
        return JSONResponse({"error": "Missing parameters"}, status_code=400)

    url, params = nominatim_request(address, lat, lon)
    cache_key = f"geo:{'search' if address else 'reverse'}:{address.lower() if address else f'{lat},{lon}'}"

    cached = _cache_get(cache_key)
    if cached is not None:
        return cached

    headers = {
        # Nominatim blocks generic client user agents
        "User-Agent": NOMINATIM_USER_AGENT,
        "Referer": NOMINATIM_REFERER,
        "Accept": "application/json",
    }

    try:
        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
            resp = await client.get(url, params=params, headers=headers)
            if resp.status_code >= 400:
                logger.error(f"Nominatim API error: {resp.status_code} {resp.text[:200]}")
                raise RuntimeError(f"Nominatim API error: {resp.status_code} {resp.reason_phrase}")
            data = resp.json()
    except (httpx.HTTPError, RuntimeError, ValueError) as e:
        logger.error(f"❌ Geocoding failed: {e}")
        return JSONResponse(
            {"error": "Failed to fetch location data", "details": str(e)}, status_code=500
        )

    # Nominatim reports some failures as 200 with an error field
    if isinstance(data, dict) and data.get("error"):
        logger.warning(f"Nominatim returned application error: {data['error']}")
        return JSONResponse({"error": data["error"]}, status_code=404)

    _cache_set(cache_key, data)
    return data
