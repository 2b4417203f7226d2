"""Liest Request-Bodies mit Obergrenze, auch ohne Content-Length (chunked)."""
import json
from typing import Any

from starlette.requests import Request


class BodyTooLarge(Exception):
    """Der Body überschreitet max_body_bytes."""


async def read_body(request: Request, limit: int) -> bytes:
    received = bytearray()
    async for chunk in request.stream():
        received.extend(chunk)
        if len(received) > limit:
            raise BodyTooLarge(f"body exceeds {limit} bytes")
    return bytes(received)


async def read_json_body(request: Request, limit: int) -> Any:
    """Liest den Body als JSON; ein leerer Body zählt als leeres Objekt.

    Wirft BodyTooLarge oder ValueError (kein gültiges JSON)."""
    raw = await read_body(request, limit)
    if not raw.strip():
        return {}
    return json.loads(raw)
