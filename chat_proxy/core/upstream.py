"""Upstream-Client: leitet bereinigte Chat-Eingaben an die VAPI Chat API weiter
und übersetzt deren Antworten/Fehler in ein einheitliches Ergebnis."""
import html
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import httpx

from chat_proxy.core.config import Settings
from chat_proxy.core.errors import (
    UPSTREAM_REJECTED,
    UPSTREAM_UNAVAILABLE,
    UPSTREAM_UNREACHABLE,
    Rejection,
)
from chat_proxy.core.models import ChatRequest

logger = logging.getLogger(__name__)

CHAT_PATH = "/chat"


class UpstreamOutcome(str, Enum):
    OK = "ok"
    REJECTED = "rejected"        # Upstream 4xx -> HTTP 400
    UNAVAILABLE = "unavailable"  # Upstream 5xx -> HTTP 503
    UNREACHABLE = "unreachable"  # Timeout/Netzwerk/kaputte Antwort -> HTTP 500


_REJECTIONS = {
    UpstreamOutcome.REJECTED: UPSTREAM_REJECTED,
    UpstreamOutcome.UNAVAILABLE: UPSTREAM_UNAVAILABLE,
    UpstreamOutcome.UNREACHABLE: UPSTREAM_UNREACHABLE,
}


@dataclass(frozen=True)
class UpstreamResult:
    outcome: UpstreamOutcome
    payload: Any = None
    status_code: Optional[int] = None

    @property
    def rejection(self) -> Optional[Rejection]:
        return _REJECTIONS.get(self.outcome)


def escape_output(payload: Any) -> Any:
    """HTML-escaped die textuellen content-Felder einer output-Liste.

    Verhindert, dass Markup aus der Upstream-Antwort ungefiltert im Browser landet."""
    if not isinstance(payload, dict) or not isinstance(payload.get("output"), list):
        return payload

    escaped = []
    for item in payload["output"]:
        if isinstance(item, dict) and isinstance(item.get("content"), str):
            item = {**item, "content": html.escape(item["content"], quote=True)}
        escaped.append(item)
    return {**payload, "output": escaped}


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.vapi_base_url,
        timeout=httpx.Timeout(settings.upstream_timeout),
    )


class VapiClient:
    """Kapselt genau einen Upstream-Versuch pro Client-Anfrage (kein Retry).

    Assistant-ID und API-Key stammen ausschließlich aus der Server-Konfiguration."""

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> None:
        self.assistant_id = settings.vapi_assistant_id
        self._api_key = settings.vapi_api_key
        self.user_agent = settings.upstream_user_agent
        self.timeout = settings.upstream_timeout
        self.client = http_client or build_http_client(settings)

    def _build_body(self, request: ChatRequest) -> dict:
        body = {"assistantId": self.assistant_id, "input": request.input}
        if request.previous_chat_id:
            body["previousChatId"] = request.previous_chat_id
        return body

    async def send_chat(self, request: ChatRequest) -> UpstreamResult:
        """Schickt die Anfrage an POST /chat.

        Ablauf:
        - Timeout (Standard 30s) bricht den Call ab und gilt als Fehler.
        - Status >= 500 -> UNAVAILABLE, sonstige Nicht-2xx -> REJECTED.
          Der Upstream-Body wird nur serverseitig geloggt.
        - 2xx mit gültigem JSON -> OK, output[].content escaped.
        """
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "User-Agent": self.user_agent,
        }
        try:
            response = await self.client.post(
                CHAT_PATH,
                json=self._build_body(request),
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as exc:
            logger.error("VAPI API timeout after %ss: %r", self.timeout, exc)
            return UpstreamResult(UpstreamOutcome.UNREACHABLE)
        except httpx.HTTPError as exc:
            logger.error("VAPI API transport error: %r", exc)
            return UpstreamResult(UpstreamOutcome.UNREACHABLE)

        if not response.is_success:
            logger.error(
                "VAPI API error: %s %s %s",
                response.status_code, response.reason_phrase, response.text,
            )
            if response.status_code >= 500:
                return UpstreamResult(UpstreamOutcome.UNAVAILABLE, status_code=response.status_code)
            return UpstreamResult(UpstreamOutcome.REJECTED, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            logger.error("VAPI API returned malformed JSON: %s", exc)
            return UpstreamResult(UpstreamOutcome.UNREACHABLE, status_code=response.status_code)

        return UpstreamResult(UpstreamOutcome.OK, payload=escape_output(data), status_code=response.status_code)

    async def aclose(self) -> None:
        await self.client.aclose()
