"""System-Router: Health-Check und Security-Event-Logging aus dem Browser."""
import datetime
import logging

from fastapi import APIRouter, Request

from chat_proxy.core.body import BodyTooLarge, read_json_body
from chat_proxy.core.config import APP_VERSION
from chat_proxy.core.errors import PAYLOAD_TOO_LARGE
from chat_proxy.core.identity import client_identifier
from chat_proxy.core.models import HealthResponse, SecurityEvent
from chat_proxy.core.state import ProxyState

router = APIRouter(prefix="/api", tags=["System"])
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness mit minimalen Informationen, ohne Rate-Limit."""
    return HealthResponse(
        status="OK",
        timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(),
        version=APP_VERSION,
    )


@router.post("/security/log")
async def log_security_event(request: Request):
    """Nimmt ein Security-Event entgegen und schreibt es ins Log (keine Persistenz).

    Jede Meldung wird quittiert, auch mit unvollständigem oder kaputtem Body."""
    state: ProxyState = request.app.state.proxy
    client_id = client_identifier(request, state.settings.trust_forwarded_for)
    try:
        body = await read_json_body(request, state.settings.max_body_bytes)
    except BodyTooLarge:
        logger.warning("[SECURITY] Oversized event body from IP: %s", client_id)
        return PAYLOAD_TOO_LARGE.to_response()
    except ValueError:
        logger.warning("[SECURITY] Unparseable event body from IP: %s", client_id)
        body = None

    event = SecurityEvent.from_body(body)
    logger.warning(
        "[SECURITY] Event: %s, IP: %s, URL: %s, Timestamp: %s, Details: %s",
        event.event, client_id, event.url, event.timestamp, event.details,
    )
    return {"status": "logged"}
