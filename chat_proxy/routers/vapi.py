"""VAPI-Router: Chat-Proxy und öffentliche Widget-Konfiguration."""
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from chat_proxy.core.body import BodyTooLarge, read_json_body
from chat_proxy.core.config import APP_VERSION
from chat_proxy.core.errors import PAYLOAD_TOO_LARGE, RejectionKind, validation_error
from chat_proxy.core.identity import client_identifier
from chat_proxy.core.models import ConfigResponse
from chat_proxy.core.state import ProxyState
from chat_proxy.core.validator import ValidationResult, validate_chat_input

router = APIRouter(prefix="/api/vapi", tags=["VAPI"])
logger = logging.getLogger(__name__)


@router.post("/chat")
async def chat(request: Request):
    """Leitet eine Widget-Nachricht an die VAPI Chat API weiter.

    Pipeline (jede Stufe kann mit einer Rejection abbrechen):
    1) Rate-Limit (Chat-Policy, pro Client).
    2) Body lesen (höchstens max_body_bytes), Input-Validierung und HTML-Escaping.
    3) Genau ein Upstream-Call; Fehler werden generisch gemeldet.
    CORS wurde bereits in der SecurityMiddleware geprüft.
    """
    state: ProxyState = request.app.state.proxy
    client_id = client_identifier(request, state.settings.trust_forwarded_for)

    decision = state.chat_limiter.hit(client_id)
    if not decision.allowed:
        return decision.rejection.to_response()

    try:
        body = await read_json_body(request, state.settings.max_body_bytes)
    except BodyTooLarge:
        logger.warning("Oversized chat body from client %s", client_id)
        result = ValidationResult(rejection=PAYLOAD_TOO_LARGE)
    except ValueError:
        logger.warning("Malformed JSON body from client %s", client_id)
        result = ValidationResult(rejection=validation_error(RejectionKind.MALFORMED_BODY, "Malformed JSON body"))
    else:
        result = validate_chat_input(body, client_id)

    if not result.ok:
        response = result.rejection.to_response()
        response.headers.update(decision.headers())
        return response

    logger.info("Chat request from client %s, input length: %d", client_id, len(result.request.input))
    upstream_result = await state.upstream.send_chat(result.request)
    if upstream_result.rejection is not None:
        response = upstream_result.rejection.to_response()
    else:
        response = JSONResponse(content=upstream_result.payload)
    response.headers.update(decision.headers())
    return response


@router.get("/config")
async def get_config(request: Request):
    """Gibt nur das zurück, was das Widget braucht. Der private API-Key bleibt serverseitig."""
    state: ProxyState = request.app.state.proxy
    client_id = client_identifier(request, state.settings.trust_forwarded_for)

    decision = state.config_limiter.hit(client_id)
    if not decision.allowed:
        return decision.rejection.to_response()

    logger.info("Config request from client %s", client_id)
    config = ConfigResponse(
        assistantId=state.settings.vapi_assistant_id,
        publicApiKey=state.settings.vapi_public_api_key or None,
        version=APP_VERSION,
    )
    return JSONResponse(content=config.model_dump(exclude_none=True), headers=decision.headers())
