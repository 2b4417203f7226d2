"""Edge-Middleware: Request-Logging, CORS-Guard, Body-Limit, globale
Fehlerbehandlung und Security-Header für jede Antwort."""
import logging
import traceback

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from chat_proxy.core.errors import PAYLOAD_TOO_LARGE, UNEXPECTED_ERROR
from chat_proxy.core.headers import security_headers
from chat_proxy.core.identity import client_identifier
from chat_proxy.core.state import ProxyState

logger = logging.getLogger(__name__)

USER_AGENT_LOG_LENGTH = 100


def unexpected_error_response(exc: Exception, dev_mode: bool) -> Response:
    """Generische 500-Antwort; Details und Stacktrace nur im Dev-Modus."""
    if not dev_mode:
        return UNEXPECTED_ERROR.to_response()
    return JSONResponse(
        status_code=UNEXPECTED_ERROR.status_code,
        content={
            "error": str(exc) or UNEXPECTED_ERROR.message,
            "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        },
    )


def _declared_body_too_large(request: Request, limit: int) -> bool:
    content_length = request.headers.get("content-length")
    if not content_length:
        return False
    try:
        return int(content_length) > limit
    except ValueError:
        return False


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        state: ProxyState = request.app.state.proxy
        client_id = client_identifier(request, state.settings.trust_forwarded_for)
        user_agent = request.headers.get("user-agent", "Unknown")
        logger.info(
            "%s %s - IP: %s - UA: %s",
            request.method, request.url.path, client_id, user_agent[:USER_AGENT_LOG_LENGTH],
        )
        return await call_next(request)


class SecurityMiddleware(BaseHTTPMiddleware):
    """Reihenfolge: Preflight -> CORS-Guard -> Body-Limit -> Route -> Header."""

    async def dispatch(self, request: Request, call_next):
        state: ProxyState = request.app.state.proxy
        origin = request.headers.get("origin")

        if request.method == "OPTIONS":
            # Preflight ist immer 200 ohne Body; ohne Allow-Origin blockt der Browser selbst.
            response = Response(status_code=200, headers=state.cors_guard.preflight_headers(origin))
            return self._finalize(response, state, origin)

        rejection = state.cors_guard.check(origin)
        if rejection is None and _declared_body_too_large(request, state.settings.max_body_bytes):
            logger.warning("Rejected oversized body on %s %s", request.method, request.url.path)
            rejection = PAYLOAD_TOO_LARGE

        if rejection is not None:
            response = rejection.to_response()
        else:
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.exception("Global error handler: %s", exc)
                response = unexpected_error_response(exc, state.settings.dev_mode)

        return self._finalize(response, state, origin)

    @staticmethod
    def _finalize(response: Response, state: ProxyState, origin) -> Response:
        response.headers.update(security_headers(state.settings.vapi_base_url))
        response.headers.update(state.cors_guard.response_headers(origin))
        return response
