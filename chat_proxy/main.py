"""FastAPI-Einstiegspunkt für den Secure VAPI Chat Proxy."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chat_proxy.core.config import APP_VERSION, Settings, load_settings
from chat_proxy.core.errors import ROUTE_NOT_FOUND
from chat_proxy.core.identity import client_identifier
from chat_proxy.core.logging_setup import setup_logging
from chat_proxy.core.middleware import RequestLoggingMiddleware, SecurityMiddleware
from chat_proxy.core.state import ProxyState

from chat_proxy.routers import system as system_router
from chat_proxy.routers import vapi as vapi_router

logger = logging.getLogger(__name__)


def create_app(app_settings: Optional[Settings] = None, http_client: Optional[httpx.AsyncClient] = None) -> FastAPI:
    """Baut die App. Ohne app_settings wird aus der Umgebung geladen (Abbruch bei fehlenden Keys)."""
    settings = app_settings or load_settings()
    setup_logging(settings.log_file)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Zustand (Rate-Limit-Zähler, Upstream-Client) lebt nur so lange wie der Prozess.
        app.state.proxy = ProxyState.from_settings(settings, http_client=http_client)
        logger.info(
            "Secure VAPI Proxy started (rate limit chat: %s req/%ss, config: %s req/%ss, "
            "CORS: %s, dev mode: %s)",
            settings.chat_rate_max, settings.chat_rate_window,
            settings.config_rate_max, settings.config_rate_window,
            "permissive" if settings.cors_permissive else ", ".join(settings.origin_list),
            settings.dev_mode,
        )
        yield
        logger.info("Shutting down gracefully")
        await app.state.proxy.aclose()

    app = FastAPI(
        title="Secure VAPI Chat Proxy",
        version=APP_VERSION,
        description="Validating, rate-limited proxy between the website chat widget and the VAPI chat API.",
        lifespan=lifespan,
    )

    # Zuletzt hinzugefügt = äußerste Schicht: Logging sieht auch abgelehnte Anfragen.
    app.add_middleware(SecurityMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            client_id = client_identifier(request, settings.trust_forwarded_for)
            logger.warning("404 - Route not found: %s %s from IP: %s", request.method, request.url.path, client_id)
            return ROUTE_NOT_FOUND.to_response()
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    app.include_router(vapi_router.router)
    app.include_router(system_router.router)
    return app


def run() -> None:
    """Startet den Proxy mit uvicorn (SIGTERM/SIGINT beenden ihn sauber über den Lifespan)."""
    settings = load_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
