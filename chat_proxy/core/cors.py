"""CORS-Guard: lässt Cross-Origin-Anfragen nur von Origins der Allow-List zu."""
import logging
from typing import Dict, Iterable, Optional

from chat_proxy.core.errors import CORS_DENIED, Rejection

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "POST", "OPTIONS")
ALLOWED_HEADERS = ("Content-Type", "Authorization")


class CorsGuard:
    """Entscheidet anhand des Origin-Headers über allow/deny.

    - Kein Origin (curl, Server-zu-Server, Apps): immer erlaubt.
    - Origin exakt in der Allow-List: erlaubt.
    - Sonst: abgelehnt und geloggt.
    Im permissiven Modus ("*") ist jeder Origin erlaubt.
    """

    def __init__(self, allowed_origins: Iterable[str], permissive: bool = False) -> None:
        self.allowed_origins = frozenset(allowed_origins)
        self.permissive = permissive

    def is_allowed(self, origin: Optional[str]) -> bool:
        if not origin:
            return True
        return self.permissive or origin in self.allowed_origins

    def check(self, origin: Optional[str]) -> Optional[Rejection]:
        if self.is_allowed(origin):
            return None
        logger.warning("CORS blocked for origin: %s", origin)
        return CORS_DENIED

    def response_headers(self, origin: Optional[str]) -> Dict[str, str]:
        """CORS-Header für die Antwort auf eine Anfrage mit diesem Origin."""
        if self.permissive:
            return {"Access-Control-Allow-Origin": "*"}
        if not origin or origin not in self.allowed_origins:
            return {}
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "true",
            "Vary": "Origin",
        }

    def preflight_headers(self, origin: Optional[str]) -> Dict[str, str]:
        headers = self.response_headers(origin)
        if headers:
            headers["Access-Control-Allow-Methods"] = ", ".join(ALLOWED_METHODS)
            headers["Access-Control-Allow-Headers"] = ", ".join(ALLOWED_HEADERS)
        return headers
