"""API-Modelle für den Secure VAPI Chat Proxy: bereinigte Chat-Anfragen,
Security-Events aus dem Widget und die öffentlichen Antworten."""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Validierte und HTML-escapte Chat-Eingabe, bereit für den Upstream."""

    model_config = ConfigDict(populate_by_name=True)

    input: str
    previous_chat_id: Optional[str] = Field(None, alias="previousChatId")


class SecurityEvent(BaseModel):
    """Vom Browser gemeldetes Sicherheitsereignis; wird nur geloggt.

    Alle Felder sind optional und locker typisiert: auch unvollständige
    Meldungen sollen im Audit-Log landen."""

    event: Any = None
    details: Any = None
    timestamp: Any = None
    url: Any = None

    @classmethod
    def from_body(cls, body: Any) -> "SecurityEvent":
        if isinstance(body, dict):
            return cls.model_validate(body)
        return cls(details=body)


class ConfigResponse(BaseModel):
    """Nicht-geheime Widget-Konfiguration. Der private API-Key hat hier kein Feld."""

    assistantId: str
    publicApiKey: Optional[str] = None
    hasSecureBackend: bool = True
    version: str


class HealthResponse(BaseModel):
    status: str = "OK"
    timestamp: str
    version: str
