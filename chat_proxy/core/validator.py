"""Input-Validator des Chat-Proxys: prüft und normalisiert Widget-Eingaben,
bevor irgendetwas davon den Upstream erreicht.

Reihenfolge der Regeln (erster Treffer gewinnt):
1. input vorhanden und vom Typ String
2. nach trim() nicht leer
3. höchstens 500 Zeichen
4. kein Markup/Script (<script, javascript:, on<wort>=)
5. kein eval( / Function(
6. previousChatId (falls gesetzt) ist UUID oder alphanumerisch
Danach wird die Eingabe HTML-escaped.
"""
import html
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from chat_proxy.core.errors import Rejection, RejectionKind, validation_error
from chat_proxy.core.models import ChatRequest

logger = logging.getLogger(__name__)

MAX_INPUT_LENGTH = 500
# Länge des Eingabe-Ausschnitts im Audit-Log.
AUDIT_SNIPPET_LENGTH = 100

SUSPICIOUS_MARKUP_PATTERN = re.compile(r"<script|javascript:|on\w+=", re.IGNORECASE)
CODE_INJECTION_MARKERS = ("eval(", "Function(")
UUID_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
)
ALPHANUMERIC_PATTERN = re.compile(r"[A-Za-z0-9]+")

INVALID_INPUT_MESSAGE = "Invalid input detected"


@dataclass(frozen=True)
class ValidationResult:
    """Entweder eine bereinigte Anfrage oder eine Ablehnung, nie beides."""

    request: Optional[ChatRequest] = None
    rejection: Optional[Rejection] = None

    @property
    def ok(self) -> bool:
        return self.rejection is None


def is_valid_chat_id(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    return bool(UUID_PATTERN.fullmatch(value) or ALPHANUMERIC_PATTERN.fullmatch(value))


def validate_chat_input(body: Any, client_id: str) -> ValidationResult:
    """Prüft einen rohen Request-Body und liefert eine bereinigte ChatRequest."""
    if not isinstance(body, dict):
        body = {}

    raw_input = body.get("input")
    if not isinstance(raw_input, str):
        return ValidationResult(rejection=validation_error(
            RejectionKind.MISSING_INPUT, "Valid input string is required"))

    trimmed = raw_input.strip()
    if not trimmed:
        return ValidationResult(rejection=validation_error(
            RejectionKind.EMPTY_INPUT, "Input cannot be empty"))

    if len(trimmed) > MAX_INPUT_LENGTH:
        return ValidationResult(rejection=validation_error(
            RejectionKind.INPUT_TOO_LONG, f"Input too long (max {MAX_INPUT_LENGTH} characters)"))

    if SUSPICIOUS_MARKUP_PATTERN.search(trimmed):
        logger.warning(
            "XSS attempt detected from client %s, input: %s",
            client_id, trimmed[:AUDIT_SNIPPET_LENGTH],
        )
        return ValidationResult(rejection=validation_error(
            RejectionKind.SUSPICIOUS_MARKUP, INVALID_INPUT_MESSAGE))

    if any(marker in trimmed for marker in CODE_INJECTION_MARKERS):
        logger.warning(
            "Code injection attempt from client %s, input: %s",
            client_id, trimmed[:AUDIT_SNIPPET_LENGTH],
        )
        return ValidationResult(rejection=validation_error(
            RejectionKind.CODE_INJECTION_SUSPECTED, INVALID_INPUT_MESSAGE))

    # Leere/None-IDs gelten als "nicht gesetzt".
    previous_chat_id = body.get("previousChatId")
    if previous_chat_id in (None, ""):
        previous_chat_id = None
    elif not is_valid_chat_id(previous_chat_id):
        return ValidationResult(rejection=validation_error(
            RejectionKind.INVALID_CHAT_ID, "Invalid chat ID format"))

    sanitized = ChatRequest(input=html.escape(trimmed, quote=True), previous_chat_id=previous_chat_id)
    return ValidationResult(request=sanitized)
