"""Konfigurationsmodul für den Secure VAPI Chat Proxy: lädt Upstream-Keys,
CORS-Allow-List und Rate-Limits aus Umgebungsvariablen via Pydantic-Settings."""
import logging
from typing import List

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

APP_VERSION = "2.0.0"

# Standard-Origins der Website (per ALLOWED_ORIGINS überschreibbar).
DEFAULT_ALLOWED_ORIGINS = "http://localhost:3000,https://your-domain.com,https://coldlavaai.github.io"


class Settings(BaseSettings):
    """Hält alle Werte, die der Proxy zur Laufzeit benötigt.

    VAPI_API_KEY und VAPI_ASSISTANT_ID sind Pflicht; fehlen sie, startet der
    Prozess nicht (siehe load_settings)."""

    model_config = SettingsConfigDict(env_file=".env", populate_by_name=True, extra="ignore")

    vapi_api_key: str = Field(..., alias="VAPI_API_KEY", min_length=1)  # Geheim, nie in Responses.
    vapi_assistant_id: str = Field(..., alias="VAPI_ASSISTANT_ID", min_length=1)
    vapi_public_api_key: str = Field("", alias="VAPI_PUBLIC_API_KEY")  # Nur für Voice im Widget.
    vapi_base_url: str = Field("https://api.vapi.ai", alias="VAPI_BASE_URL")
    upstream_timeout: float = Field(30.0, alias="UPSTREAM_TIMEOUT")
    upstream_user_agent: str = Field("Green-Star-Solar-Widget/2.0", alias="UPSTREAM_USER_AGENT")

    port: int = Field(3001, alias="PORT")
    allowed_origins: str = Field(DEFAULT_ALLOWED_ORIGINS, alias="ALLOWED_ORIGINS")
    dev_mode: bool = Field(False, alias="DEV_MODE")
    trust_forwarded_for: bool = Field(False, alias="TRUST_FORWARDED_FOR")

    chat_rate_window: int = Field(60, alias="CHAT_RATE_WINDOW")
    chat_rate_max: int = Field(20, alias="CHAT_RATE_MAX")
    config_rate_window: int = Field(300, alias="CONFIG_RATE_WINDOW")
    config_rate_max: int = Field(50, alias="CONFIG_RATE_MAX")

    max_body_bytes: int = Field(1024 * 1024, alias="MAX_BODY_BYTES")
    log_file: str = Field("vapi_proxy.log", alias="LOG_FILE")

    @property
    def origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def cors_permissive(self) -> bool:
        # "*" schaltet die Allow-List ab (z.B. für lokale Demos).
        return self.origin_list == ["*"]


def load_settings() -> Settings:
    """Lädt die Settings und bricht den Start bei fehlender Pflicht-Konfiguration ab."""
    try:
        return Settings()
    except ValidationError as exc:
        missing = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        logger.critical("SECURITY ERROR: Missing or invalid required configuration: %s", ", ".join(missing))
        raise SystemExit(1) from exc
