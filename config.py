"""
Configuración del bot desde variables de entorno (.env en desarrollo local)
"""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class BotSettings(BaseSettings):
    """Cada campo se lee de la variable homónima en mayúsculas (VERIFY_TOKEN, SMTP_PORT, ...)"""

    model_config = SettingsConfigDict(env_ignore_empty=True, extra="ignore")

    verify_token: str = Field(default="", description="Token del handshake de verificación del webhook")
    page_token: str = Field(default="", description="Page access token para la Send API")
    graph_api_version: str = "v19.0"

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_pass: str = ""
    leads_email_from: str = ""
    leads_email_to: str = ""

    # 0 = las sesiones nunca expiran
    session_idle_ttl_seconds: float = Field(default=0, ge=0)
    dispatcher_workers: int = Field(default=4, ge=1)


def load_settings(use_dotenv: bool = True) -> BotSettings:
    """Lee las variables definidas; las ausentes o vacías toman su default."""
    if use_dotenv:
        load_dotenv()
    try:
        return BotSettings()
    except ValidationError as e:
        bad = ", ".join(str(err["loc"][0]).upper() for err in e.errors())
        raise ValueError(f"Configuración inválida en {bad}: {e}") from None


@lru_cache(maxsize=1)
def get_settings() -> BotSettings:
    return load_settings()
