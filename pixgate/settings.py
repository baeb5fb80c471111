from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "PixGate"
    APP_ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    PORT: int = 3000

    # Provider selection: "payevo" | "sandbox"
    PIX_PROVIDER: str = "payevo"

    # Provider: Payevo
    PAYEVO_BASE_URL: str = "https://api.payevo.com.br/functions/v1"
    PAYEVO_SECRET_KEY: Optional[str] = None

    # Outbound calls
    REQUEST_TIMEOUT_SEC: float = 10

    # PIX lifecycle
    PIX_VALIDITY_SEC: int = 900
    STATUS_POLL_INTERVAL_SEC: float = 5

    # Validation strictness: full CPF checksum vs. length-only
    STRICT_TAX_ID: bool = True

    # Missing credentials abort startup instead of answering 500
    FAIL_ON_MISSING_CREDENTIALS: bool = False

    # Default line item when the client sends none
    CHECKOUT_ITEM_TITLE: str = "Pagamento de Serviço"
    CHECKOUT_ITEM_DESCRIPTION: str = "Pagamento via PIX"
    DEFAULT_CLIENT_IP: str = "127.0.0.1"

settings = Settings()
