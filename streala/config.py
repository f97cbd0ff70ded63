from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from urllib.parse import quote_plus


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="streala/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Streala Alerts API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    # Database
    POSTGRES_HOST: str = ""
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = ""
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = ""

    # Explicit URL wins over POSTGRES_* (sqlite for local runs and tests)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if not self.POSTGRES_HOST:
            return "sqlite:///./streala.db"

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    # Security (session tokens are issued by the auth provider, verified here)
    SECRET_KEY: str = ""
    JWT_ALGORITHM: str = "HS256"
    AUTH_TOKEN: str = ""  # 내부 크론 호출용 토큰
    INTERNAL_AUTH_HEADER: str = "X-Internal-Authorization"

    # Mercado Pago
    MERCADOPAGO_API_URL: str = "https://api.mercadopago.com"
    MERCADOPAGO_ACCESS_TOKEN: str = ""
    MERCADOPAGO_TIMEOUT_SECONDS: float = 15.0
    PIX_DEFAULT_PAYER_EMAIL: str = "comprador@streala.app"

    # Fees
    PROVIDER_FEE_RATE: float = 0.0399  # Mercado Pago PIX
    CURRENCY: str = "BRL"

    # Redis (realtime queue fan-out)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None
    REDIS_ENABLED: bool = True
    REALTIME_CHANNEL_PREFIX: str = "alert_queue"
    REALTIME_KEEPALIVE_SECONDS: int = 15

    # Alert queue business rules
    TEST_ALERT_RATE_LIMIT: int = 10
    TEST_ALERT_WINDOW_MINUTES: int = 60
    TEST_ALERT_NOTE: str = "🧪 Alerta de teste"

    # Widget defaults
    OVERLAY_DEFAULT_IMAGE_DURATION_SECONDS: int = 5
    OVERLAY_DEFAULT_POSITION: str = "center"
    OVERLAY_DEFAULT_START_DELAY_SECONDS: int = 0
    OVERLAY_DEFAULT_BETWEEN_DELAY_SECONDS: int = 1

    # Overlay consumer
    OVERLAY_MAX_PLAY_SECONDS: float = 120.0
    OVERLAY_POLL_INTERVAL_SECONDS: float = 30.0
    OVERLAY_RECONNECT_DELAY_SECONDS: float = 3.0
    OVERLAY_SEEN_RETENTION_SECONDS: float = 300.0


settings = Settings()
