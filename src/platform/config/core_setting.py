from pathlib import Path
from typing import Annotated, List, Literal

import orjson
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Booking Session Service'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production
    LOG_TIMEZONE: str = 'UTC'

    # CORS: comma list or JSON list, NoDecode hands the raw string to the validator
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = []

    @field_validator('BACKEND_CORS_ORIGINS', mode='before')
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and v.strip().startswith('['):
            return [str(origin) for origin in orjson.loads(v)]
        if isinstance(v, str):
            return [i.strip() for i in v.split(',') if i.strip()]
        elif isinstance(v, list):
            return v
        return []

    # Booking backend (catalog, coupons, payments, bookings)
    BACKEND_API_BASE_URL: str = 'http://localhost:5000/api'
    BACKEND_API_TIMEOUT_SECONDS: float = 10.0

    # Pricing
    PAYMENT_CURRENCY: str = 'INR'
    PAYMENT_MINOR_UNIT_FACTOR: int = 100  # Gateway orders are denominated in paise
    TAX_RATE: str = '0.18'  # Parsed as Decimal by the pricing engine
    SINGLE_ROOM_FEE_PER_PERSON: int = 2000
    MAX_TRAVELERS: int = 10

    # Payment gateway
    PAYMENT_CHECKOUT_TIMEOUT_SECONDS: float = 900.0  # Widget left open longer counts as abandoned
    SUPPORT_CONTACT: str = 'support@example.com'

    # Coupons
    COUPON_OFFER_CACHE_TTL_SECONDS: float = 300.0

    # Draft store
    DRAFT_STORE_BACKEND: Literal['kvrocks', 'memory'] = 'kvrocks'
    DRAFT_TTL_SECONDS: int = 60 * 60 * 6  # Browsing session lifetime
    DRAFT_KEY_PREFIX: str = ''
    FLOW_IDLE_TTL_SECONDS: float = 60 * 30  # In-memory wizard eviction; the stored draft remains

    # Kvrocks Configuration (Redis protocol + Kvrocks storage)
    KVROCKS_HOST: str = 'localhost'
    KVROCKS_PORT: int = 6666
    KVROCKS_DB: int = 0
    KVROCKS_PASSWORD: SecretStr = SecretStr('')
    REDIS_DECODE_RESPONSES: bool = False  # Draft payloads are orjson bytes

    # Kvrocks Connection Pool Configuration
    KVROCKS_POOL_MAX_CONNECTIONS: int = 50  # Max connections in pool
    KVROCKS_POOL_SOCKET_TIMEOUT: int = 5  # Socket read/write timeout (seconds)
    KVROCKS_POOL_SOCKET_CONNECT_TIMEOUT: int = 5  # Connection timeout (seconds)
    KVROCKS_POOL_SOCKET_KEEPALIVE: bool = True  # Enable TCP keepalive
    KVROCKS_POOL_HEALTH_CHECK_INTERVAL: int = 30  # Health check interval (seconds)

    @property
    def KVROCKS_URL(self) -> str:
        return f'redis://{self.KVROCKS_HOST}:{self.KVROCKS_PORT}/{self.KVROCKS_DB}'


settings = Settings()  # type: ignore
