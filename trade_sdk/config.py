from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Shared session
    use_shared_session: bool = True
    session_max_connections: int = 2000
    session_close_grace_seconds: float = 0.2

    # Client cache
    cache_lifetime_seconds: int = 600  # 10 minutes
    cache_cleanup_interval_seconds: int = 60

    # Requests
    recv_window: int = 5000  # ms
    request_timeout: float = 30.0

    # Bybit
    bybit_referral_id: str | None = None

    # Logging
    log_level: str = "INFO"

    model_config = {"env_prefix": "TRADE_SDK_", "env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache()
def get_settings() -> Settings:
    return Settings()
