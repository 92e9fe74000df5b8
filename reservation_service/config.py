from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: float = 10.0
    db_lock_timeout_ms: int = 5000
    db_command_timeout: float = 30.0

    hold_period_days: int = 7
    sweep_enabled: bool = True
    sweep_hour: int = 0
    sweep_minute: int = 0

    cache_url: str | None = None
    cache_ttl_seconds: int = 300
    cache_max_entries: int = 1000

    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000"]

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
