"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Database (MySQL-protocol in deployment, SQLite in tests) ───────────
    database_url: str = "mysql+aiomysql://root:@mysql:3306/social_hub"
    database_echo: bool = False

    @property
    def database_is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    # ── Redis (cross-instance broadcast relay) ─────────────────────────────
    redis_enabled: bool = False
    redis_host: str = "redis"
    redis_port: int = 6379
    redis_channel: str = "socialhub:broadcast"
    relay_retry_delay: float = 1.0       # first resubscribe delay, doubled per failure
    relay_max_retry_delay: float = 30.0

    # ── Realtime ───────────────────────────────────────────────────────────
    socketio_path: str = "socket.io"
    cors_allowed_origins: str = "*"
    observer_queue_size: int = 1000      # backlog before an observer is dropped

    # ── Observability ──────────────────────────────────────────────────────
    tracing_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "social-hub"
    environment: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
