from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True)

    database_url: str = "sqlite:///./stockledger.db"
    redis_url: str | None = None
    redis_host: str = "redis"
    redis_port: int = 6379
    cache_ttl_seconds: int = 300
    cors_origins: str = ""
    cache_enabled: bool = True
    # Valores usados en la auditoria cuando el adaptador no aporta actor/IP
    audit_default_actor: str = "system"
    audit_default_ip: str = "127.0.0.1"
    # Nivel objetivo de reposicion = reorder_level * multiplicador
    reorder_target_multiplier: int = 2
    reorder_suggestions_limit: int = 50

    @property
    def allowed_origins(self) -> list[str]:
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return origins or [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]

    @property
    def resolved_redis_url(self) -> str:
        return self.redis_url or f"redis://{self.redis_host}:{self.redis_port}/0"


settings = Settings()
