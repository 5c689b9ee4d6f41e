from typing import Annotated, Any, Literal

from pydantic import AnyUrl, BeforeValidator, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "querypilot"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str | None = None

    FRONTEND_HOST: str = "http://localhost:5173"
    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS] + [
            self.FRONTEND_HOST
        ]

    # Execution defaults (connect + query timeout, relaxed-trust SSL)
    DB_TIMEOUT_MS: int = 30000
    DB_SSL: bool = False

    # Connection pools
    DB_POOL_MAX: int = 10
    DB_POOL_IDLE_TIMEOUT_MS: int = 30000
    DB_POOL_CONNECTION_TIMEOUT_MS: int = 30000
    # When True, /sql/execute without a connection uses the default pool for the dialect
    DB_USE_POOL: bool = False

    # Default connections for /sql/execute requests that carry no connection
    MYSQL_HOST: str | None = None
    MYSQL_PORT: int = 3306
    MYSQL_USER: str | None = None
    MYSQL_PASSWORD: str | None = None
    MYSQL_DB: str | None = None

    PG_HOST: str | None = None
    PG_PORT: int = 5432
    PG_USER: str | None = None
    PG_PASSWORD: str | None = None
    PG_DB: str | None = None

    def default_connection(self, dialect: str) -> dict[str, Any] | None:
        """Connection dict for ``mysql`` / ``postgresql`` from env, or None if no host is set."""
        if dialect == "mysql":
            host, port, user, password, db = (
                self.MYSQL_HOST,
                self.MYSQL_PORT,
                self.MYSQL_USER,
                self.MYSQL_PASSWORD,
                self.MYSQL_DB,
            )
        elif dialect == "postgresql":
            host, port, user, password, db = (
                self.PG_HOST,
                self.PG_PORT,
                self.PG_USER,
                self.PG_PASSWORD,
                self.PG_DB,
            )
        else:
            return None
        if not host:
            return None
        return {
            "host": host,
            "port": port,
            "user": user,
            "password": password,
            "database": db,
        }


settings = Settings()  # type: ignore
