from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

REPO_ROOT = Path(__file__).resolve().parents[2]
ENV_FILE = REPO_ROOT / ".env"

ProviderName = Literal["google", "milemaker", "pcmiler"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE), env_file_encoding="utf-8", extra="ignore"
    )

    DEBUG: bool = False

    # persistence directory (defaults to ~/.freight-mileage-data)
    DATA_DIR: Path | None = None
    DATABASE_URL: str | None = None

    # CORS allow origins (comma-separated). Default empty (no cross-origin).
    CORS_ALLOW_ORIGINS: str = ""

    # Mileage provider selection and credentials
    MILEAGE_PROVIDER: ProviderName = "google"
    GOOGLE_MAPS_API_KEY: str | None = None
    MILEMAKER_CLIENT_ID: str | None = None
    MILEMAKER_CLIENT_SECRET: str | None = None
    PCMILER_API_KEY: str | None = None

    GOOGLE_DIRECTIONS_URL: str = "https://maps.googleapis.com/maps/api/directions/json"
    MILEMAKER_API_BASE: str = "https://api.milemaker.com"
    PCMILER_API_BASE: str = "https://pcmiler.alk.com/apis/rest/v1.0"

    # Outbound call budgets (seconds)
    MILEAGE_AUTH_TIMEOUT_SECONDS: float = 10.0
    MILEAGE_ESTIMATE_TIMEOUT_SECONDS: float = 10.0
    MILEAGE_ROUTE_TIMEOUT_SECONDS: float = 15.0
    HTTP_CONNECT_TIMEOUT_SECONDS: float = 5.0

    MILEAGE_CACHE_TTL_DAYS: int = 30
    MILEAGE_BATCH_CONCURRENCY: int = 5
    MILEAGE_BATCH_MAX_PAIRS: int = 50

    # Per-provider circuit breaker
    MILEAGE_BREAKER_ENABLED: bool = True
    MILEAGE_BREAKER_FAILURE_THRESHOLD: int = 5
    MILEAGE_BREAKER_COOLDOWN_SECONDS: float = 60.0

    # Observability
    SENTRY_DSN: str | None = None
    SENTRY_ENVIRONMENT: str = "development"
    SENTRY_RELEASE: str | None = None
    SENTRY_TRACES_SAMPLE_RATE: float = 0.2

    @property
    def allow_origins(self) -> list[str]:
        s = (self.CORS_ALLOW_ORIGINS or "").strip()
        if s == "*":
            return ["*"]
        if s == "":
            return []
        return [part.strip() for part in s.split(",") if part.strip()]

    @property
    def data_dir(self) -> Path:
        # Blank DATA_DIR values in `.env` would otherwise resolve to the repository root.
        def _materialize(path: Path) -> Path:
            path.mkdir(parents=True, exist_ok=True)
            return path

        raw_env = os.getenv("DATA_DIR")
        if raw_env is not None:
            trimmed = raw_env.strip()
            if trimmed:
                return _materialize(Path(trimmed).expanduser().resolve())
            return _materialize(Path.home() / ".freight-mileage-data")

        if self.DATA_DIR is not None:
            candidate = Path(self.DATA_DIR).expanduser()
            candidate_str = str(candidate).strip()
            if candidate_str and candidate_str not in {".", "./", ".\\"}:
                return _materialize(candidate.resolve())
        return _materialize(Path.home() / ".freight-mileage-data")

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        default_path = self.data_dir / "freight_mileage.db"
        return f"sqlite:///{default_path}"

    @property
    def async_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite///") or url.startswith("sqlite:///"):
            return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    def provider_configured(self, provider: str) -> bool:
        """Return True when the named mileage provider has all required credentials."""
        if provider == "google":
            return _is_set(self.GOOGLE_MAPS_API_KEY)
        if provider == "milemaker":
            return _is_set(self.MILEMAKER_CLIENT_ID) and _is_set(self.MILEMAKER_CLIENT_SECRET)
        if provider == "pcmiler":
            return _is_set(self.PCMILER_API_KEY)
        return False


def _is_set(value: str | None) -> bool:
    return bool(value and value.strip())


settings = Settings()
