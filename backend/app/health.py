"""Health check module with dependency verification."""

from __future__ import annotations

import time
from typing import Any

from .db.core import ping_db
from .mileage.status import StatusReporter
from .settings import settings


def _is_configured(value: str | None) -> bool:
    """Return True when a config string is non-empty after trimming."""
    if value is None:
        return False
    return bool(value.strip())


class HealthChecker:
    """Health checker for monitoring service dependencies."""

    def __init__(self, reporter: StatusReporter | None = None) -> None:
        self.reporter = reporter or StatusReporter()
        self._check_cache: dict[str, tuple[dict[str, Any], float]] = {}
        self._cache_ttl = 30.0

    async def check_all(self) -> dict[str, Any]:
        """
        Check health of all dependencies.

        The database must answer and the active mileage provider must have credentials;
        Sentry is reported but only fails the check when its DSN is malformed.

        Returns:
            Dict with overall status and individual component checks
        """
        checks = {
            "database": await self._check_database(),
            "mileage_provider": self._check_provider(),
            "sentry": (
                self._check_sentry() if _is_configured(settings.SENTRY_DSN) else {"status": "disabled"}
            ),
        }

        all_ok = all(check.get("status") in {"ok", "disabled"} for check in checks.values())

        return {
            "status": "healthy" if all_ok else "degraded",
            "timestamp": time.time(),
            "checks": checks,
        }

    async def _check_database(self) -> dict[str, Any]:
        try:
            dialect = await ping_db()
        except Exception as exc:
            return {
                "status": "error",
                "error": str(exc),
                "error_type": type(exc).__name__,
            }
        return {"status": "ok", "dialect": dialect}

    def _check_provider(self) -> dict[str, Any]:
        status = self.reporter.status()
        result: dict[str, Any] = {
            "status": "ok" if status.configured else "error",
            "active_provider": status.active_provider,
            "fallback_order": status.fallback_order,
        }
        if not status.configured:
            result["error"] = f"{status.active_provider} credentials not configured"
        return result

    def _check_sentry(self) -> dict[str, Any]:
        """Check if Sentry is configured (doesn't actually test connectivity)."""
        cache_key = "sentry"
        cached = self._get_cached_check(cache_key)
        if cached is not None:
            return cached

        dsn = settings.SENTRY_DSN or ""
        if "@" in dsn and "//" in dsn:
            result = {
                "status": "ok",
                "environment": settings.SENTRY_ENVIRONMENT,
                "release": settings.SENTRY_RELEASE or "unset",
            }
        else:
            result = {"status": "error", "error": "Invalid SENTRY_DSN format"}

        self._cache_check(cache_key, result)
        return result

    def _get_cached_check(self, key: str) -> dict[str, Any] | None:
        if key not in self._check_cache:
            return None

        result, timestamp = self._check_cache[key]
        if time.time() - timestamp > self._cache_ttl:
            return None

        return result

    def _cache_check(self, key: str, result: dict[str, Any]) -> None:
        self._check_cache[key] = (result, time.time())

    def clear_cache(self) -> None:
        """Clear cached dependency checks (useful for tests)."""
        self._check_cache.clear()


health_checker = HealthChecker()


__all__ = ["health_checker", "HealthChecker"]
