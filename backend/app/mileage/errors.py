"""Error taxonomy for mileage resolution."""

from __future__ import annotations

from dataclasses import dataclass


class MileageError(Exception):
    """Base class for every mileage engine error."""


class ProviderError(MileageError):
    """A single provider could not produce a result."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class ConfigurationError(ProviderError):
    """Provider credentials are missing; no network call was attempted."""


class UpstreamError(ProviderError):
    """Non-success status or malformed payload from the third-party API."""

    def __init__(self, provider: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(provider, message)
        self.status_code = status_code


class ProviderTimeoutError(UpstreamError):
    """The outbound call exceeded its time budget."""


class NotFoundError(ProviderError):
    """The provider understood the lane but found no route for it."""


@dataclass(frozen=True, slots=True)
class ProviderFailure:
    provider: str
    error_type: str
    message: str

    @classmethod
    def from_exception(cls, provider: str, exc: BaseException) -> ProviderFailure:
        message = exc.message if isinstance(exc, ProviderError) else str(exc)
        return cls(provider=provider, error_type=type(exc).__name__, message=message)

    def as_dict(self) -> dict[str, str]:
        return {"provider": self.provider, "error": self.error_type, "message": self.message}


class AllProvidersFailedError(MileageError):
    """Every provider in the resolution chain failed."""

    def __init__(self, failures: list[ProviderFailure]) -> None:
        self.failures = list(failures)
        detail = "; ".join(f"{f.provider} ({f.error_type}): {f.message}" for f in self.failures)
        super().__init__(f"All mileage providers failed: {detail or 'no providers attempted'}")


__all__ = [
    "AllProvidersFailedError",
    "ConfigurationError",
    "MileageError",
    "NotFoundError",
    "ProviderError",
    "ProviderFailure",
    "ProviderTimeoutError",
    "UpstreamError",
]
