"""Lane distance resolution: cache, providers, fallback chain and batch fan-out."""

from .batch import BatchResolver, LanePair
from .cache import CacheEntry, DistanceCache
from .contracts import CacheWriteOutcome, DistanceResult, ProviderStatus, ResolutionOptions
from .errors import (
    AllProvidersFailedError,
    ConfigurationError,
    MileageError,
    NotFoundError,
    ProviderError,
    ProviderFailure,
    ProviderTimeoutError,
    UpstreamError,
)
from .keys import derive_key, normalize_location
from .orchestrator import ResolutionOrchestrator
from .service import MileageService, build_mileage_service, get_mileage_service
from .status import StatusReporter

__all__ = [
    "AllProvidersFailedError",
    "BatchResolver",
    "CacheEntry",
    "CacheWriteOutcome",
    "ConfigurationError",
    "DistanceCache",
    "DistanceResult",
    "LanePair",
    "MileageError",
    "MileageService",
    "NotFoundError",
    "ProviderError",
    "ProviderFailure",
    "ProviderStatus",
    "ProviderTimeoutError",
    "ResolutionOptions",
    "ResolutionOrchestrator",
    "StatusReporter",
    "UpstreamError",
    "build_mileage_service",
    "derive_key",
    "get_mileage_service",
    "normalize_location",
]
