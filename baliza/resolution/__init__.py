"""Núcleo de resolução de identidade e geocodificação de locais."""

from .bounds import (
    BoundsValidator,
    BoundsViolation,
    CITY_CENTERS,
    COUNTRY_BOUNDS,
    CountryBounds,
    Severity,
    ViolationKind,
)
from .geocode_cache import (
    BatchGeocodeResult,
    CacheKey,
    GeocodeCache,
    GeocodeMatch,
    GeocodeStats,
)
from .locks import KeyedLock
from .matcher import (
    CaseInsensitiveMatchStrategy,
    ContainsMatchStrategy,
    ExactMatchStrategy,
    NormalizedMatchStrategy,
    VenueMatch,
    VenueMatcher,
)
from .normalization import normalize_venue_name, same_token
from .orchestrator import (
    FailureReason,
    ResolutionOrchestrator,
    ResolutionResult,
    ResolutionState,
)
from .rate_limit import RateLimitGate

__all__ = [
    "BatchGeocodeResult",
    "BoundsValidator",
    "BoundsViolation",
    "CITY_CENTERS",
    "COUNTRY_BOUNDS",
    "CacheKey",
    "CaseInsensitiveMatchStrategy",
    "ContainsMatchStrategy",
    "CountryBounds",
    "ExactMatchStrategy",
    "FailureReason",
    "GeocodeCache",
    "GeocodeMatch",
    "GeocodeStats",
    "KeyedLock",
    "NormalizedMatchStrategy",
    "RateLimitGate",
    "ResolutionOrchestrator",
    "ResolutionResult",
    "ResolutionState",
    "Severity",
    "VenueMatch",
    "VenueMatcher",
    "ViolationKind",
    "normalize_venue_name",
    "same_token",
]
