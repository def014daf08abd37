"""Dependency container wiring the resolution core to its adapters."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from baliza.correction import (
    CorrectionEngine,
    CorrectionJob,
    ManualCorrection,
    load_manual_corrections,
)
from baliza.correction.manual import DEFAULT_GEOCODE_OVERRIDES
from baliza.domain.entities import Coordinates
from baliza.domain.ports import GeocodingProvider
from baliza.domain.repositories import VenueRepository
from baliza.infrastructure.database import MongoClientFactory
from baliza.infrastructure.geocoding import LocationIQGeocoder
from baliza.infrastructure.repositories import MongoVenueRepository
from baliza.resolution import (
    BoundsValidator,
    GeocodeCache,
    KeyedLock,
    RateLimitGate,
    ResolutionOrchestrator,
    VenueMatcher,
)
from baliza.settings import GeocodingSettings, get_geocoding_settings


@dataclass
class BalizaContainer:
    """Resolved dependencies shared by the API, the CLI and the batch job.

    One geocoding cache, one rate-limit gate and one lock registry exist per
    container, so live resolution and batch correction pass through the same
    gate.
    """

    settings: GeocodingSettings
    repository: VenueRepository
    provider: GeocodingProvider
    gate: RateLimitGate
    geocoder: GeocodeCache
    validator: BoundsValidator
    matcher: VenueMatcher
    locks: KeyedLock
    orchestrator: ResolutionOrchestrator
    engine: CorrectionEngine
    job: CorrectionJob
    mongo_factory: MongoClientFactory | None = None

    def close(self) -> None:
        close = getattr(self.provider, "close", None)
        if callable(close):
            close()
        if self.mongo_factory is not None:
            self.mongo_factory.close()


def build_container(
    *,
    settings: GeocodingSettings | None = None,
    repository: VenueRepository | None = None,
    provider: GeocodingProvider | None = None,
    factory: MongoClientFactory | None = None,
    manual_corrections: Mapping[int, ManualCorrection] | None = None,
    geocode_overrides: Mapping[str, Coordinates] | None = None,
    validator: BoundsValidator | None = None,
    gate: RateLimitGate | None = None,
) -> BalizaContainer:
    """Construct the container; anything passed in replaces the default adapter."""

    settings = settings or get_geocoding_settings()

    mongo_factory: MongoClientFactory | None = None
    if repository is None:
        mongo_factory = factory or MongoClientFactory()
        repository = MongoVenueRepository(mongo_factory.get_venues_collection())

    if provider is None:
        provider = LocationIQGeocoder(
            settings.api_key,
            base_url=settings.base_url,
            timeout=settings.timeout,
        )

    if manual_corrections is None:
        manual_corrections = load_manual_corrections(settings.manual_corrections_path)

    gate = gate or RateLimitGate(settings.min_interval)
    geocoder = GeocodeCache(
        provider,
        gate,
        retry_backoff=settings.retry_backoff,
        manual_overrides=(
            DEFAULT_GEOCODE_OVERRIDES if geocode_overrides is None else geocode_overrides
        ),
    )
    validator = validator or BoundsValidator()
    matcher = VenueMatcher(repository)
    locks = KeyedLock()

    orchestrator = ResolutionOrchestrator(
        matcher, repository, geocoder, validator, locks=locks
    )
    engine = CorrectionEngine(
        repository,
        geocoder,
        validator,
        manual_corrections=manual_corrections,
        locks=locks,
    )

    return BalizaContainer(
        settings=settings,
        repository=repository,
        provider=provider,
        gate=gate,
        geocoder=geocoder,
        validator=validator,
        matcher=matcher,
        locks=locks,
        orchestrator=orchestrator,
        engine=engine,
        job=CorrectionJob(engine),
        mongo_factory=mongo_factory,
    )


__all__ = ["BalizaContainer", "build_container"]
