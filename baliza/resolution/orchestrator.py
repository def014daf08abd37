"""Orquestra a resolução de uma referência em um registro canônico."""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from baliza.domain.entities import Coordinates, VenueRecord, VenueReference
from baliza.domain.errors import (
    GeocodeFailure,
    InvalidCoordinates,
    RateLimited,
    VenueResolutionError,
)
from baliza.domain.repositories import VenueRepository

from .bounds import BoundsValidator
from .geocode_cache import GeocodeCache
from .locks import KeyedLock
from .matcher import VenueMatch, VenueMatcher
from .normalization import normalize_venue_name

log = logging.getLogger(__name__)


class ResolutionState(str, enum.Enum):
    SEARCHING = "searching"
    VALIDATING = "validating"
    GEOCODING = "geocoding"
    RESOLVED = "resolved"
    FAILED = "failed"


class FailureReason(str, enum.Enum):
    GEOCODE_FAILURE = "geocode_failure"
    RATE_LIMITED = "rate_limited"
    INVALID_GEOCODE = "invalid_geocode"


@dataclass(frozen=True)
class ResolutionResult:
    """Resultado de :meth:`ResolutionOrchestrator.resolve`."""

    state: ResolutionState
    venue: Optional[VenueRecord] = None
    strategy: Optional[str] = None
    created: bool = False
    updated: bool = False
    reason: Optional[FailureReason] = None
    error: Optional[VenueResolutionError] = field(default=None, compare=False)
    #: Candidato que exigiria confirmação manual e não foi aceito.
    unconfirmed: Optional[VenueRecord] = None
    transitions: tuple[ResolutionState, ...] = ()

    @property
    def resolved(self) -> bool:
        return self.state is ResolutionState.RESOLVED


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResolutionOrchestrator:
    """Compõe busca, validação e geocodificação em uma única operação.

    Estados: ``Searching → Validating`` quando há correspondência,
    ``Validating → Resolved`` com coordenadas válidas, ``Validating →
    Geocoding`` com coordenadas inválidas ou ausentes, ``Geocoding →
    Resolved`` com geocodificação válida e ``Geocoding → Failed`` nos demais
    casos. Não há novas tentativas além da repetição interna do cache para
    HTTP 429; ``AuthFailure`` é propagada ao chamador.
    """

    def __init__(
        self,
        matcher: VenueMatcher,
        repository: VenueRepository,
        geocoder: GeocodeCache,
        validator: BoundsValidator,
        *,
        locks: KeyedLock | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._matcher = matcher
        self._repository = repository
        self._geocoder = geocoder
        self._validator = validator
        self._locks = locks or KeyedLock()
        self._clock = clock

    def resolve(self, reference: VenueReference) -> ResolutionResult:
        trail = [ResolutionState.SEARCHING]
        match, unconfirmed = self._search(reference)

        if match is not None:
            trail.append(ResolutionState.VALIDATING)
            venue = match.venue
            try:
                self._validator.ensure_valid(
                    venue.coordinates, venue.country or reference.country
                )
            except InvalidCoordinates as exc:
                log.info(
                    "Local %s encontrado (%s) com coordenadas inválidas: %s",
                    venue.describe(),
                    match.strategy,
                    exc,
                )
            else:
                trail.append(ResolutionState.RESOLVED)
                return ResolutionResult(
                    state=ResolutionState.RESOLVED,
                    venue=venue,
                    strategy=match.strategy,
                    transitions=tuple(trail),
                )

        trail.append(ResolutionState.GEOCODING)
        existing = match.venue if match is not None else None
        return self._geocode(
            reference,
            existing,
            strategy=match.strategy if match is not None else None,
            unconfirmed=unconfirmed,
            trail=trail,
        )

    def _search(
        self, reference: VenueReference
    ) -> tuple[Optional[VenueMatch], Optional[VenueRecord]]:
        if reference.external_id is not None:
            venue = self._matcher.find_by_external_id(reference.external_id)
            if venue is not None:
                return VenueMatch(venue=venue, strategy="external_id"), None
            log.debug(
                "Identificador externo %s sem registro; buscando por nome",
                reference.external_id,
            )

        match = self._matcher.match_reference(reference.name, reference.city)
        if match is not None and match.requires_confirmation:
            log.warning(
                "Correspondência %s para %r exige confirmação manual: %s",
                match.strategy,
                reference.describe(),
                match.venue.describe(),
            )
            return None, match.venue
        return match, None

    def _geocode(
        self,
        reference: VenueReference,
        existing: Optional[VenueRecord],
        *,
        strategy: Optional[str],
        unconfirmed: Optional[VenueRecord],
        trail: list[ResolutionState],
    ) -> ResolutionResult:
        name = reference.name
        city = reference.city or (existing.city if existing else None)
        country = reference.country or (existing.country if existing else None)

        def failed(reason: FailureReason, error: VenueResolutionError) -> ResolutionResult:
            trail.append(ResolutionState.FAILED)
            return ResolutionResult(
                state=ResolutionState.FAILED,
                venue=existing,
                strategy=strategy,
                reason=reason,
                error=error,
                unconfirmed=unconfirmed,
                transitions=tuple(trail),
            )

        try:
            coordinates = self._geocoder.resolve(name, city, country)
        except RateLimited as exc:
            log.warning("Resolução de %r interrompida por limite de taxa", reference.describe())
            return failed(FailureReason.RATE_LIMITED, exc)
        except GeocodeFailure as exc:
            log.warning("Não foi possível geocodificar %r: %s", reference.describe(), exc)
            return failed(FailureReason.GEOCODE_FAILURE, exc)

        try:
            self._validator.ensure_valid(coordinates, country)
        except InvalidCoordinates as exc:
            log.warning(
                "Geocodificação de %r devolveu coordenadas inválidas %s; nada foi gravado",
                reference.describe(),
                coordinates,
            )
            return failed(FailureReason.INVALID_GEOCODE, exc)

        if existing is not None and existing.id is not None:
            updated = self._update_existing(existing, existing.id, coordinates)
            if updated is not None:
                trail.append(ResolutionState.RESOLVED)
                return ResolutionResult(
                    state=ResolutionState.RESOLVED,
                    venue=updated,
                    strategy=strategy,
                    updated=True,
                    unconfirmed=unconfirmed,
                    transitions=tuple(trail),
                )
            log.warning(
                "Local %s desapareceu durante a resolução; criando novo registro",
                existing.describe(),
            )

        venue, created = self._create(reference, city, country, coordinates)
        trail.append(ResolutionState.RESOLVED)
        return ResolutionResult(
            state=ResolutionState.RESOLVED,
            venue=venue,
            strategy=strategy if not created else None,
            created=created,
            unconfirmed=unconfirmed,
            transitions=tuple(trail),
        )

    def _update_existing(
        self, existing: VenueRecord, venue_id: str, coordinates: Coordinates
    ) -> Optional[VenueRecord]:
        with self._locks.hold(venue_id):
            updated = self._repository.update_coordinates(
                venue_id, coordinates, self._clock()
            )
        if updated is not None:
            log.info(
                "Coordenadas de %s atualizadas de %s para %s",
                existing.describe(),
                existing.coordinates,
                coordinates,
            )
        return updated

    def _create(
        self,
        reference: VenueReference,
        city: str | None,
        country: str | None,
        coordinates: Coordinates,
    ) -> tuple[VenueRecord, bool]:
        identity = ("new", normalize_venue_name(reference.name), normalize_venue_name(city))
        with self._locks.hold(identity):
            # Outra resolução concorrente pode ter criado o mesmo local.
            concurrent = self._matcher.match_reference(reference.name, reference.city)
            if (
                concurrent is not None
                and not concurrent.requires_confirmation
                and concurrent.venue.coordinates is not None
                and self._validator.is_valid(concurrent.venue.coordinates, concurrent.venue.country)
            ):
                return concurrent.venue, False

            venue = self._repository.add(
                VenueRecord(
                    name=reference.name.strip(),
                    city=city or "",
                    country=country or "",
                    external_id=reference.external_id,
                    coordinates=coordinates,
                    last_updated=self._clock(),
                )
            )
        log.info("Novo local criado: %s em %s", venue.describe(), coordinates)
        return venue, True


__all__ = [
    "FailureReason",
    "ResolutionOrchestrator",
    "ResolutionResult",
    "ResolutionState",
]
