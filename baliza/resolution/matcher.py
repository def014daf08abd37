"""Resolução de identidade de locais contra o armazenamento."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Protocol, Sequence, runtime_checkable

from baliza.domain.entities import Coordinates, VenueRecord
from baliza.domain.repositories import VenueRepository

from .normalization import normalize_venue_name

log = logging.getLogger(__name__)


@runtime_checkable
class MatchStrategy(Protocol):
    """Uma estratégia de correspondência aplicada pelo :class:`VenueMatcher`."""

    name: str
    requires_confirmation: bool

    def try_match(
        self, repository: VenueRepository, name: str, city: str | None
    ) -> Optional[VenueRecord]:
        ...


class ExactMatchStrategy:
    """Nome (e cidade, se houver) idênticos byte a byte."""

    name = "exact"
    requires_confirmation = False

    def try_match(
        self, repository: VenueRepository, name: str, city: str | None
    ) -> Optional[VenueRecord]:
        return repository.find_by_name(name, city or None)


class CaseInsensitiveMatchStrategy:
    """Mesmo predicado, ignorando caixa, com o nome inteiro ancorado."""

    name = "case_insensitive"
    requires_confirmation = False

    def try_match(
        self, repository: VenueRepository, name: str, city: str | None
    ) -> Optional[VenueRecord]:
        return repository.find_by_name(name, city or None, case_insensitive=True)


class NormalizedMatchStrategy:
    """Compara formas normalizadas varrendo uma vez os locais ativos."""

    name = "normalized"
    requires_confirmation = False

    def try_match(
        self, repository: VenueRepository, name: str, city: str | None
    ) -> Optional[VenueRecord]:
        target_name = normalize_venue_name(name)
        if not target_name:
            return None
        target_city = normalize_venue_name(city) if city else None
        for venue in repository.iter_active():
            if normalize_venue_name(venue.name) != target_name:
                continue
            if target_city is not None and normalize_venue_name(venue.city) != target_city:
                continue
            return venue
        return None


class ContainsMatchStrategy:
    """Nome contendo o fragmento e cidade contendo o primeiro termo da cidade.

    Admite colisões de substring sem regra de desempate; por isso não faz
    parte da lista padrão e suas correspondências exigem confirmação manual.
    """

    name = "contains"
    requires_confirmation = True

    def try_match(
        self, repository: VenueRepository, name: str, city: str | None
    ) -> Optional[VenueRecord]:
        fragment = name.strip()
        if not fragment:
            return None
        city_fragment = None
        if city and city.strip():
            city_fragment = city.strip().split(" ")[0]
        return repository.find_by_name_fragment(fragment, city_fragment)


DEFAULT_STRATEGIES: tuple[MatchStrategy, ...] = (
    ExactMatchStrategy(),
    CaseInsensitiveMatchStrategy(),
    NormalizedMatchStrategy(),
)


@dataclass(frozen=True)
class VenueMatch:
    """Correspondência encontrada e a estratégia responsável por ela."""

    venue: VenueRecord
    strategy: str
    requires_confirmation: bool = False


class VenueMatcher:
    """Aplica as estratégias em ordem estrita; a primeira que encontrar vence.

    Não há pontuação entre estratégias, o que mantém o comportamento
    determinístico e auditável.
    """

    def __init__(
        self,
        repository: VenueRepository,
        strategies: Sequence[MatchStrategy] | None = None,
    ) -> None:
        self._repository = repository
        self._strategies = tuple(DEFAULT_STRATEGIES if strategies is None else strategies)

    @property
    def strategies(self) -> tuple[MatchStrategy, ...]:
        return self._strategies

    def match_reference(self, name: str, city: str | None = None) -> Optional[VenueMatch]:
        if not name or not name.strip():
            return None
        for strategy in self._strategies:
            venue = strategy.try_match(self._repository, name, city)
            if venue is None:
                continue
            log.debug(
                "Local %r (cidade %r) encontrado pela estratégia %s: %s",
                name,
                city,
                strategy.name,
                venue.id,
            )
            return VenueMatch(
                venue=venue,
                strategy=strategy.name,
                requires_confirmation=strategy.requires_confirmation,
            )
        log.debug("Nenhum local encontrado para %r (cidade %r)", name, city)
        return None

    def find_by_reference(self, name: str, city: str | None = None) -> Optional[VenueRecord]:
        match = self.match_reference(name, city)
        return match.venue if match else None

    def find_by_external_id(self, external_id: int) -> Optional[VenueRecord]:
        return self._repository.find_by_external_id(int(external_id))

    def find_near(
        self, coordinates: Coordinates, radius_meters: float
    ) -> Iterator[VenueRecord]:
        """Consulta nova a cada chamada; o iterador devolvido não é reiniciável."""

        if radius_meters <= 0:
            raise ValueError("radius_meters must be positive")
        return iter(self._repository.find_near(coordinates, radius_meters))


__all__ = [
    "CaseInsensitiveMatchStrategy",
    "ContainsMatchStrategy",
    "DEFAULT_STRATEGIES",
    "ExactMatchStrategy",
    "MatchStrategy",
    "NormalizedMatchStrategy",
    "VenueMatch",
    "VenueMatcher",
]
