"""Repositório de locais em memória, seguro para uso entre threads."""
from __future__ import annotations

import itertools
import threading
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Iterator, Optional

from baliza.domain.entities import Coordinates, VenueRecord
from baliza.domain.repositories import VenueRepository
from baliza.resolution.geoutils import haversine_distance_meters


class InMemoryVenueRepository(VenueRepository):
    """Mantém locais em um dicionário protegido por trava.

    Usado em execuções offline e nos testes; as consultas seguem a mesma
    semântica do repositório MongoDB, inclusive a exclusão de inativos.
    """

    def __init__(self, venues: Iterable[VenueRecord] = ()) -> None:
        self._lock = threading.RLock()
        self._venues: dict[str, VenueRecord] = {}
        self._sequence = itertools.count(1)
        for venue in venues:
            self.add(venue)

    def __len__(self) -> int:
        with self._lock:
            return len(self._venues)

    def _active(self) -> list[VenueRecord]:
        with self._lock:
            return [venue for venue in self._venues.values() if venue.is_active]

    def get(self, venue_id: str) -> Optional[VenueRecord]:
        with self._lock:
            venue = self._venues.get(venue_id)
        return venue if venue is not None and venue.is_active else None

    def find_by_name(
        self, name: str, city: str | None = None, *, case_insensitive: bool = False
    ) -> Optional[VenueRecord]:
        def same(left: str, right: str) -> bool:
            return left.casefold() == right.casefold() if case_insensitive else left == right

        for venue in self._active():
            if not same(venue.name, name):
                continue
            if city and not same(venue.city, city):
                continue
            return venue
        return None

    def find_by_name_fragment(
        self, fragment: str, city_fragment: str | None = None
    ) -> Optional[VenueRecord]:
        needle = fragment.casefold()
        city_needle = city_fragment.casefold() if city_fragment else None
        for venue in self._active():
            if needle not in venue.name.casefold():
                continue
            if city_needle and city_needle not in venue.city.casefold():
                continue
            return venue
        return None

    def find_by_external_id(self, external_id: int) -> Optional[VenueRecord]:
        for venue in self._active():
            if venue.external_id == int(external_id):
                return venue
        return None

    def iter_active(self, *, with_coordinates: bool = False) -> Iterable[VenueRecord]:
        for venue in self._active():
            if with_coordinates and not venue.has_coordinates:
                continue
            yield venue

    def search(self, text: str, limit: int = 20) -> list[VenueRecord]:
        needle = text.casefold()
        found: list[VenueRecord] = []
        for venue in self._active():
            fields = (venue.name, venue.city, venue.country, *venue.aliases)
            if any(needle in value.casefold() for value in fields):
                found.append(venue)
                if len(found) >= limit:
                    break
        return found

    def find_by_country(self, country: str) -> list[VenueRecord]:
        wanted = country.casefold()
        venues = [venue for venue in self._active() if venue.country.casefold() == wanted]
        return sorted(venues, key=lambda venue: (venue.city, venue.name))

    def find_near(
        self, coordinates: Coordinates, max_distance_meters: float
    ) -> Iterator[VenueRecord]:
        candidates: list[tuple[float, VenueRecord]] = []
        for venue in self._active():
            if venue.coordinates is None or not venue.coordinates.in_world_range():
                continue
            distance = haversine_distance_meters(coordinates, venue.coordinates)
            if distance <= max_distance_meters:
                candidates.append((distance, venue))
        candidates.sort(key=lambda item: item[0])
        return iter([venue for _, venue in candidates])

    def add(self, venue: VenueRecord) -> VenueRecord:
        with self._lock:
            venue_id = venue.id or f"venue-{next(self._sequence)}"
            stored = replace(venue, id=venue_id)
            self._venues[venue_id] = stored
        return stored

    def update_coordinates(
        self, venue_id: str, coordinates: Coordinates, updated_at: datetime
    ) -> Optional[VenueRecord]:
        with self._lock:
            current = self._venues.get(venue_id)
            if current is None or not current.is_active:
                return None
            updated = current.with_coordinates(coordinates, updated_at)
            self._venues[venue_id] = updated
        return updated

    def delete(self, venue_id: str) -> bool:
        with self._lock:
            return self._venues.pop(venue_id, None) is not None


__all__ = ["InMemoryVenueRepository"]
