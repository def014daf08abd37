"""Validação geográfica de coordenadas por país e por cidade."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Mapping

from baliza.domain.entities import Coordinates
from baliza.domain.errors import InvalidCoordinates

from .geoutils import haversine_distance_km

#: Distância máxima aceita entre um estádio e o centro da cidade (subúrbios inclusos).
DEFAULT_CITY_RADIUS_KM = 50.0


@dataclass(frozen=True, slots=True)
class CountryBounds:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, coordinates: Coordinates) -> bool:
        return (
            self.min_lat <= coordinates.latitude <= self.max_lat
            and self.min_lon <= coordinates.longitude <= self.max_lon
        )


# Retângulos aproximados: filtro de sanidade, não fronteira precisa.
COUNTRY_BOUNDS: dict[str, CountryBounds] = {
    "England": CountryBounds(min_lat=50.0, max_lat=55.8, min_lon=-6.0, max_lon=2.0),
    "Scotland": CountryBounds(min_lat=54.6, max_lat=60.9, min_lon=-8.6, max_lon=-0.7),
    "Wales": CountryBounds(min_lat=51.3, max_lat=53.5, min_lon=-5.3, max_lon=-2.7),
    "Germany": CountryBounds(min_lat=47.0, max_lat=55.0, min_lon=5.0, max_lon=15.0),
    "France": CountryBounds(min_lat=41.0, max_lat=51.0, min_lon=-5.0, max_lon=10.0),
    "Spain": CountryBounds(min_lat=36.0, max_lat=44.0, min_lon=-10.0, max_lon=4.0),
    "Italy": CountryBounds(min_lat=36.0, max_lat=47.0, min_lon=6.0, max_lon=19.0),
    "Netherlands": CountryBounds(min_lat=50.7, max_lat=53.7, min_lon=3.0, max_lon=7.3),
    "Portugal": CountryBounds(min_lat=36.9, max_lat=42.2, min_lon=-9.5, max_lon=-6.2),
    "Belgium": CountryBounds(min_lat=49.5, max_lat=51.5, min_lon=2.5, max_lon=6.4),
    "Mexico": CountryBounds(min_lat=14.5, max_lat=32.7, min_lon=-118.4, max_lon=-86.7),
    "USA": CountryBounds(min_lat=24.5, max_lat=49.4, min_lon=-125.0, max_lon=-66.9),
    "Brazil": CountryBounds(min_lat=-33.7, max_lat=5.3, min_lon=-73.9, max_lon=-32.4),
}

CITY_CENTERS: dict[str, Coordinates] = {
    "London": Coordinates(longitude=-0.1278, latitude=51.5074),
    "Manchester": Coordinates(longitude=-2.2426, latitude=53.4808),
    "Liverpool": Coordinates(longitude=-2.9916, latitude=53.4084),
    "Munich": Coordinates(longitude=11.5820, latitude=48.1351),
    "Berlin": Coordinates(longitude=13.4050, latitude=52.5200),
    "Paris": Coordinates(longitude=2.3522, latitude=48.8566),
    "Madrid": Coordinates(longitude=-3.7038, latitude=40.4168),
    "Barcelona": Coordinates(longitude=2.1734, latitude=41.3851),
    "Milan": Coordinates(longitude=9.1900, latitude=45.4642),
    "Rome": Coordinates(longitude=12.4964, latitude=41.9028),
}


class Severity(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"


class ViolationKind(str, enum.Enum):
    INVALID_RANGE = "invalid_range"
    COUNTRY_BOUNDS = "country_bounds"
    CITY_DISTANCE = "city_distance"


@dataclass(frozen=True, slots=True)
class BoundsViolation:
    """Falha de uma verificação geográfica com severidade própria."""

    kind: ViolationKind
    severity: Severity
    message: str


class BoundsValidator:
    """Verifica se coordenadas fazem sentido para o país e a cidade do local.

    A verificação de país é uma afirmação positiva: países fora da tabela
    não são rejeitados. A proximidade da cidade é apenas consultiva
    (severidade média) e nunca se confunde com a verificação de país.
    """

    def __init__(
        self,
        country_bounds: Mapping[str, CountryBounds] | None = None,
        city_centers: Mapping[str, Coordinates] | None = None,
        *,
        city_radius_km: float = DEFAULT_CITY_RADIUS_KM,
    ) -> None:
        self._country_bounds = dict(COUNTRY_BOUNDS if country_bounds is None else country_bounds)
        self._city_centers = dict(CITY_CENTERS if city_centers is None else city_centers)
        self._city_radius_km = float(city_radius_km)

    def knows_country(self, country: str | None) -> bool:
        return bool(country) and country in self._country_bounds

    def is_valid(self, coordinates: Coordinates, country: str | None) -> bool:
        return self._country_violation(coordinates, country) is None

    def is_near_city(
        self,
        coordinates: Coordinates,
        city: str | None,
        max_distance_km: float | None = None,
    ) -> bool:
        return self._city_violation(coordinates, city, max_distance_km) is None

    def check(
        self,
        coordinates: Coordinates,
        country: str | None,
        city: str | None = None,
    ) -> tuple[BoundsViolation, ...]:
        """Executa as duas verificações independentes e devolve as falhas."""

        violations: list[BoundsViolation] = []
        country_violation = self._country_violation(coordinates, country)
        if country_violation is not None:
            violations.append(country_violation)
        city_violation = self._city_violation(coordinates, city, None)
        if city_violation is not None:
            violations.append(city_violation)
        return tuple(violations)

    def ensure_valid(self, coordinates: Coordinates | None, country: str | None) -> Coordinates:
        """Levanta ``InvalidCoordinates`` quando o ponto falha a verificação de país."""

        if coordinates is None:
            raise InvalidCoordinates("Local sem coordenadas")
        violation = self._country_violation(coordinates, country)
        if violation is not None:
            raise InvalidCoordinates(violation.message, violations=(violation,))
        return coordinates

    def _country_violation(
        self, coordinates: Coordinates, country: str | None
    ) -> BoundsViolation | None:
        if not coordinates.in_world_range():
            return BoundsViolation(
                kind=ViolationKind.INVALID_RANGE,
                severity=Severity.HIGH,
                message=f"Coordinates {coordinates} are outside valid ranges",
            )
        bounds = self._country_bounds.get(country or "")
        if bounds is None or bounds.contains(coordinates):
            return None
        return BoundsViolation(
            kind=ViolationKind.COUNTRY_BOUNDS,
            severity=Severity.HIGH,
            message=f"Coordinates {coordinates} are outside {country} bounds",
        )

    def _city_violation(
        self,
        coordinates: Coordinates,
        city: str | None,
        max_distance_km: float | None,
    ) -> BoundsViolation | None:
        center = self._city_centers.get(city or "")
        if center is None:
            return None
        limit = self._city_radius_km if max_distance_km is None else float(max_distance_km)
        distance = haversine_distance_km(coordinates, center)
        if distance <= limit:
            return None
        return BoundsViolation(
            kind=ViolationKind.CITY_DISTANCE,
            severity=Severity.MEDIUM,
            message=f"Coordinates are {distance:.1f}km from {city} center (limit {limit:.0f}km)",
        )


__all__ = [
    "BoundsValidator",
    "BoundsViolation",
    "CITY_CENTERS",
    "COUNTRY_BOUNDS",
    "CountryBounds",
    "DEFAULT_CITY_RADIUS_KM",
    "Severity",
    "ViolationKind",
]
