"""Utilidades geográficas para validação e proximidade de locais."""

from __future__ import annotations

import math

from baliza.domain.entities import Coordinates

_EARTH_RADIUS_KM = 6371.0


def haversine_distance_km(origin: Coordinates, destination: Coordinates) -> float:
    """Calcula a distância de círculo máximo entre dois pontos, em quilômetros."""

    phi1 = math.radians(origin.latitude)
    phi2 = math.radians(destination.latitude)
    delta_phi = math.radians(destination.latitude - origin.latitude)
    delta_lambda = math.radians(destination.longitude - origin.longitude)

    sin_delta_phi = math.sin(delta_phi / 2.0)
    sin_delta_lambda = math.sin(delta_lambda / 2.0)

    a = sin_delta_phi ** 2 + math.cos(phi1) * math.cos(phi2) * sin_delta_lambda ** 2
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return _EARTH_RADIUS_KM * c


def haversine_distance_meters(origin: Coordinates, destination: Coordinates) -> float:
    return haversine_distance_km(origin, destination) * 1000.0


__all__ = ["haversine_distance_km", "haversine_distance_meters"]
