"""API pública do domínio da aplicação Baliza.

O módulo centraliza as entidades, portas, repositórios e erros mais
utilizados para que possam ser importados diretamente de ``baliza.domain``.
"""

from .entities import Coordinates, VenueRecord, VenueReference
from .errors import (
    AmbiguousDuplicate,
    AuthFailure,
    GeocodeFailure,
    InvalidCoordinates,
    RateLimited,
    VenueResolutionError,
)
from .ports import GeocodingProvider
from .repositories import VenueRepository

__all__ = [
    "AmbiguousDuplicate",
    "AuthFailure",
    "Coordinates",
    "GeocodeFailure",
    "GeocodingProvider",
    "InvalidCoordinates",
    "RateLimited",
    "VenueRecord",
    "VenueReference",
    "VenueRepository",
    "VenueResolutionError",
]
