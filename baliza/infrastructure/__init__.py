"""Infrastructure public API for Baliza.

Exposes concrete implementations and helpers so consumers can import from
``baliza.infrastructure`` directly.
"""

from .database import MongoClientFactory, MongoSettings
from .geocoding import LocationIQGeocoder
from .repositories import (
    InMemoryVenueRepository,
    MongoVenueRepository,
    ensure_venue_indexes,
)

__all__ = [
    "MongoSettings",
    "MongoClientFactory",
    "MongoVenueRepository",
    "InMemoryVenueRepository",
    "LocationIQGeocoder",
    "ensure_venue_indexes",
]
