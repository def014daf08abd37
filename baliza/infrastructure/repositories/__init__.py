"""Implementações de repositórios de locais."""

from .memory_venue_repository import InMemoryVenueRepository
from .mongo_venue_repository import MongoVenueRepository
from .venue_indexes import ensure_venue_indexes

__all__ = [
    "InMemoryVenueRepository",
    "MongoVenueRepository",
    "ensure_venue_indexes",
]
