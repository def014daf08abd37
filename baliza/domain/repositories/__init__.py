"""Interfaces de repositório utilizadas pela camada de domínio."""
from .venue_repository import VenueRepository

__all__ = ["VenueRepository"]
