"""Entidades de domínio utilizadas na resolução de locais."""
from .coordinates import Coordinates
from .reference import VenueReference
from .venue import VenueRecord

__all__ = ["Coordinates", "VenueRecord", "VenueReference"]
