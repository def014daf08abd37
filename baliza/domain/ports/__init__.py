"""Portas de saída consumidas pelo núcleo de resolução."""
from .geocoding_provider import GeocodingProvider

__all__ = ["GeocodingProvider"]
