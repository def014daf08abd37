"""Adaptadores para provedores de geocodificação."""

from .locationiq import DEFAULT_BASE_URL, LocationIQGeocoder

__all__ = ["DEFAULT_BASE_URL", "LocationIQGeocoder"]
