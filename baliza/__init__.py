"""Baliza - resolução de identidade e geocodificação de locais de partidas."""
from .container import BalizaContainer, build_container
from .domain import Coordinates, VenueRecord, VenueReference
from .resolution import ResolutionOrchestrator, ResolutionResult, ResolutionState

__all__ = [
    "BalizaContainer",
    "Coordinates",
    "ResolutionOrchestrator",
    "ResolutionResult",
    "ResolutionState",
    "VenueRecord",
    "VenueReference",
    "build_container",
]
