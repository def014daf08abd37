"""Referência ruidosa a um local, como recebida de feeds externos."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class VenueReference:
    """Identidade parcial que o chamador deseja resolver para um registro."""

    name: str
    city: Optional[str] = None
    country: Optional[str] = None
    external_id: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("venue reference requires a name")

    def describe(self) -> str:
        return ", ".join(part for part in (self.name, self.city, self.country) if part)


__all__ = ["VenueReference"]
