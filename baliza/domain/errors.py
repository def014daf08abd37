"""Erros de domínio da resolução e correção de locais."""
from __future__ import annotations

from typing import Any


class VenueResolutionError(RuntimeError):
    """Base para falhas reportadas pelo núcleo de resolução."""


class GeocodeFailure(VenueResolutionError):
    """O provedor não devolveu um resultado utilizável para a consulta."""

    def __init__(self, message: str, *, query: str | None = None) -> None:
        super().__init__(message)
        self.query = query


class RateLimited(GeocodeFailure):
    """O provedor recusou a consulta por limite de taxa, mesmo após a nova tentativa."""


class AuthFailure(VenueResolutionError):
    """Chave de API ausente, inválida ou sem permissão; não adianta repetir."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidCoordinates(VenueResolutionError):
    """Coordenadas fora da faixa mundial ou dos limites do país."""

    def __init__(self, message: str, *, violations: tuple[Any, ...] = ()) -> None:
        super().__init__(message)
        self.violations = violations


class AmbiguousDuplicate(VenueResolutionError):
    """Grupo de duplicatas que não pode ser resolvido automaticamente."""

    def __init__(self, message: str, *, normalized_name: str | None = None) -> None:
        super().__init__(message)
        self.normalized_name = normalized_name


__all__ = [
    "AmbiguousDuplicate",
    "AuthFailure",
    "GeocodeFailure",
    "InvalidCoordinates",
    "RateLimited",
    "VenueResolutionError",
]
