"""Entidade canônica de estádio/local de partida."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterable, Optional

from .coordinates import Coordinates


@dataclass(frozen=True)
class VenueRecord:
    """Registro canônico de um local com identidade e coordenadas."""

    #: Nome de exibição canônico do local.
    name: str
    #: Cidade em texto livre conforme recebida das fontes.
    city: str = ""
    #: País em texto livre; usado como chave na tabela de limites.
    country: str = ""
    #: Identificador estável atribuído pelo armazenamento.
    id: Optional[str] = None
    #: Identificador numérico do provedor de dados esportivos.
    external_id: Optional[int] = None
    #: Nomes alternativos conhecidos para o mesmo local.
    aliases: frozenset[str] = field(default_factory=frozenset)
    #: Coordenadas em ordem GeoJSON, quando conhecidas.
    coordinates: Optional[Coordinates] = None
    capacity: Optional[int] = None
    surface: Optional[str] = None
    address: Optional[str] = None
    image: Optional[str] = None
    #: Registros inativos ficam fora de buscas, mas permanecem para auditoria.
    is_active: bool = True
    #: Momento da última alteração de coordenadas ou identidade.
    last_updated: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("venue name cannot be empty")
        if not isinstance(self.aliases, frozenset):
            object.__setattr__(self, "aliases", _freeze_aliases(self.aliases))

    @property
    def has_coordinates(self) -> bool:
        return self.coordinates is not None

    def with_coordinates(
        self, coordinates: Coordinates, updated_at: datetime
    ) -> "VenueRecord":
        """Retorna uma cópia com novas coordenadas e carimbo de atualização."""

        return replace(self, coordinates=coordinates, last_updated=updated_at)

    def completeness(self) -> int:
        """Quantidade de campos descritivos preenchidos (capacidade, endereço, imagem)."""

        return sum(1 for value in (self.capacity, self.address, self.image) if value)

    def describe(self) -> str:
        parts = [self.name]
        location = ", ".join(part for part in (self.city, self.country) if part)
        if location:
            parts.append(f"({location})")
        return " ".join(parts)


def _freeze_aliases(values: Iterable[str] | None) -> frozenset[str]:
    if not values:
        return frozenset()
    if isinstance(values, str):
        values = [values]
    return frozenset(str(value) for value in values if str(value).strip())


__all__ = ["VenueRecord"]
