"""Contrato de persistência para registros de locais."""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Iterator, Optional

from baliza.domain.entities import Coordinates, VenueRecord


class VenueRepository(ABC):
    """Define as consultas e escritas que o núcleo faz no armazenamento de locais.

    Todas as consultas ignoram registros inativos.
    """

    @abstractmethod
    def get(self, venue_id: str) -> Optional[VenueRecord]:
        """Recuperar um local ativo pelo identificador interno."""

    @abstractmethod
    def find_by_name(
        self, name: str, city: str | None = None, *, case_insensitive: bool = False
    ) -> Optional[VenueRecord]:
        """Buscar pelo nome completo (e cidade, quando informada).

        Com ``case_insensitive`` a comparação ignora caixa, mas continua
        ancorada no início e no fim do valor.
        """

    @abstractmethod
    def find_by_name_fragment(
        self, fragment: str, city_fragment: str | None = None
    ) -> Optional[VenueRecord]:
        """Buscar o primeiro local cujo nome contém o fragmento (sem diferenciar caixa)."""

    @abstractmethod
    def find_by_external_id(self, external_id: int) -> Optional[VenueRecord]:
        """Buscar pelo identificador numérico do provedor externo."""

    @abstractmethod
    def iter_active(self, *, with_coordinates: bool = False) -> Iterable[VenueRecord]:
        """Iterar sobre todos os locais ativos."""

    @abstractmethod
    def search(self, text: str, limit: int = 20) -> list[VenueRecord]:
        """Buscar locais cujo nome, cidade, país ou apelido contém o texto (sem diferenciar caixa)."""

    @abstractmethod
    def find_by_country(self, country: str) -> list[VenueRecord]:
        """Listar os locais de um país, ordenados por cidade e depois por nome."""

    @abstractmethod
    def find_near(
        self, coordinates: Coordinates, max_distance_meters: float
    ) -> Iterator[VenueRecord]:
        """Iterar sobre locais próximos, do mais perto para o mais longe."""

    @abstractmethod
    def add(self, venue: VenueRecord) -> VenueRecord:
        """Persistir um novo local e devolvê-lo com o identificador atribuído."""

    @abstractmethod
    def update_coordinates(
        self, venue_id: str, coordinates: Coordinates, updated_at: datetime
    ) -> Optional[VenueRecord]:
        """Gravar novas coordenadas; devolve ``None`` se o local não existir."""

    @abstractmethod
    def delete(self, venue_id: str) -> bool:
        """Remover fisicamente um local; usado apenas na fusão de duplicatas."""
