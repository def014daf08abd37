"""Par de coordenadas geográficas em ordem GeoJSON (longitude, latitude)."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence

_MIN_LONGITUDE = -180.0
_MAX_LONGITUDE = 180.0
_MIN_LATITUDE = -90.0
_MAX_LATITUDE = 90.0


def _to_float(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be numeric, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field_name} must be numeric, got {value!r}") from exc
    if math.isnan(number) or math.isinf(number):
        raise ValueError(f"{field_name} must be finite, got {value!r}")
    return number


@dataclass(frozen=True, slots=True, kw_only=True)
class Coordinates:
    """Representa um ponto geográfico sempre identificado por nome de eixo.

    O construtor exige argumentos nomeados para que ``longitude`` e
    ``latitude`` nunca sejam trocados por posição. Valores fora da faixa
    mundial continuam representáveis: registros históricos corrompidos
    precisam ser carregados para que possam ser detectados e corrigidos.
    """

    #: Longitude em graus decimais (eixo X no GeoJSON).
    longitude: float
    #: Latitude em graus decimais (eixo Y no GeoJSON).
    latitude: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "longitude", _to_float(self.longitude, "longitude"))
        object.__setattr__(self, "latitude", _to_float(self.latitude, "latitude"))

    @classmethod
    def from_geojson(cls, value: Sequence[Any]) -> "Coordinates":
        """Constrói a partir de uma sequência ``[lon, lat]`` persistida."""

        if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
            raise ValueError(f"GeoJSON coordinates must be a [lon, lat] sequence, got {value!r}")
        if len(value) != 2:
            raise ValueError(f"GeoJSON coordinates must have exactly two items, got {value!r}")
        longitude, latitude = value
        return cls(longitude=longitude, latitude=latitude)

    @classmethod
    def from_provider(cls, *, lat: Any, lon: Any) -> "Coordinates":
        """Converte a resposta ``(lat, lon)`` de um geocodificador.

        Provedores devolvem latitude primeiro e como texto; esta é a única
        transposição permitida dentro do sistema.
        """

        return cls(longitude=_to_float(lon, "lon"), latitude=_to_float(lat, "lat"))

    def to_geojson(self) -> list[float]:
        """Serializa como ``[lon, lat]`` para armazenamento e índices 2dsphere."""

        return [self.longitude, self.latitude]

    def to_geojson_point(self) -> dict[str, Any]:
        return {"type": "Point", "coordinates": self.to_geojson()}

    def in_world_range(self) -> bool:
        return (
            _MIN_LONGITUDE <= self.longitude <= _MAX_LONGITUDE
            and _MIN_LATITUDE <= self.latitude <= _MAX_LATITUDE
        )

    def __str__(self) -> str:
        return f"[{self.longitude}, {self.latitude}]"


__all__ = ["Coordinates"]
