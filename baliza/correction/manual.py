"""Tabela de correções manuais mantida por operadores."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from baliza.domain.entities import Coordinates

log = logging.getLogger(__name__)


class ManualCorrectionError(RuntimeError):
    """Arquivo de correções manuais ilegível ou malformado."""


@dataclass(frozen=True, slots=True)
class ManualCorrection:
    """Verdade de campo definida por uma pessoa para um local conhecido."""

    external_id: int
    name: str
    city: str
    country: str
    coordinates: Coordinates

    @classmethod
    def from_mapping(cls, external_id: Any, data: Mapping[str, Any]) -> "ManualCorrection":
        try:
            identifier = int(external_id)
        except (TypeError, ValueError) as exc:
            raise ManualCorrectionError(f"Identificador externo inválido: {external_id!r}") from exc
        raw_coordinates = data.get("correctCoordinates") or data.get("correct_coordinates")
        try:
            coordinates = Coordinates.from_geojson(raw_coordinates)
        except ValueError as exc:
            raise ManualCorrectionError(
                f"Coordenadas inválidas na correção {identifier}: {exc}"
            ) from exc
        if not coordinates.in_world_range():
            raise ManualCorrectionError(
                f"Coordenadas fora da faixa mundial na correção {identifier}: {coordinates}"
            )
        return cls(
            external_id=identifier,
            name=str(data.get("name") or ""),
            city=str(data.get("city") or ""),
            country=str(data.get("country") or ""),
            coordinates=coordinates,
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "city": self.city,
            "country": self.country,
            "correctCoordinates": self.coordinates.to_geojson(),
        }


# Locais cujo geocodificador devolvia outro continente (Vitality Stadium em
# Nova York, Emirates Stadium na Nova Zelândia...). Coordenadas em [lon, lat].
_DEFAULT_TABLE: dict[int, dict[str, Any]] = {
    504: {"name": "Vitality Stadium", "city": "Bournemouth", "country": "England", "correctCoordinates": [-1.8384, 50.7352]},
    494: {"name": "Emirates Stadium", "city": "London", "country": "England", "correctCoordinates": [-0.1086, 51.5549]},
    562: {"name": "St. James' Park", "city": "Newcastle upon Tyne", "country": "England", "correctCoordinates": [-1.621667, 54.975556]},
    546: {"name": "Elland Road", "city": "Leeds", "country": "England", "correctCoordinates": [-1.572222, 53.777778]},
    1478: {"name": "Estadi Municipal de Montilivi", "city": "Girona", "country": "Spain", "correctCoordinates": [2.828996, 41.961230]},
    1491: {"name": "Reale Arena", "city": "Donostia-San Sebastián", "country": "Spain", "correctCoordinates": [-1.973569, 43.301390]},
    20422: {"name": "Estadio Coliseum", "city": "Getafe", "country": "Spain", "correctCoordinates": [-3.714933, 40.325725]},
    720: {"name": "Volksparkstadion", "city": "Hamburg", "country": "Germany", "correctCoordinates": [9.898706, 53.587154]},
    1386: {"name": "Celtic Park", "city": "Glasgow", "country": "Scotland", "correctCoordinates": [-4.206823, 55.850181]},
    21429: {"name": "Stade Gabriel-Montpied", "city": "Clermont-Ferrand", "country": "France", "correctCoordinates": [3.121500, 45.815877]},
    491: {"name": "Mill Farm Stadium", "city": "Wesham", "country": "England", "correctCoordinates": [-2.88971222672844, 53.797399799999994]},
    493: {"name": "Electrical Services Stadium", "city": "Aldershot, Hampshire", "country": "England", "correctCoordinates": [-1.06501, 50.818754]},
    648: {"name": "Stade Ange Casanova", "city": "Ajaccio", "country": "France", "correctCoordinates": [8.771950548735202, 41.951326]},
    747: {"name": "Donaustadion", "city": "Ulm", "country": "Germany", "correctCoordinates": [10.009386689538044, 48.4045157]},
    886: {"name": "Stadio Comunale Alberto Pinto", "city": "Caserta", "country": "Italy", "correctCoordinates": [14.34639212360069, 41.07446605]},
    1388: {"name": "Tannadice Park", "city": "Dundee", "country": "Scotland", "correctCoordinates": [-2.9690462572946066, 56.47458035]},
    1395: {"name": "Tulloch Caledonian Stadium", "city": "Inverness", "country": "Scotland", "correctCoordinates": [-4.216973233562136, 57.4947132]},
    1458: {"name": "Estadio Carlos Belmonte", "city": "Albacete", "country": "Spain", "correctCoordinates": [-1.8521439618755478, 38.9810821]},
    1465: {"name": "Estadio Anxo Carro", "city": "Lugo", "country": "Spain", "correctCoordinates": [-7.5709840782925415, 43.00334225]},
    1483: {"name": "Estadio La Rosaleda", "city": "Málaga", "country": "Spain", "correctCoordinates": [-4.426535165860329, 36.734959700000005]},
    3254: {"name": "Neuer Tivoli", "city": "Aachen", "country": "Germany", "correctCoordinates": [6.096494, 50.781685]},
    3518: {"name": "Central Park", "city": "Cowdenbeath", "country": "Scotland", "correctCoordinates": [-3.3471341958577003, 56.108888199999996]},
}


# Consultados pelo cache antes da rede, por nome exato do local.
DEFAULT_GEOCODE_OVERRIDES: dict[str, Coordinates] = {
    "The Cherry Red Records Stadium": Coordinates(longitude=-0.18667, latitude=51.43139),
}


def parse_manual_corrections(payload: Mapping[Any, Any]) -> dict[int, ManualCorrection]:
    corrections: dict[int, ManualCorrection] = {}
    for external_id, data in payload.items():
        if not isinstance(data, Mapping):
            raise ManualCorrectionError(f"Correção {external_id!r} deve ser um objeto")
        correction = ManualCorrection.from_mapping(external_id, data)
        corrections[correction.external_id] = correction
    return corrections


def default_manual_corrections() -> dict[int, ManualCorrection]:
    return parse_manual_corrections(_DEFAULT_TABLE)


def load_manual_corrections(path: Path | str | None = None) -> dict[int, ManualCorrection]:
    """Carrega a tabela de um arquivo JSON ou devolve a tabela embutida.

    O arquivo segue o formato ``{"504": {"name": ..., "city": ..., "country":
    ..., "correctCoordinates": [lon, lat]}}``.
    """

    if path is None:
        return default_manual_corrections()

    file_path = Path(path)
    try:
        with file_path.open("r", encoding="utf-8") as stream:
            payload = json.load(stream)
    except (OSError, json.JSONDecodeError) as exc:
        raise ManualCorrectionError(
            f"Não foi possível ler correções manuais em {file_path}: {exc}"
        ) from exc
    if not isinstance(payload, Mapping):
        raise ManualCorrectionError("O arquivo de correções manuais deve conter um objeto JSON")

    corrections = parse_manual_corrections(payload)
    log.info("Carregadas %s correções manuais de %s", len(corrections), file_path)
    return corrections


__all__ = [
    "DEFAULT_GEOCODE_OVERRIDES",
    "ManualCorrection",
    "ManualCorrectionError",
    "default_manual_corrections",
    "load_manual_corrections",
    "parse_manual_corrections",
]
