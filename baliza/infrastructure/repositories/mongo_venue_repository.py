"""Repositório de locais com persistência em MongoDB."""
from __future__ import annotations

import logging
import re
from dataclasses import replace
from datetime import datetime
from typing import Any, Iterable, Iterator, Mapping, Optional

from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument
from pymongo.collection import Collection

from baliza.domain.entities import Coordinates, VenueRecord
from baliza.domain.repositories import VenueRepository

log = logging.getLogger(__name__)

_ACTIVE = {"isActive": {"$ne": False}}


def _document_id(venue_id: str) -> Any:
    if isinstance(venue_id, ObjectId):
        return venue_id
    if ObjectId.is_valid(venue_id):
        return ObjectId(venue_id)
    return venue_id


def _anchored(value: str) -> dict[str, str]:
    return {"$regex": f"^{re.escape(value)}$", "$options": "i"}


def _contains(value: str) -> dict[str, str]:
    return {"$regex": re.escape(value), "$options": "i"}


class MongoVenueRepository(VenueRepository):
    """Gerencia a persistência de :class:`VenueRecord` em coleções MongoDB.

    ``location`` (GeoJSON Point) é a representação canônica das coordenadas;
    o campo legado ``coordinates`` é derivado dela na gravação e só é lido
    quando ``location`` está ausente.
    """

    def __init__(self, collection: Collection) -> None:
        """Guarda a coleção utilizada pelo repositório."""

        self._collection: Collection = collection
        """Coleção MongoDB responsável por armazenar os locais."""

    def get(self, venue_id: str) -> Optional[VenueRecord]:
        data = self._collection.find_one({"_id": _document_id(venue_id), **_ACTIVE})
        return self._deserialize_venue(data) if data else None

    def find_by_name(
        self, name: str, city: str | None = None, *, case_insensitive: bool = False
    ) -> Optional[VenueRecord]:
        criteria: dict[str, Any] = dict(_ACTIVE)
        criteria["name"] = _anchored(name) if case_insensitive else name
        if city:
            criteria["city"] = _anchored(city) if case_insensitive else city
        data = self._collection.find_one(criteria)
        return self._deserialize_venue(data) if data else None

    def find_by_name_fragment(
        self, fragment: str, city_fragment: str | None = None
    ) -> Optional[VenueRecord]:
        criteria: dict[str, Any] = dict(_ACTIVE)
        criteria["name"] = _contains(fragment)
        if city_fragment:
            criteria["city"] = _contains(city_fragment)
        data = self._collection.find_one(criteria)
        return self._deserialize_venue(data) if data else None

    def find_by_external_id(self, external_id: int) -> Optional[VenueRecord]:
        data = self._collection.find_one({"venueId": int(external_id), **_ACTIVE})
        return self._deserialize_venue(data) if data else None

    def iter_active(self, *, with_coordinates: bool = False) -> Iterable[VenueRecord]:
        """Itera sobre os locais ativos em ordem de inserção."""

        cursor = self._collection.find(dict(_ACTIVE)).sort("_id", ASCENDING)
        for venue in self._deserialize_all(cursor):
            if with_coordinates and not venue.has_coordinates:
                continue
            yield venue

    def search(self, text: str, limit: int = 20) -> list[VenueRecord]:
        pattern = _contains(text)
        criteria = {
            "$or": [{field: pattern} for field in ("name", "city", "country", "aliases")],
            **_ACTIVE,
        }
        cursor = self._collection.find(criteria).limit(int(limit))
        return list(self._deserialize_all(cursor))

    def find_by_country(self, country: str) -> list[VenueRecord]:
        cursor = self._collection.find({"country": _anchored(country), **_ACTIVE}).sort(
            [("city", ASCENDING), ("name", ASCENDING)]
        )
        return list(self._deserialize_all(cursor))

    def find_near(
        self, coordinates: Coordinates, max_distance_meters: float
    ) -> Iterator[VenueRecord]:
        """Consulta ``$near`` sobre o índice 2dsphere; o servidor ordena por distância."""

        criteria = {
            "location": {
                "$near": {
                    "$geometry": coordinates.to_geojson_point(),
                    "$maxDistance": float(max_distance_meters),
                }
            },
            **_ACTIVE,
        }
        yield from self._deserialize_all(self._collection.find(criteria))

    def add(self, venue: VenueRecord) -> VenueRecord:
        result = self._collection.insert_one(self._serialize_venue(venue))
        return replace(venue, id=str(result.inserted_id))

    def update_coordinates(
        self, venue_id: str, coordinates: Coordinates, updated_at: datetime
    ) -> Optional[VenueRecord]:
        data = self._collection.find_one_and_update(
            {"_id": _document_id(venue_id), **_ACTIVE},
            {"$set": {**self._serialize_coordinates(coordinates), "lastUpdated": updated_at}},
            return_document=ReturnDocument.AFTER,
        )
        return self._deserialize_venue(data) if data else None

    def delete(self, venue_id: str) -> bool:
        result = self._collection.delete_one({"_id": _document_id(venue_id)})
        return bool(getattr(result, "deleted_count", 0))

    @staticmethod
    def _serialize_coordinates(coordinates: Coordinates) -> dict[str, Any]:
        return {
            "location": coordinates.to_geojson_point(),
            "coordinates": coordinates.to_geojson(),
        }

    def _serialize_venue(self, venue: VenueRecord) -> dict[str, Any]:
        """Converte ``VenueRecord`` em documento MongoDB."""

        document: dict[str, Any] = {
            "name": venue.name,
            "aliases": sorted(venue.aliases),
            "city": venue.city,
            "country": venue.country,
            "capacity": venue.capacity,
            "surface": venue.surface,
            "address": venue.address,
            "image": venue.image,
            "isActive": venue.is_active,
            "lastUpdated": venue.last_updated,
        }
        if venue.id is not None:
            document["_id"] = _document_id(venue.id)
        # Índice esparso: ausência de venueId não pode virar null.
        if venue.external_id is not None:
            document["venueId"] = int(venue.external_id)
        if venue.coordinates is not None:
            document.update(self._serialize_coordinates(venue.coordinates))
        return document

    def _deserialize_all(self, documents: Iterable[Mapping[str, Any]]) -> Iterator[VenueRecord]:
        """Desserializa um cursor, pulando documentos corrompidos."""

        for data in documents:
            try:
                yield self._deserialize_venue(data)
            except (KeyError, TypeError, ValueError) as exc:
                log.warning("Documento de local ilegível ignorado (%s): %s", data.get("_id"), exc)

    def _deserialize_venue(self, data: Mapping[str, Any]) -> VenueRecord:
        """Reconstrói ``VenueRecord`` a partir de um documento MongoDB."""

        return VenueRecord(
            id=str(data["_id"]) if data.get("_id") is not None else None,
            external_id=self._parse_external_id(data.get("venueId")),
            name=data["name"],
            aliases=data.get("aliases") or (),
            city=data.get("city") or "",
            country=data.get("country") or "",
            coordinates=self._parse_coordinates(data),
            capacity=data.get("capacity"),
            surface=data.get("surface"),
            address=data.get("address"),
            image=data.get("image"),
            is_active=data.get("isActive", True) is not False,
            last_updated=data.get("lastUpdated"),
        )

    @staticmethod
    def _parse_external_id(value: Any) -> Optional[int]:
        if value is None or value == "":
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            log.warning("venueId não numérico ignorado: %r", value)
            return None

    @staticmethod
    def _parse_coordinates(data: Mapping[str, Any]) -> Optional[Coordinates]:
        location = data.get("location")
        raw = location.get("coordinates") if isinstance(location, Mapping) else None
        if raw is None:
            raw = data.get("coordinates")
        if raw is None:
            return None
        try:
            return Coordinates.from_geojson(raw)
        except (TypeError, ValueError) as exc:
            log.warning(
                "Coordenadas ilegíveis no local %s (%r): %s", data.get("_id"), raw, exc
            )
            return None


__all__ = ["MongoVenueRepository"]
