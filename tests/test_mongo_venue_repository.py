"""Tests for the MongoDB venue repository using an in-memory collection double."""
from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any

from bson import ObjectId
from pymongo import ReturnDocument

from baliza.correction import CorrectionEngine
from baliza.domain.entities import Coordinates, VenueRecord
from baliza.infrastructure.repositories import MongoVenueRepository
from baliza.resolution import BoundsValidator, GeocodeCache, RateLimitGate

EMIRATES = Coordinates(longitude=-0.1086, latitude=51.5549)


class FakeMongoCursor:
    def __init__(self, documents: list[dict[str, Any]]) -> None:
        self._documents = documents
        self.sorted_by: list[tuple[str, int]] = []
        self.limited_to: int | None = None

    def sort(self, key: Any, direction: int = 1) -> "FakeMongoCursor":
        keys = key if isinstance(key, list) else [(key, direction)]
        self.sorted_by = keys
        for field, order in reversed(keys):
            self._documents.sort(key=lambda doc: str(doc.get(field)), reverse=order < 0)
        return self

    def limit(self, count: int) -> "FakeMongoCursor":
        self.limited_to = count
        self._documents = self._documents[:count]
        return self

    def __iter__(self):
        return iter(self._documents)


class FakeMongoCollection:
    """Records every query and answers with the documents it was seeded with."""

    def __init__(self, documents: list[dict[str, Any]] | None = None) -> None:
        self.documents = list(documents or [])
        self.queries: list[tuple[str, dict[str, Any]]] = []
        self.updates: list[tuple[dict[str, Any], dict[str, Any], Any]] = []
        self.last_cursor: FakeMongoCursor | None = None

    def insert_one(self, document: dict[str, Any]) -> SimpleNamespace:
        document = dict(document)
        document.setdefault("_id", ObjectId())
        self.documents.append(document)
        return SimpleNamespace(inserted_id=document["_id"])

    def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        self.queries.append(("find_one", query))
        return self._first(query)

    def find(self, query: dict[str, Any]) -> FakeMongoCursor:
        self.queries.append(("find", query))
        self.last_cursor = FakeMongoCursor([dict(doc) for doc in self.documents])
        return self.last_cursor

    def find_one_and_update(
        self, query: dict[str, Any], update: dict[str, Any], return_document: Any = None
    ) -> dict[str, Any] | None:
        self.updates.append((query, update, return_document))
        document = self._first(query)
        if document is None:
            return None
        document.update(update["$set"])
        return dict(document)

    def delete_one(self, query: dict[str, Any]) -> SimpleNamespace:
        document = self._first(query)
        if document is None:
            return SimpleNamespace(deleted_count=0)
        self.documents.remove(document)
        return SimpleNamespace(deleted_count=1)

    def _first(self, query: dict[str, Any]) -> dict[str, Any] | None:
        # Apenas igualdade simples; operadores como $ne e $regex são ignorados.
        for document in self.documents:
            if document.get("isActive") is False and "isActive" in query:
                continue
            if all(
                document.get(key) == value
                for key, value in query.items()
                if not isinstance(value, dict)
            ):
                return document
        return None


def test_add_serializes_location_and_legacy_coordinates() -> None:
    collection = FakeMongoCollection()
    repository = MongoVenueRepository(collection)

    stored = repository.add(
        VenueRecord(
            name="Emirates Stadium",
            city="London",
            country="England",
            aliases={"Arsenal Stadium", "Highbury North"},
            coordinates=EMIRATES,
        )
    )

    document = collection.documents[0]
    assert stored.id == str(document["_id"])
    assert document["location"] == {"type": "Point", "coordinates": [-0.1086, 51.5549]}
    assert document["coordinates"] == [-0.1086, 51.5549]
    assert document["aliases"] == ["Arsenal Stadium", "Highbury North"]
    assert "venueId" not in document


def test_get_converts_object_id_and_excludes_inactive() -> None:
    object_id = ObjectId()
    collection = FakeMongoCollection(
        [{"_id": object_id, "name": "Anfield", "venueId": "550", "location": {"type": "Point", "coordinates": [-2.9609, 53.4308]}}]
    )
    repository = MongoVenueRepository(collection)

    venue = repository.get(str(object_id))

    assert venue is not None
    assert venue.external_id == 550
    assert venue.coordinates == Coordinates(longitude=-2.9609, latitude=53.4308)
    _, query = collection.queries[-1]
    assert query["_id"] == object_id
    assert query["isActive"] == {"$ne": False}


def test_legacy_coordinates_are_read_when_location_is_missing() -> None:
    collection = FakeMongoCollection(
        [{"_id": "legacy", "name": "Elland Road", "coordinates": [-1.572222, 53.777778]}]
    )
    repository = MongoVenueRepository(collection)

    venue = repository.get("legacy")

    assert venue.coordinates == Coordinates(longitude=-1.572222, latitude=53.777778)


def test_unreadable_coordinates_become_missing() -> None:
    collection = FakeMongoCollection(
        [{"_id": "broken", "name": "Broken Ground", "location": {"coordinates": ["x"]}}]
    )

    venue = MongoVenueRepository(collection).get("broken")

    assert venue.coordinates is None


def test_case_insensitive_lookup_uses_anchored_escaped_regex() -> None:
    collection = FakeMongoCollection()
    repository = MongoVenueRepository(collection)

    repository.find_by_name("St. James' Park", "Newcastle", case_insensitive=True)

    _, query = collection.queries[-1]
    assert query["name"] == {"$regex": r"^St\.\ James'\ Park$", "$options": "i"}
    assert query["city"] == {"$regex": "^Newcastle$", "$options": "i"}


def test_find_near_builds_geo_query() -> None:
    collection = FakeMongoCollection()
    repository = MongoVenueRepository(collection)

    list(repository.find_near(EMIRATES, 1500))

    _, query = collection.queries[-1]
    assert query["location"] == {
        "$near": {
            "$geometry": {"type": "Point", "coordinates": [-0.1086, 51.5549]},
            "$maxDistance": 1500.0,
        }
    }


def test_iter_active_filters_venues_without_coordinates() -> None:
    collection = FakeMongoCollection(
        [
            {"_id": "a", "name": "Anfield", "location": {"coordinates": [-2.9609, 53.4308]}},
            {"_id": "b", "name": "Pending Ground"},
        ]
    )
    repository = MongoVenueRepository(collection)

    assert [venue.id for venue in repository.iter_active()] == ["a", "b"]
    assert [venue.id for venue in repository.iter_active(with_coordinates=True)] == ["a"]


def test_update_coordinates_sets_both_fields_and_timestamp() -> None:
    collection = FakeMongoCollection([{"_id": "emirates", "name": "Emirates Stadium"}])
    repository = MongoVenueRepository(collection)
    now = datetime(2024, 6, 1, tzinfo=timezone.utc)

    updated = repository.update_coordinates("emirates", EMIRATES, now)

    query, update, return_document = collection.updates[-1]
    assert query["_id"] == "emirates"
    assert update["$set"]["lastUpdated"] == now
    assert update["$set"]["location"]["coordinates"] == [-0.1086, 51.5549]
    assert return_document is ReturnDocument.AFTER
    assert updated.coordinates == EMIRATES
    assert updated.last_updated == now


def test_update_and_delete_report_missing_documents() -> None:
    repository = MongoVenueRepository(FakeMongoCollection())

    assert repository.update_coordinates("ghost", EMIRATES, datetime.now(timezone.utc)) is None
    assert repository.delete("ghost") is False


def test_iter_active_skips_corrupted_documents() -> None:
    collection = FakeMongoCollection(
        [
            {"_id": "a", "name": "Anfield", "location": {"coordinates": [-2.9609, 53.4308]}},
            {"_id": "b", "name": "", "location": {"coordinates": [-2.2913, 53.4631]}},
            {"_id": "c", "location": {"coordinates": [-0.1086, 51.5549]}},
            {"_id": "d", "name": 42},
        ]
    )
    repository = MongoVenueRepository(collection)

    assert [venue.id for venue in repository.iter_active()] == ["a"]


def test_scan_survives_corrupted_document() -> None:
    collection = FakeMongoCollection(
        [
            {"_id": "a", "name": "Anfield", "city": "Liverpool", "country": "England",
             "location": {"coordinates": [-2.9609, 53.4308]}},
            {"_id": "b", "name": "", "country": "England",
             "location": {"coordinates": [-67.4, 46.9]}},
        ]
    )

    class NoProvider:
        def search(self, query, *, limit=1):
            raise AssertionError("scan must not geocode")

    engine = CorrectionEngine(
        MongoVenueRepository(collection),
        GeocodeCache(NoProvider(), RateLimitGate(0.0)),
        BoundsValidator(),
        manual_corrections={},
    )

    summary = engine.scan_summary()

    assert summary.scanned == 1
    assert summary.issues == ()


def test_search_matches_name_city_country_and_aliases() -> None:
    collection = FakeMongoCollection(
        [{"_id": "emirates", "name": "Emirates Stadium", "aliases": ["Arsenal Stadium"]}]
    )
    repository = MongoVenueRepository(collection)

    found = repository.search("arsenal (north)", limit=5)

    assert [venue.id for venue in found] == ["emirates"]
    _, query = collection.queries[-1]
    pattern = {"$regex": r"arsenal\ \(north\)", "$options": "i"}
    assert query["$or"] == [
        {"name": pattern},
        {"city": pattern},
        {"country": pattern},
        {"aliases": pattern},
    ]
    assert query["isActive"] == {"$ne": False}
    assert collection.last_cursor.limited_to == 5


def test_find_by_country_sorts_by_city_then_name() -> None:
    collection = FakeMongoCollection(
        [
            {"_id": "1", "name": "Old Trafford", "city": "Manchester", "country": "England"},
            {"_id": "2", "name": "Goodison Park", "city": "Liverpool", "country": "England"},
            {"_id": "3", "name": "Anfield", "city": "Liverpool", "country": "England"},
        ]
    )
    repository = MongoVenueRepository(collection)

    venues = repository.find_by_country("england")

    assert [venue.name for venue in venues] == ["Anfield", "Goodison Park", "Old Trafford"]
    _, query = collection.queries[-1]
    assert query["country"] == {"$regex": "^england$", "$options": "i"}
    assert collection.last_cursor.sorted_by == [("city", 1), ("name", 1)]
