"""Utilitários para criação de índices da coleção de locais."""
from __future__ import annotations

import logging

from pymongo import ASCENDING, GEOSPHERE
from pymongo.collection import Collection
from pymongo.errors import OperationFailure

log = logging.getLogger(__name__)

# IndexOptionsConflict / IndexKeySpecsConflict: índice equivalente já existe.
_EXISTING_INDEX_CODES = frozenset({85, 86})


def ensure_venue_indexes(collection: Collection) -> None:
    """Garante que todos os índices necessários para locais existam."""

    definitions: tuple[tuple[list[tuple[str, object]], dict[str, object]], ...] = (
        (
            [("location", GEOSPHERE)],
            {"name": "location_2dsphere", "background": True},
        ),
        (
            [("name", ASCENDING)],
            {"name": "venue_name", "background": True},
        ),
        (
            [("city", ASCENDING)],
            {"name": "venue_city", "background": True},
        ),
        (
            [("country", ASCENDING)],
            {"name": "venue_country", "background": True},
        ),
        (
            [("venueId", ASCENDING)],
            {"name": "venue_external_id", "sparse": True, "background": True},
        ),
    )

    for keys, options in definitions:
        try:
            collection.create_index(keys, **options)
        except OperationFailure as exc:
            if exc.code not in _EXISTING_INDEX_CODES:
                raise
            log.warning("Índice %s já existe com outra definição: %s", options["name"], exc)


__all__ = ["ensure_venue_indexes"]
