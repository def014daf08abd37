"""Cache de geocodificação com deduplicação, lápides e limite de taxa."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from baliza.domain.entities import Coordinates
from baliza.domain.errors import (
    AuthFailure,
    GeocodeFailure,
    RateLimited,
    VenueResolutionError,
)
from baliza.domain.ports import GeocodingProvider

from .rate_limit import RateLimitGate

log = logging.getLogger(__name__)

#: Espera mínima antes de repetir uma consulta que recebeu HTTP 429.
MIN_RETRY_BACKOFF = 2.0
_MAX_ATTEMPTS = 2


@dataclass(frozen=True, slots=True)
class CacheKey:
    """Chave composta ``(name, city, country)`` com igualdade por campo.

    Os valores são os textos brutos recebidos; ``None`` e texto vazio são
    equivalentes. Quem quiser compartilhar entradas entre grafias diferentes
    deve normalizar antes de chamar o cache.
    """

    name: str
    city: str = ""
    country: str = ""

    @classmethod
    def build(
        cls, name: str | None, city: str | None = None, country: str | None = None
    ) -> "CacheKey":
        return cls(name=name or "", city=city or "", country=country or "")

    @classmethod
    def coerce(cls, value: Any) -> "CacheKey":
        """Aceita ``CacheKey``, mapeamentos ou sequências ``(name, city, country)``."""

        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return cls.build(value.get("name"), value.get("city"), value.get("country"))
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            items = list(value) + [None, None]
            return cls.build(items[0], items[1], items[2])
        name = getattr(value, "name", None)
        if name is not None:
            return cls.build(name, getattr(value, "city", None), getattr(value, "country", None))
        raise TypeError(f"cannot build a geocoding key from {value!r}")

    def query(self) -> str:
        """Texto enviado ao provedor, omitindo segmentos vazios."""

        return ", ".join(part for part in (self.name, self.city, self.country) if part)


@dataclass(frozen=True, slots=True)
class GeocodeMatch:
    """Melhor resultado devolvido pelo provedor já em ordem GeoJSON."""

    coordinates: Coordinates
    display_name: str | None = None
    importance: float = 0.0
    source: str = "provider"


@dataclass(frozen=True, slots=True)
class _CacheEntry:
    match: GeocodeMatch | None
    reason: str | None = None

    @property
    def is_tombstone(self) -> bool:
        return self.match is None


@dataclass(frozen=True)
class GeocodeStats:
    hits: int
    misses: int
    provider_calls: int
    tombstones: int
    size: int

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        total = self.total_requests
        return (self.hits / total) if total else 0.0

    def to_mapping(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "provider_calls": self.provider_calls,
            "tombstones": self.tombstones,
            "size": self.size,
            "total_requests": self.total_requests,
            "hit_rate": round(self.hit_rate, 4),
        }


@dataclass
class BatchGeocodeResult:
    """Resultado parcial de :meth:`GeocodeCache.resolve_batch`."""

    requested: int
    coordinates: dict[CacheKey, Coordinates] = field(default_factory=dict)
    failures: dict[CacheKey, VenueResolutionError] = field(default_factory=dict)

    @property
    def unique(self) -> int:
        return len(self.coordinates) + len(self.failures)

    @property
    def succeeded(self) -> int:
        return len(self.coordinates)

    @property
    def failed(self) -> int:
        return len(self.failures)


def parse_provider_result(payload: Mapping[str, Any], *, query: str | None = None) -> GeocodeMatch:
    """Converte um item ``{lat, lon, display_name, importance}`` do provedor."""

    try:
        coordinates = Coordinates.from_provider(lat=payload["lat"], lon=payload["lon"])
    except (KeyError, TypeError, ValueError) as exc:
        raise GeocodeFailure(
            f"Resposta do geocodificador sem coordenadas válidas: {exc}", query=query
        ) from exc
    try:
        importance = float(payload.get("importance") or 0.0)
    except (TypeError, ValueError):
        importance = 0.0
    display_name = payload.get("display_name")
    return GeocodeMatch(
        coordinates=coordinates,
        display_name=str(display_name) if display_name is not None else None,
        importance=importance,
    )


class GeocodeCache:
    """Camada única entre o núcleo e o provedor de geocodificação.

    Instanciada uma vez por processo e injetada em todos os consumidores.
    Acertos (inclusive lápides) não tocam a rede; faltas atravessam o
    :class:`RateLimitGate` compartilhado. Para cada chave há no máximo uma
    requisição em andamento: chamadas concorrentes aguardam a primeira e
    reutilizam o resultado armazenado.
    """

    def __init__(
        self,
        provider: GeocodingProvider,
        gate: RateLimitGate,
        *,
        retry_backoff: float = MIN_RETRY_BACKOFF,
        manual_overrides: Mapping[str, Coordinates] | None = None,
    ) -> None:
        if retry_backoff < MIN_RETRY_BACKOFF:
            raise ValueError(f"retry_backoff must be at least {MIN_RETRY_BACKOFF}s")
        self._provider = provider
        self._gate = gate
        self._retry_backoff = float(retry_backoff)
        self._manual_overrides = dict(manual_overrides or {})
        self._lock = threading.Lock()
        self._entries: dict[CacheKey, _CacheEntry] = {}
        self._in_flight: dict[CacheKey, threading.Event] = {}
        self._hits = 0
        self._misses = 0
        self._provider_calls = 0

    @property
    def gate(self) -> RateLimitGate:
        return self._gate

    def resolve(
        self, name: str, city: str | None = None, country: str | None = None
    ) -> Coordinates:
        """Devolve as coordenadas ``(lon, lat)`` da melhor correspondência.

        Levanta ``GeocodeFailure`` quando não há resultado utilizável,
        ``RateLimited`` após dois HTTP 429 seguidos e ``AuthFailure`` para
        problemas de credencial.
        """

        return self.lookup(name, city, country).coordinates

    def lookup(
        self, name: str, city: str | None = None, country: str | None = None
    ) -> GeocodeMatch:
        """Igual a :meth:`resolve`, mas devolve o resultado completo do provedor."""

        return self._lookup_key(CacheKey.build(name, city, country))

    def resolve_batch(self, entries: Iterable[Any]) -> BatchGeocodeResult:
        """Resolve várias entradas, deduplicando chaves idênticas antes da rede.

        As chaves únicas passam em série pelo mesmo portão de taxa; uma falha
        individual fica registrada em ``failures`` e não interrompe o lote.
        """

        unique: dict[CacheKey, None] = {}
        requested = 0
        for entry in entries:
            requested += 1
            unique.setdefault(CacheKey.coerce(entry), None)

        result = BatchGeocodeResult(requested=requested)
        log.info(
            "Geocodificando lote com %s entradas (%s únicas)", requested, len(unique)
        )
        for key in unique:
            try:
                result.coordinates[key] = self._lookup_key(key).coordinates
            except VenueResolutionError as exc:
                result.failures[key] = exc
                log.warning("Falha ao geocodificar %r no lote: %s", key.query(), exc)
        return result

    def stats(self) -> GeocodeStats:
        with self._lock:
            tombstones = sum(1 for entry in self._entries.values() if entry.is_tombstone)
            return GeocodeStats(
                hits=self._hits,
                misses=self._misses,
                provider_calls=self._provider_calls,
                tombstones=tombstones,
                size=len(self._entries),
            )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._provider_calls = 0
        log.info("Cache de geocodificação limpo")

    def _lookup_key(self, key: CacheKey) -> GeocodeMatch:
        while True:
            with self._lock:
                entry = self._entries.get(key)
                if entry is not None:
                    self._hits += 1
                    log.debug("Cache de geocodificação: acerto para %r", key.query())
                    return self._unwrap(key, entry)
                pending = self._in_flight.get(key)
                leader = pending is None
                if leader:
                    pending = threading.Event()
                    self._in_flight[key] = pending
                    self._misses += 1

            if not leader:
                pending.wait()
                continue

            try:
                entry = self._fetch(key)
                with self._lock:
                    self._entries[key] = entry
            finally:
                with self._lock:
                    self._in_flight.pop(key, None)
                pending.set()
            return self._unwrap(key, entry)

    @staticmethod
    def _unwrap(key: CacheKey, entry: _CacheEntry) -> GeocodeMatch:
        if entry.match is None:
            raise GeocodeFailure(
                entry.reason or f"Nenhum resultado para {key.query()!r}", query=key.query()
            )
        return entry.match

    def _fetch(self, key: CacheKey) -> _CacheEntry:
        override = self._manual_overrides.get(key.name)
        if override is not None:
            log.info("Usando coordenadas manuais para %r", key.name)
            return _CacheEntry(
                GeocodeMatch(
                    coordinates=override,
                    display_name=key.query(),
                    importance=1.0,
                    source="manual_override",
                )
            )

        query = key.query()
        if not query:
            return _CacheEntry(None, "Consulta de geocodificação vazia")

        payload = self._call_provider(query)
        if not payload:
            log.warning("Nenhum resultado de geocodificação para %r; registrando lápide", query)
            return _CacheEntry(None, f"Nenhum resultado de geocodificação para {query!r}")

        match = parse_provider_result(payload[0], query=query)
        log.info("Geocodificação de %r resolvida em %s", query, match.coordinates)
        return _CacheEntry(match)

    def _call_provider(self, query: str) -> Sequence[Mapping[str, Any]]:
        attempt = 0
        while True:
            attempt += 1
            with self._gate.slot():
                with self._lock:
                    self._provider_calls += 1
                try:
                    return self._provider.search(query, limit=1)
                except RateLimited as exc:
                    self._gate.defer(self._retry_backoff)
                    if attempt >= _MAX_ATTEMPTS:
                        log.error(
                            "Geocodificador continua limitando %r após %s tentativas",
                            query,
                            attempt,
                        )
                        raise RateLimited(
                            f"Limite de taxa do geocodificador excedido para {query!r}",
                            query=query,
                        ) from exc
                    log.warning(
                        "HTTP 429 ao geocodificar %r; nova tentativa em %.1fs",
                        query,
                        self._retry_backoff,
                    )
                except AuthFailure:
                    log.error("Credenciais do geocodificador rejeitadas ao consultar %r", query)
                    raise


__all__ = [
    "BatchGeocodeResult",
    "CacheKey",
    "GeocodeCache",
    "GeocodeMatch",
    "GeocodeStats",
    "MIN_RETRY_BACKOFF",
    "parse_provider_result",
]
