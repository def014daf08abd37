"""Aplicação FastAPI para resolução e inspeção de locais."""
from __future__ import annotations

import logging
from datetime import datetime

import uvicorn
from dotenv import load_dotenv
from fastapi import APIRouter, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from baliza.container import BalizaContainer, build_container
from baliza.domain.entities import Coordinates, VenueRecord, VenueReference
from baliza.domain.errors import AuthFailure
from baliza.settings import get_api_bind_host, get_api_port

log = logging.getLogger(__name__)


class VenueResponse(BaseModel):
    """Registro canônico de um local."""

    #: Identificador interno atribuído pelo armazenamento.
    id: str | None
    #: Identificador numérico do provedor de dados esportivos.
    external_id: int | None = None
    name: str
    city: str = ""
    country: str = ""
    aliases: list[str] = Field(default_factory=list)
    #: Coordenadas em ordem GeoJSON ``[lon, lat]``.
    coordinates: list[float] | None = None
    capacity: int | None = None
    surface: str | None = None
    address: str | None = None
    image: str | None = None
    last_updated: datetime | None = None

    @classmethod
    def from_record(cls, venue: VenueRecord) -> "VenueResponse":
        return cls(
            id=venue.id,
            external_id=venue.external_id,
            name=venue.name,
            city=venue.city,
            country=venue.country,
            aliases=sorted(venue.aliases),
            coordinates=venue.coordinates.to_geojson() if venue.coordinates else None,
            capacity=venue.capacity,
            surface=venue.surface,
            address=venue.address,
            image=venue.image,
            last_updated=venue.last_updated,
        )


class ResolveResponse(BaseModel):
    state: str
    venue: VenueResponse
    #: Estratégia de correspondência que encontrou o local, se houver.
    strategy: str | None = None
    created: bool = False
    updated: bool = False
    transitions: list[str] = Field(default_factory=list)


class IssueResponse(BaseModel):
    venue_id: str | None
    external_id: int | None = None
    name: str
    city: str = ""
    country: str = ""
    coordinates: list[float] | None = None
    severity: str
    kind: str
    reason: str


class IssuesResponse(BaseModel):
    scanned: int
    high: int
    medium: int
    issues: list[IssueResponse]


class GeocodeStatsResponse(BaseModel):
    hits: int
    misses: int
    provider_calls: int
    tombstones: int
    size: int
    total_requests: int
    hit_rate: float


def configure_cors(app: FastAPI) -> None:
    """Configura o CORS padrão utilizado pelo serviço."""

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def include_routes(app: FastAPI, container: BalizaContainer, *, prefix: str = "") -> None:
    """Registra as rotas de locais e de geocodificação na aplicação."""

    router = APIRouter(prefix=prefix, tags=["Locais"])

    @router.get("/healthz")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @router.get("/venues/resolve", response_model=ResolveResponse)
    def resolve_venue(
        name: str = Query(..., min_length=1),
        city: str | None = None,
        country: str | None = None,
        external_id: int | None = None,
    ) -> ResolveResponse:
        """Resolve uma referência ruidosa para o registro canônico do local."""

        try:
            reference = VenueReference(
                name=name, city=city, country=country, external_id=external_id
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

        try:
            result = container.orchestrator.resolve(reference)
        except AuthFailure as exc:
            log.error("Geocodificador indisponível por credenciais: %s", exc)
            raise HTTPException(
                status_code=503,
                detail="Geocodificador indisponível: credenciais rejeitadas",
            ) from exc

        if not result.resolved or result.venue is None:
            raise HTTPException(
                status_code=422,
                detail={
                    "state": result.state.value,
                    "reason": result.reason.value if result.reason else None,
                    "message": str(result.error) if result.error else None,
                },
            )
        return ResolveResponse(
            state=result.state.value,
            venue=VenueResponse.from_record(result.venue),
            strategy=result.strategy,
            created=result.created,
            updated=result.updated,
            transitions=[state.value for state in result.transitions],
        )

    @router.get("/venues/near", response_model=list[VenueResponse])
    def venues_near(
        lon: float,
        lat: float,
        radius: float = Query(5000.0, gt=0, description="Raio em metros"),
    ) -> list[VenueResponse]:
        """Lista locais ativos próximos, do mais perto para o mais longe."""

        try:
            center = Coordinates(longitude=lon, latitude=lat)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        if not center.in_world_range():
            raise HTTPException(status_code=400, detail="Coordenadas fora da faixa mundial")
        return [
            VenueResponse.from_record(venue)
            for venue in container.matcher.find_near(center, radius)
        ]

    @router.get("/venues/search", response_model=list[VenueResponse])
    def search_venues(
        q: str = Query(..., min_length=1, max_length=100),
        limit: int = Query(20, ge=1, le=100),
    ) -> list[VenueResponse]:
        """Busca por nome, cidade, país ou apelido, sem diferenciar caixa."""

        text = q.strip()
        if not text:
            raise HTTPException(status_code=400, detail="Termo de busca vazio")
        return [
            VenueResponse.from_record(venue)
            for venue in container.repository.search(text, limit)
        ]

    @router.get("/venues", response_model=list[VenueResponse])
    def venues_by_country(
        country: str = Query(..., min_length=1),
    ) -> list[VenueResponse]:
        """Lista os locais de um país, ordenados por cidade e nome."""

        return [
            VenueResponse.from_record(venue)
            for venue in container.repository.find_by_country(country.strip())
        ]

    @router.get("/venues/issues", response_model=IssuesResponse)
    def venue_issues() -> IssuesResponse:
        """Executa a varredura de coordenadas sem alterar nada."""

        summary = container.engine.scan_summary()
        payload = summary.to_mapping()
        return IssuesResponse(
            scanned=payload["scanned"],
            high=payload["high"],
            medium=payload["medium"],
            issues=[IssueResponse(**item) for item in payload["issues"]],
        )

    @router.get("/geocoding/stats", response_model=GeocodeStatsResponse)
    def geocoding_stats() -> GeocodeStatsResponse:
        return GeocodeStatsResponse(**container.geocoder.stats().to_mapping())

    app.include_router(router)


def create_app(container: BalizaContainer | None = None) -> FastAPI:
    """Instancia a aplicação com as rotas de locais configuradas."""

    container = container or build_container()
    app = FastAPI(
        title="Baliza Venues API",
        version="1.0.0",
        description="Resolução de identidade e geocodificação de locais de partidas.",
    )
    configure_cors(app)
    include_routes(app, container)
    app.state.container = container
    return app


def run() -> None:
    """Executa a API usando o Uvicorn."""

    load_dotenv()
    uvicorn.run(
        "baliza.api:create_app",
        host=get_api_bind_host(),
        port=get_api_port(),
        factory=True,
    )


__all__ = [
    "GeocodeStatsResponse",
    "IssueResponse",
    "IssuesResponse",
    "ResolveResponse",
    "VenueResponse",
    "configure_cors",
    "create_app",
    "include_routes",
    "run",
]
