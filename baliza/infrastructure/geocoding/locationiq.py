"""Cliente HTTP do geocodificador LocationIQ."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

import httpx

from baliza.domain.errors import AuthFailure, GeocodeFailure, RateLimited
from baliza.domain.ports import GeocodingProvider

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://us1.locationiq.com/v1"
DEFAULT_TIMEOUT = 10.0
_NO_RESULT_MARKER = "unable to geocode"


class LocationIQGeocoder(GeocodingProvider):
    """Consulta ``/search.php`` do LocationIQ e traduz os códigos HTTP em erros de domínio.

    Não faz cache nem controla taxa: essas responsabilidades pertencem ao
    :class:`~baliza.resolution.geocode_cache.GeocodeCache` que o envolve.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        client: httpx.Client | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
    ) -> None:
        """Configura o cliente HTTP utilizado nas consultas.

        Parameters
        ----------
        api_key:
            Chave de acesso do LocationIQ; sem ela toda consulta levanta
            ``AuthFailure``.
        base_url:
            URL raiz da API, incluindo a versão.
        client:
            Cliente HTTP opcional reutilizado por outros componentes.
        timeout:
            Tempo limite das requisições quando o cliente interno é criado.
        """

        self._api_key = api_key or ""
        self._base_url = base_url.rstrip("/")

        managed_client = client or httpx.Client(base_url=self._base_url, timeout=timeout)
        owns_client = client is None

        self._client: httpx.Client = managed_client
        """Cliente HTTP responsável pelas consultas."""

        self._owns_client: bool = owns_client
        """Indica se o cliente HTTP deve ser fechado por esta classe."""

    def search(self, query: str, *, limit: int = 1) -> Sequence[Mapping[str, Any]]:
        if not self._api_key:
            raise AuthFailure("LOCATIONIQ_API_KEY não configurada")

        params = {"key": self._api_key, "q": query, "format": "json", "limit": limit}
        log.info("Consultando LocationIQ: %r", query)
        try:
            response = self._client.get(f"{self._base_url}/search.php", params=params)
        except httpx.TimeoutException as exc:
            raise GeocodeFailure(f"Tempo esgotado ao consultar o LocationIQ: {exc}", query=query) from exc
        except httpx.HTTPError as exc:
            raise GeocodeFailure(f"Erro de transporte ao consultar o LocationIQ: {exc}", query=query) from exc

        status = response.status_code
        if status == 429:
            raise RateLimited("LocationIQ respondeu HTTP 429", query=query)
        if status in (401, 403):
            raise AuthFailure(
                f"LocationIQ recusou a chave de API (HTTP {status})", status_code=status
            )
        if status == 404 and _NO_RESULT_MARKER in response.text.lower():
            return []
        if status >= 400:
            raise GeocodeFailure(
                f"LocationIQ respondeu HTTP {status}: {response.text[:200]}", query=query
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise GeocodeFailure("Resposta do LocationIQ não é JSON válido", query=query) from exc
        if isinstance(body, Mapping):
            raise GeocodeFailure(
                f"LocationIQ devolveu erro: {body.get('error') or body}", query=query
            )
        if not isinstance(body, list):
            raise GeocodeFailure("Resposta inesperada do LocationIQ", query=query)
        return [item for item in body if isinstance(item, Mapping)]

    def close(self) -> None:
        """Fecha o cliente HTTP caso esta instância seja a proprietária dele."""

        if self._owns_client:
            self._client.close()


__all__ = ["DEFAULT_BASE_URL", "DEFAULT_TIMEOUT", "LocationIQGeocoder"]
