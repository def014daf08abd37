"""Porta para o serviço externo de geocodificação."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Sequence


class GeocodingProvider(ABC):
    """Define como a aplicação consulta um geocodificador por texto livre."""

    @abstractmethod
    def search(self, query: str, *, limit: int = 1) -> Sequence[Mapping[str, Any]]:
        """Executar a consulta e devolver os resultados brutos do provedor.

        Cada item contém ao menos ``lat`` e ``lon`` (texto, nessa ordem),
        ``display_name`` e ``importance``. Lista vazia significa que nada foi
        encontrado. Implementações levantam ``RateLimited`` para HTTP 429,
        ``AuthFailure`` para 401/403 e ``GeocodeFailure`` para as demais
        falhas de transporte ou resposta.
        """
