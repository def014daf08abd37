"""Configurações compartilhadas carregadas a partir de variáveis de ambiente."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

from baliza.infrastructure.geocoding.locationiq import DEFAULT_BASE_URL, DEFAULT_TIMEOUT
from baliza.resolution.geocode_cache import MIN_RETRY_BACKOFF
from baliza.resolution.rate_limit import MIN_REQUEST_INTERVAL

load_dotenv()

log = logging.getLogger(__name__)

_DEFAULT_API_BIND_HOST = "0.0.0.0"
_DEFAULT_API_PORT = 8000
_DEFAULT_LOG_LEVEL = "INFO"


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"Invalid number in environment variable {name!r}: {raw}") from exc


@dataclass(frozen=True)
class GeocodingSettings:
    """Parâmetros do geocodificador e do portão de taxa."""

    api_key: str | None
    base_url: str = DEFAULT_BASE_URL
    min_interval: float = MIN_REQUEST_INTERVAL
    retry_backoff: float = MIN_RETRY_BACKOFF
    timeout: float = DEFAULT_TIMEOUT
    manual_corrections_path: str | None = None

    @classmethod
    def from_env(cls) -> "GeocodingSettings":
        """Monta a configuração sem nunca reduzir o espaçamento abaixo dos mínimos."""

        min_interval = _float_env("BALIZA_GEOCODE_MIN_INTERVAL", MIN_REQUEST_INTERVAL)
        if min_interval < MIN_REQUEST_INTERVAL:
            log.warning(
                "BALIZA_GEOCODE_MIN_INTERVAL=%s abaixo do mínimo; usando %ss",
                min_interval,
                MIN_REQUEST_INTERVAL,
            )
            min_interval = MIN_REQUEST_INTERVAL

        retry_backoff = _float_env("BALIZA_GEOCODE_RETRY_BACKOFF", MIN_RETRY_BACKOFF)
        if retry_backoff < MIN_RETRY_BACKOFF:
            log.warning(
                "BALIZA_GEOCODE_RETRY_BACKOFF=%s abaixo do mínimo; usando %ss",
                retry_backoff,
                MIN_RETRY_BACKOFF,
            )
            retry_backoff = MIN_RETRY_BACKOFF

        return cls(
            api_key=os.getenv("LOCATIONIQ_API_KEY") or None,
            base_url=os.getenv("LOCATIONIQ_BASE_URL", DEFAULT_BASE_URL),
            min_interval=min_interval,
            retry_backoff=retry_backoff,
            timeout=_float_env("BALIZA_HTTP_TIMEOUT", DEFAULT_TIMEOUT),
            manual_corrections_path=os.getenv("BALIZA_MANUAL_CORRECTIONS") or None,
        )


@lru_cache(maxsize=None)
def get_geocoding_settings() -> GeocodingSettings:
    return GeocodingSettings.from_env()


@lru_cache(maxsize=None)
def get_api_port() -> int:
    """Retorna a porta configurada para expor a API."""

    return int(os.getenv("BALIZA_API_PORT", os.getenv("PORT", _DEFAULT_API_PORT)))


@lru_cache(maxsize=None)
def get_api_bind_host() -> str:
    """Retorna o host utilizado pelo Uvicorn para escutar conexões."""

    return os.getenv("BALIZA_API_BIND_HOST", _DEFAULT_API_BIND_HOST)


@lru_cache(maxsize=None)
def get_log_level() -> str:
    return os.getenv("BALIZA_LOG_LEVEL", _DEFAULT_LOG_LEVEL).upper()


__all__ = [
    "GeocodingSettings",
    "get_api_bind_host",
    "get_api_port",
    "get_geocoding_settings",
    "get_log_level",
]
