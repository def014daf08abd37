"""Portão de taxa compartilhado pelas chamadas ao geocodificador."""
from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator

log = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleeper = Callable[[float], None]

#: Intervalo mínimo documentado pelo provedor (2 requisições por segundo).
MIN_REQUEST_INTERVAL = 0.5


class RateLimitGate:
    """Serializa as chamadas externas com espaçamento mínimo entre elas.

    Um único portão existe por processo e é injetado em todos os caminhos
    que chamam o provedor (resolução ao vivo e correção em lote). Quem
    entra em :meth:`slot` mantém o portão até sair, então há no máximo uma
    requisição em andamento; a próxima só é liberada ``min_interval``
    segundos depois do término da anterior, ou mais tarde quando
    :meth:`defer` foi chamado (por exemplo, depois de um HTTP 429).
    """

    def __init__(
        self,
        min_interval: float = MIN_REQUEST_INTERVAL,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleeper = time.sleep,
    ) -> None:
        if min_interval < 0:
            raise ValueError("min_interval must not be negative")
        self._min_interval = float(min_interval)
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.RLock()
        self._next_allowed: float | None = None
        self._calls = 0
        self._waited_total = 0.0

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def calls(self) -> int:
        """Quantidade de vezes que o portão foi atravessado."""

        return self._calls

    @property
    def waited_total(self) -> float:
        return self._waited_total

    @contextmanager
    def slot(self) -> Iterator[float]:
        """Aguarda a vez, entrega o tempo esperado e libera ao sair.

        O espaçamento é recalculado no ``finally``: uma exceção ou um
        cancelamento durante a chamada não deixa o portão inconsistente.
        """

        with self._lock:
            waited = self._wait_turn()
            self._calls += 1
            try:
                yield waited
            finally:
                earliest = self._clock() + self._min_interval
                if self._next_allowed is None or earliest > self._next_allowed:
                    self._next_allowed = earliest

    def defer(self, seconds: float) -> None:
        """Empurra a próxima liberação para pelo menos ``seconds`` a partir de agora."""

        with self._lock:
            target = self._clock() + max(0.0, float(seconds))
            if self._next_allowed is None or target > self._next_allowed:
                self._next_allowed = target
            log.debug("Portão de geocodificação adiado por %.2fs", seconds)

    def _wait_turn(self) -> float:
        if self._next_allowed is None:
            return 0.0
        remaining = self._next_allowed - self._clock()
        if remaining <= 0:
            return 0.0
        self._sleep(remaining)
        self._waited_total += remaining
        return remaining


__all__ = ["Clock", "MIN_REQUEST_INTERVAL", "RateLimitGate", "Sleeper"]
