"""Travas por identidade para serializar escritas no mesmo local."""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator


class KeyedLock:
    """Registro de travas indexadas por chave (ex.: identificador do local).

    Escritas no mesmo local são serializadas; locais diferentes seguem em
    paralelo. Travas sem usuários são descartadas ao serem liberadas.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = {}
        self._holders: dict[Hashable, int] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._holders[key] = self._holders.get(key, 0) + 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                remaining = self._holders.get(key, 1) - 1
                if remaining <= 0:
                    self._holders.pop(key, None)
                    self._locks.pop(key, None)
                else:
                    self._holders[key] = remaining

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


__all__ = ["KeyedLock"]
