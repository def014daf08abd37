"""Normalização de nomes de locais para comparação."""
from __future__ import annotations

import re

_WHITESPACE = re.compile(r"\s+")
_LEADING_ARTICLE = re.compile(r"^the ")
_PUNCTUATION = re.compile(r"[.,'\"]")


def _normalize_once(value: str) -> str:
    value = _WHITESPACE.sub(" ", value.lower()).lstrip()
    value = _LEADING_ARTICLE.sub("", value)
    marker = value.find("@")
    if marker != -1:
        value = value[:marker]
    value = _PUNCTUATION.sub("", value)
    return value.strip()


def normalize_venue_name(text: str | None) -> str:
    """Reduz um nome de local à forma usada para comparar identidades.

    As regras são aplicadas nesta ordem: caixa baixa, espaços colapsados,
    remoção do artigo inicial ``the``, descarte de qualquer sufixo a partir
    de ``@`` (anotações "local @ cidade"), remoção de ``. , ' "`` e trim.
    A função é total: ``None`` ou texto vazio resultam em ``""``.

    Remover pontuação pode expor um novo artigo inicial ou deixar espaços
    duplicados (``"'The Den"``, ``"St . Mary"``); por isso as regras são
    reaplicadas até a forma estabilizar, o que torna a função idempotente.
    """

    if not text:
        return ""
    value = _normalize_once(str(text))
    while True:
        again = _normalize_once(value)
        if again == value:
            return value
        value = again


def same_token(left: str | None, right: str | None) -> bool:
    """Indica se dois nomes representam o mesmo token após normalização."""

    return normalize_venue_name(left) == normalize_venue_name(right)


__all__ = ["normalize_venue_name", "same_token"]
