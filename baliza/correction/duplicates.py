"""Agrupamento de locais duplicados e política de fusão."""
from __future__ import annotations

import enum
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Iterable

from baliza.domain.entities import VenueRecord
from baliza.resolution.bounds import BoundsValidator
from baliza.resolution.normalization import normalize_venue_name


class MergeAction(str, enum.Enum):
    MERGE = "merge"
    MANUAL_REVIEW = "manual_review"


@dataclass(frozen=True)
class MergePlan:
    """Quem fica, quem sai e por quê."""

    action: MergeAction
    keep: tuple[VenueRecord, ...]
    delete: tuple[VenueRecord, ...]
    reason: str

    @property
    def requires_review(self) -> bool:
        return self.action is MergeAction.MANUAL_REVIEW


@dataclass(frozen=True)
class DuplicateGroup:
    """Locais ativos que compartilham o mesmo nome normalizado."""

    normalized_name: str
    #: Coordenadas aprovadas pela verificação de país.
    valid: tuple[VenueRecord, ...]
    #: Coordenadas reprovadas pela verificação de país.
    invalid: tuple[VenueRecord, ...]
    #: Registros sem coordenadas.
    missing: tuple[VenueRecord, ...]
    plan: MergePlan

    @property
    def members(self) -> tuple[VenueRecord, ...]:
        return self.valid + self.invalid + self.missing

    def __len__(self) -> int:
        return len(self.members)

    def to_mapping(self) -> dict[str, Any]:
        return {
            "normalized_name": self.normalized_name,
            "valid": [venue.id for venue in self.valid],
            "invalid": [venue.id for venue in self.invalid],
            "missing": [venue.id for venue in self.missing],
            "action": self.plan.action.value,
            "keep": [venue.id for venue in self.plan.keep],
            "delete": [venue.id for venue in self.plan.delete],
            "reason": self.plan.reason,
        }


def _preference(venue: VenueRecord) -> tuple[int, int]:
    # Identificador externo pesa mais que metadados descritivos.
    return (0 if venue.external_id is not None else 1, -venue.completeness())


def plan_merge(
    valid: tuple[VenueRecord, ...],
    invalid: tuple[VenueRecord, ...],
    missing: tuple[VenueRecord, ...],
) -> MergePlan:
    """Aplica a política de fusão sobre um grupo já particionado.

    Com ao menos um membro válido, sobrevive um único válido (preferindo o que
    tem identificador externo e, depois, o mais completo) e todo o resto é
    removido. Sem membros válidos nada é removido: o grupo vai para revisão
    manual, já que um registro ruim ainda é melhor que nenhum registro.
    """

    if not valid:
        if invalid and missing:
            reason = "Nenhum membro com coordenadas válidas"
        elif invalid:
            reason = "Todos os membros têm coordenadas inválidas"
        else:
            reason = "Nenhum membro possui coordenadas"
        return MergePlan(
            action=MergeAction.MANUAL_REVIEW,
            keep=invalid + missing,
            delete=(),
            reason=reason,
        )

    ranked = sorted(valid, key=_preference)
    survivor = ranked[0]
    delete = tuple(invalid) + tuple(ranked[1:]) + tuple(missing)

    parts: list[str] = []
    if invalid:
        parts.append(f"{len(invalid)} com coordenadas inválidas")
    if len(ranked) > 1:
        parts.append(f"{len(ranked) - 1} válidos redundantes")
    if missing:
        parts.append(f"{len(missing)} sem coordenadas")
    return MergePlan(
        action=MergeAction.MERGE,
        keep=(survivor,),
        delete=delete,
        reason="Removendo " + ", ".join(parts),
    )


def group_duplicates(
    venues: Iterable[VenueRecord], validator: BoundsValidator
) -> tuple[DuplicateGroup, ...]:
    """Agrupa locais ativos por nome normalizado e planeja cada grupo com mais de um membro."""

    buckets: dict[str, list[VenueRecord]] = defaultdict(list)
    for venue in venues:
        if not venue.is_active:
            continue
        key = normalize_venue_name(venue.name)
        if key:
            buckets[key].append(venue)

    groups: list[DuplicateGroup] = []
    for key in sorted(buckets):
        members = buckets[key]
        if len(members) < 2:
            continue
        valid: list[VenueRecord] = []
        invalid: list[VenueRecord] = []
        missing: list[VenueRecord] = []
        for venue in members:
            if venue.coordinates is None:
                missing.append(venue)
            elif validator.is_valid(venue.coordinates, venue.country):
                valid.append(venue)
            else:
                invalid.append(venue)
        plan = plan_merge(tuple(valid), tuple(invalid), tuple(missing))
        groups.append(
            DuplicateGroup(
                normalized_name=key,
                valid=tuple(valid),
                invalid=tuple(invalid),
                missing=tuple(missing),
                plan=plan,
            )
        )
    return tuple(groups)


__all__ = [
    "DuplicateGroup",
    "MergeAction",
    "MergePlan",
    "group_duplicates",
    "plan_merge",
]
