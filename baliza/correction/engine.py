"""Detecção e correção em lote de coordenadas corrompidas e duplicatas."""
from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from baliza.domain.entities import Coordinates, VenueRecord
from baliza.domain.errors import (
    AmbiguousDuplicate,
    AuthFailure,
    GeocodeFailure,
)
from baliza.domain.repositories import VenueRepository
from baliza.resolution.bounds import BoundsValidator, BoundsViolation, Severity, ViolationKind
from baliza.resolution.geocode_cache import GeocodeCache
from baliza.resolution.locks import KeyedLock

from .duplicates import DuplicateGroup, group_duplicates
from .manual import ManualCorrection

log = logging.getLogger(__name__)

_SEVERITY_RANK = {Severity.HIGH: 0, Severity.MEDIUM: 1}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CorrectionIssue:
    """Uma verificação geográfica reprovada para um local."""

    venue: VenueRecord
    severity: Severity
    kind: ViolationKind
    reason: str

    @classmethod
    def from_violation(cls, venue: VenueRecord, violation: BoundsViolation) -> "CorrectionIssue":
        return cls(
            venue=venue,
            severity=violation.severity,
            kind=violation.kind,
            reason=violation.message,
        )

    def to_mapping(self) -> dict[str, Any]:
        coordinates = self.venue.coordinates
        return {
            "venue_id": self.venue.id,
            "external_id": self.venue.external_id,
            "name": self.venue.name,
            "city": self.venue.city,
            "country": self.venue.country,
            "coordinates": coordinates.to_geojson() if coordinates else None,
            "severity": self.severity.value,
            "kind": self.kind.value,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ScanSummary:
    scanned: int
    issues: tuple[CorrectionIssue, ...]

    @property
    def venues_with_issues(self) -> int:
        return len({issue.venue.id for issue in self.issues})

    def to_mapping(self) -> dict[str, Any]:
        return {
            "scanned": self.scanned,
            "issues": [issue.to_mapping() for issue in self.issues],
            "high": sum(1 for issue in self.issues if issue.severity is Severity.HIGH),
            "medium": sum(1 for issue in self.issues if issue.severity is Severity.MEDIUM),
        }


class CorrectionStatus(str, enum.Enum):
    CORRECTED = "corrected"
    UNRESOLVED = "unresolved"
    MISSING = "missing"
    ERROR = "error"


@dataclass(frozen=True)
class CorrectionOutcome:
    venue: VenueRecord
    status: CorrectionStatus
    #: ``manual`` ou ``geocode`` quando houve coordenadas candidatas.
    source: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    reason: Optional[str] = None
    dry_run: bool = False

    @property
    def corrected(self) -> bool:
        return self.status is CorrectionStatus.CORRECTED

    def to_mapping(self) -> dict[str, Any]:
        previous = self.venue.coordinates
        return {
            "venue_id": self.venue.id,
            "name": self.venue.name,
            "status": self.status.value,
            "source": self.source,
            "previous": previous.to_geojson() if previous else None,
            "coordinates": self.coordinates.to_geojson() if self.coordinates else None,
            "reason": self.reason,
            "dry_run": self.dry_run,
        }


@dataclass
class CorrectionReport:
    """Resultado agregado de :meth:`CorrectionEngine.apply_all`."""

    outcomes: list[CorrectionOutcome] = field(default_factory=list)
    cancelled: bool = False
    dry_run: bool = False

    def _count(self, status: CorrectionStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def corrected(self) -> int:
        return self._count(CorrectionStatus.CORRECTED)

    @property
    def unresolved(self) -> int:
        return self._count(CorrectionStatus.UNRESOLVED) + self._count(CorrectionStatus.MISSING)

    @property
    def errors(self) -> int:
        return self._count(CorrectionStatus.ERROR)

    def to_mapping(self) -> dict[str, Any]:
        return {
            "corrected": self.corrected,
            "unresolved": self.unresolved,
            "errors": self.errors,
            "cancelled": self.cancelled,
            "dry_run": self.dry_run,
            "outcomes": [outcome.to_mapping() for outcome in self.outcomes],
        }


@dataclass
class MergeReport:
    """Resultado agregado de :meth:`CorrectionEngine.merge_duplicates`."""

    groups: int = 0
    deleted: list[VenueRecord] = field(default_factory=list)
    kept: list[VenueRecord] = field(default_factory=list)
    ambiguous: list[AmbiguousDuplicate] = field(default_factory=list)
    errors: list[tuple[str, str]] = field(default_factory=list)
    cancelled: bool = False
    dry_run: bool = False

    def to_mapping(self) -> dict[str, Any]:
        return {
            "groups": self.groups,
            "deleted": [venue.id for venue in self.deleted],
            "kept": [venue.id for venue in self.kept],
            "ambiguous": [
                {"normalized_name": item.normalized_name, "reason": str(item)}
                for item in self.ambiguous
            ],
            "errors": [list(item) for item in self.errors],
            "cancelled": self.cancelled,
            "dry_run": self.dry_run,
        }


class CorrectionEngine:
    """Fluxo de manutenção que varre o armazenamento e corrige o que puder.

    Compartilha o mesmo :class:`GeocodeCache`, o mesmo validador e o mesmo
    repositório usados pela resolução ao vivo. Nunca grava coordenadas que
    não passem em todas as verificações do local; o que não puder ser
    validado fica para revisão manual.
    """

    def __init__(
        self,
        repository: VenueRepository,
        geocoder: GeocodeCache,
        validator: BoundsValidator,
        *,
        manual_corrections: Mapping[int, ManualCorrection] | None = None,
        locks: KeyedLock | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._geocoder = geocoder
        self._validator = validator
        self._manual = dict(manual_corrections or {})
        self._locks = locks or KeyedLock()
        self._clock = clock

    @property
    def manual_corrections(self) -> Mapping[int, ManualCorrection]:
        return self._manual

    def scan(self) -> tuple[CorrectionIssue, ...]:
        """Verifica todo local ativo com coordenadas; zero a dois problemas por local."""

        return self.scan_summary().issues

    def scan_summary(self) -> ScanSummary:
        issues: list[CorrectionIssue] = []
        scanned = 0
        for venue in self._repository.iter_active(with_coordinates=True):
            if not venue.has_coordinates:
                continue
            scanned += 1
            issues.extend(self.issues_for(venue))

        high = sum(1 for issue in issues if issue.severity is Severity.HIGH)
        log.info(
            "Varredura concluída: %s locais, %s problemas (%s graves)",
            scanned,
            len(issues),
            high,
        )
        return ScanSummary(scanned=scanned, issues=tuple(issues))

    def issues_for(self, venue: VenueRecord) -> tuple[CorrectionIssue, ...]:
        """Verificações reprovadas para um único local; vazio se não houver coordenadas."""

        if venue.coordinates is None:
            return ()
        return tuple(
            CorrectionIssue.from_violation(venue, violation)
            for violation in self._validator.check(venue.coordinates, venue.country, venue.city)
        )

    def manual_correction_for(self, venue: VenueRecord) -> Optional[ManualCorrection]:
        if venue.external_id is None:
            return None
        return self._manual.get(venue.external_id)

    def apply(self, issue: CorrectionIssue, *, dry_run: bool = False) -> CorrectionOutcome:
        """Corrige o local do problema ou o deixa para revisão manual.

        ``AuthFailure`` é propagada; demais falhas de geocodificação resultam
        em ``UNRESOLVED``.
        """

        venue = issue.venue
        correction = self.manual_correction_for(venue)
        if correction is not None:
            return self._persist(venue, correction.coordinates, source="manual", dry_run=dry_run)

        try:
            candidate = self._geocoder.resolve(venue.name, venue.city, venue.country)
        except AuthFailure:
            raise
        except GeocodeFailure as exc:
            log.warning("Sem correção para %s: %s", venue.describe(), exc)
            return CorrectionOutcome(
                venue=venue,
                status=CorrectionStatus.UNRESOLVED,
                reason=str(exc),
                dry_run=dry_run,
            )

        violations = self._validator.check(candidate, venue.country, venue.city)
        if violations:
            reason = "; ".join(violation.message for violation in violations)
            log.warning(
                "Geocodificação de %s devolveu %s, ainda inválido: %s",
                venue.describe(),
                candidate,
                reason,
            )
            return CorrectionOutcome(
                venue=venue,
                status=CorrectionStatus.UNRESOLVED,
                source="geocode",
                coordinates=candidate,
                reason=reason,
                dry_run=dry_run,
            )

        return self._persist(venue, candidate, source="geocode", dry_run=dry_run)

    def apply_all(
        self,
        issues: Iterable[CorrectionIssue],
        *,
        dry_run: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> CorrectionReport:
        """Aplica uma correção por local, escolhendo o problema mais grave.

        O cancelamento é verificado entre locais, nunca no meio de uma correção.
        """

        report = CorrectionReport(dry_run=dry_run)
        for issue in self._most_severe_per_venue(issues):
            if cancel_event is not None and cancel_event.is_set():
                report.cancelled = True
                log.warning("Correção em lote cancelada após %s locais", len(report.outcomes))
                break
            try:
                outcome = self.apply(issue, dry_run=dry_run)
            except AuthFailure:
                raise
            except Exception as exc:
                log.exception("Falha ao corrigir o local %s", issue.venue.describe())
                outcome = CorrectionOutcome(
                    venue=issue.venue,
                    status=CorrectionStatus.ERROR,
                    reason=str(exc),
                    dry_run=dry_run,
                )
            report.outcomes.append(outcome)
        return report

    def find_duplicates(self) -> tuple[DuplicateGroup, ...]:
        groups = group_duplicates(self._repository.iter_active(), self._validator)
        log.info("Encontrados %s grupos de locais duplicados", len(groups))
        return groups

    def merge_duplicates(
        self,
        groups: Sequence[DuplicateGroup] | None = None,
        *,
        dry_run: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> MergeReport:
        """Executa os planos de fusão; grupos sem membro válido vão para revisão."""

        if groups is None:
            groups = self.find_duplicates()

        report = MergeReport(dry_run=dry_run)
        for group in groups:
            if cancel_event is not None and cancel_event.is_set():
                report.cancelled = True
                log.warning("Fusão de duplicatas cancelada após %s grupos", report.groups)
                break
            report.groups += 1
            plan = group.plan
            if plan.requires_review:
                ambiguous = AmbiguousDuplicate(
                    f"{group.normalized_name!r}: {plan.reason}",
                    normalized_name=group.normalized_name,
                )
                report.ambiguous.append(ambiguous)
                log.warning("Duplicatas exigem revisão manual: %s", ambiguous)
                continue

            report.kept.extend(plan.keep)
            for victim in plan.delete:
                identifier = victim.id or victim.name
                if dry_run:
                    log.info("[dry-run] Removeria %s (%s)", victim.describe(), identifier)
                    report.deleted.append(victim)
                    continue
                try:
                    with self._locks.hold(victim.id):
                        removed = self._repository.delete(victim.id) if victim.id else False
                except Exception as exc:
                    log.exception("Falha ao remover duplicata %s", identifier)
                    report.errors.append((identifier, str(exc)))
                    continue
                if removed:
                    log.info("Duplicata removida: %s (%s)", victim.describe(), identifier)
                    report.deleted.append(victim)
                else:
                    report.errors.append((identifier, "Registro não encontrado para remoção"))
        return report

    def _persist(
        self,
        venue: VenueRecord,
        coordinates: Coordinates,
        *,
        source: str,
        dry_run: bool,
    ) -> CorrectionOutcome:
        if dry_run:
            log.info(
                "[dry-run] Atualizaria %s de %s para %s (%s)",
                venue.describe(),
                venue.coordinates,
                coordinates,
                source,
            )
            return CorrectionOutcome(
                venue=venue,
                status=CorrectionStatus.CORRECTED,
                source=source,
                coordinates=coordinates,
                dry_run=True,
            )

        if venue.id is None:
            return CorrectionOutcome(
                venue=venue,
                status=CorrectionStatus.MISSING,
                source=source,
                coordinates=coordinates,
                reason="Local sem identificador no armazenamento",
            )

        with self._locks.hold(venue.id):
            updated = self._repository.update_coordinates(venue.id, coordinates, self._clock())
        if updated is None:
            log.warning("Local %s desapareceu antes da correção", venue.describe())
            return CorrectionOutcome(
                venue=venue,
                status=CorrectionStatus.MISSING,
                source=source,
                coordinates=coordinates,
                reason="Local não encontrado no armazenamento",
            )

        log.info(
            "Coordenadas de %s corrigidas de %s para %s (%s)",
            venue.describe(),
            venue.coordinates,
            coordinates,
            source,
        )
        return CorrectionOutcome(
            venue=updated,
            status=CorrectionStatus.CORRECTED,
            source=source,
            coordinates=coordinates,
        )

    @staticmethod
    def _most_severe_per_venue(issues: Iterable[CorrectionIssue]) -> list[CorrectionIssue]:
        chosen: dict[Any, CorrectionIssue] = {}
        for issue in issues:
            key = issue.venue.id or id(issue.venue)
            current = chosen.get(key)
            if current is None or _SEVERITY_RANK[issue.severity] < _SEVERITY_RANK[current.severity]:
                chosen[key] = issue
        return list(chosen.values())


__all__ = [
    "CorrectionEngine",
    "CorrectionIssue",
    "CorrectionOutcome",
    "CorrectionReport",
    "CorrectionStatus",
    "MergeReport",
    "ScanSummary",
]
