"""Job de manutenção: varre, corrige coordenadas e funde duplicatas."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

from .engine import CorrectionEngine, CorrectionStatus


@dataclass(frozen=True)
class CorrectionJobResult:
    """Resumo das métricas coletadas ao executar o job de correção."""

    scanned: int
    issues: int
    corrected: int
    unresolved: int
    deleted: int
    errors: tuple[tuple[str, str], ...]
    elapsed_ms_total: int
    cancelled: bool = False
    dry_run: bool = False
    ambiguous: int = 0

    def to_mapping(self) -> dict[str, Any]:
        """Serializa o resultado completo para inspeção ou logs."""

        return {
            "scanned": self.scanned,
            "issues": self.issues,
            "corrected": self.corrected,
            "unresolved": self.unresolved,
            "deleted": self.deleted,
            "ambiguous": self.ambiguous,
            "errors": [list(item) for item in self.errors],
            "elapsed_ms_total": self.elapsed_ms_total,
            "cancelled": self.cancelled,
            "dry_run": self.dry_run,
        }

    def to_summary(self) -> dict[str, int]:
        """Retorna um resumo reduzido com as principais métricas."""

        return {
            "scanned": self.scanned,
            "corrected": self.corrected,
            "unresolved": self.unresolved,
            "deleted": self.deleted,
            "elapsed_ms_total": self.elapsed_ms_total,
        }


class CorrectionJob:
    """Executa o fluxo completo de manutenção sobre o armazenamento de locais."""

    def __init__(
        self,
        engine: CorrectionEngine,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._engine = engine
        self._log = logger or logging.getLogger("baliza.correction_job")

    def run(
        self,
        *,
        dry_run: bool = False,
        fix_duplicates: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> CorrectionJobResult:
        """Varre, corrige um problema por local e, se pedido, funde duplicatas."""

        job_start = time.perf_counter()
        errors: list[tuple[str, str]] = []

        summary = self._engine.scan_summary()
        report = self._engine.apply_all(
            summary.issues, dry_run=dry_run, cancel_event=cancel_event
        )
        for outcome in report.outcomes:
            if outcome.status is CorrectionStatus.ERROR:
                errors.append((outcome.venue.id or outcome.venue.name, outcome.reason or ""))

        cancelled = report.cancelled
        deleted = 0
        ambiguous = 0
        if fix_duplicates and not cancelled:
            merge = self._engine.merge_duplicates(dry_run=dry_run, cancel_event=cancel_event)
            deleted = len(merge.deleted)
            ambiguous = len(merge.ambiguous)
            errors.extend(merge.errors)
            cancelled = merge.cancelled

        elapsed_ms = int((time.perf_counter() - job_start) * 1000)
        result = CorrectionJobResult(
            scanned=summary.scanned,
            issues=len(summary.issues),
            corrected=report.corrected,
            unresolved=report.unresolved,
            deleted=deleted,
            errors=tuple(errors),
            elapsed_ms_total=elapsed_ms,
            cancelled=cancelled,
            dry_run=dry_run,
            ambiguous=ambiguous,
        )
        self._log.info(
            "%sJob de correção finalizado: %s",
            "[dry-run] " if dry_run else "",
            result.to_summary(),
        )
        return result

    def start_background(
        self, *, dry_run: bool = False, fix_duplicates: bool = False
    ) -> "CorrectionJobHandle":
        """Executa :meth:`run` em uma thread daemon e devolve um controle para ela."""

        handle = CorrectionJobHandle()

        def target() -> None:
            try:
                handle._result = self.run(
                    dry_run=dry_run,
                    fix_duplicates=fix_duplicates,
                    cancel_event=handle.cancel_event,
                )
            except BaseException as exc:
                handle._error = exc
                self._log.exception("Job de correção em segundo plano falhou")

        thread = threading.Thread(target=target, name="baliza-correction-job", daemon=True)
        handle._thread = thread
        thread.start()
        return handle


class CorrectionJobHandle:
    """Controle de um :class:`CorrectionJob` em execução."""

    def __init__(self) -> None:
        self.cancel_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._result: Optional[CorrectionJobResult] = None
        self._error: Optional[BaseException] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def result(self) -> Optional[CorrectionJobResult]:
        return self._result

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def cancel(self) -> None:
        """Pede o cancelamento; o job para entre dois locais."""

        self.cancel_event.set()

    def join(self, timeout: float | None = None) -> Optional[CorrectionJobResult]:
        if self._thread is not None:
            self._thread.join(timeout)
        if self._error is not None and not self.running:
            raise self._error
        return self._result


__all__ = [
    "CorrectionJob",
    "CorrectionJobHandle",
    "CorrectionJobResult",
]
