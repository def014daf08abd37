"""Fluxo de manutenção em lote do armazenamento de locais."""

from .duplicates import DuplicateGroup, MergeAction, MergePlan, group_duplicates, plan_merge
from .engine import (
    CorrectionEngine,
    CorrectionIssue,
    CorrectionOutcome,
    CorrectionReport,
    CorrectionStatus,
    MergeReport,
    ScanSummary,
)
from .job import CorrectionJob, CorrectionJobHandle, CorrectionJobResult
from .manual import (
    ManualCorrection,
    ManualCorrectionError,
    default_manual_corrections,
    load_manual_corrections,
)

__all__ = [
    "CorrectionEngine",
    "CorrectionIssue",
    "CorrectionJob",
    "CorrectionJobHandle",
    "CorrectionJobResult",
    "CorrectionOutcome",
    "CorrectionReport",
    "CorrectionStatus",
    "DuplicateGroup",
    "ManualCorrection",
    "ManualCorrectionError",
    "MergeAction",
    "MergePlan",
    "MergeReport",
    "ScanSummary",
    "default_manual_corrections",
    "group_duplicates",
    "load_manual_corrections",
    "plan_merge",
]
