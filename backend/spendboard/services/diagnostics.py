"""Skipped-record collection for the allocation engine.

The engine degrades by omission: records with missing dates, non-positive
values or unresolvable branches are dropped without raising. Callers that
want to know what was dropped pass an AllocationDiagnostics instance; every
skip is also logged at DEBUG level whether or not a collector is supplied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class SkippedRecord:
    kind: str  # "contract_line_item", "expense", "expense_line_item"
    record_id: str
    reason: str


@dataclass
class AllocationDiagnostics:
    skipped: List[SkippedRecord] = field(default_factory=list)

    def record(self, kind: str, record_id: str, reason: str) -> None:
        self.skipped.append(SkippedRecord(kind=kind, record_id=record_id, reason=reason))

    def reasons_for(self, record_id: str) -> List[str]:
        return [s.reason for s in self.skipped if s.record_id == record_id]

    def __len__(self) -> int:
        return len(self.skipped)


def note_skip(
    logger: logging.Logger,
    diagnostics: Optional[AllocationDiagnostics],
    kind: str,
    record_id: str,
    reason: str,
) -> None:
    """Log a skipped record and add it to the collector if there is one."""
    logger.debug(f"[SKIP] {kind} {record_id}: {reason}")
    if diagnostics is not None:
        diagnostics.record(kind, record_id, reason)
