"""
Conversion merging for the Affiliate Platform.

Applies batched `(affiliate_id, delta)` rows to per-affiliate running totals.

Rules:
    - A row with an empty affiliate_id, a delta that is not a base-10 integer,
      or a negative delta is skipped with an `ImportRowError`; the rest of
      the batch still runs.
    - Each valid row is one atomic add in the store (insert when absent).
    - Merging is additive and **not idempotent**: importing the same batch
      twice adds its deltas twice.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..errors import ImportRowError, StorageError
from ..storage.base import BaseStorage

log = logging.getLogger(__name__)

_INT_PATTERN = re.compile(r"^[+-]?[0-9]+$")

ConversionRow = Tuple[Optional[str], Any]


def parse_delta(raw: Any) -> Optional[int]:
    """Return `raw` as an int, or None when it is not a plain base-10 integer."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if raw is None:
        return None
    text = str(raw).strip()
    if not _INT_PATTERN.match(text):
        return None
    return int(text)


@dataclass
class MergeReport:
    """Outcome of one `merge_batch` call."""
    applied: int = 0
    errors: List[ImportRowError] = field(default_factory=list)
    totals: Dict[str, int] = field(default_factory=dict)

    @property
    def skipped(self) -> int:
        return len(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "applied": self.applied,
            "skipped": self.skipped,
            "errors": [e.to_dict() for e in self.errors],
            "totals": dict(self.totals),
        }


class ConversionMerger:
    def __init__(self, storage: BaseStorage):
        self.storage = storage

    def merge_batch(self, rows: Iterable[ConversionRow]) -> MergeReport:
        """
        Merge every row of a batch, in order.

        Args:
            rows: iterable of `(affiliate_id, delta)` pairs; delta may be an
                int or an integer string such as "10".

        Returns:
            MergeReport: applied count, per-row errors and the resulting
            totals of every affiliate touched by this batch.
        """
        report = MergeReport()
        for line, row in enumerate(rows, start=1):
            error = self._merge_row(line, row, report)
            if error is not None:
                log.warning("Skipping conversion row %d (%r): %s", line, row, error.reason)
                report.errors.append(error)

        log.info("conversion batch merged: applied=%d skipped=%d", report.applied, report.skipped)
        return report

    def _merge_row(self, line: int, row, report: MergeReport) -> Optional[ImportRowError]:
        if isinstance(row, (str, bytes)) or not isinstance(row, Sequence) or len(row) != 2:
            return ImportRowError(line, None, row, "row is not an (affiliate_id, total_conversion) pair")
        affiliate_id, raw_delta = row

        if not isinstance(affiliate_id, str) or not affiliate_id.strip():
            return ImportRowError(line, affiliate_id, raw_delta, "affiliate_id is empty")
        affiliate_id = affiliate_id.strip()

        delta = parse_delta(raw_delta)
        if delta is None:
            return ImportRowError(line, affiliate_id, raw_delta, "total_conversion is not an integer")
        if delta < 0:
            return ImportRowError(line, affiliate_id, raw_delta, "total_conversion must not be negative")

        try:
            total = self.storage.add_conversion(affiliate_id, delta)
        except StorageError as e:
            return ImportRowError(line, affiliate_id, raw_delta, f"storage error: {e}")

        log.debug("conversions for %s: +%d -> %d", affiliate_id, delta, total)
        report.applied += 1
        report.totals[affiliate_id] = total
        return None
