"""
Error taxonomy for the Affiliate Platform core.

Every failure the core raises derives from `AffiliatePlatformError`, so the
API layer can map them to HTTP responses in one place. A missing code is not
an error: `LinkStore.resolve` returns None and the redirect falls back.
"""

from typing import Optional


class AffiliatePlatformError(Exception):
    """Base class for all core errors."""


class ValidationError(AffiliatePlatformError, ValueError):
    """Required input is missing or malformed; rejected before touching the store."""


class AllocationExhausted(AffiliatePlatformError):
    """No free unique code was found within the retry budget."""

    def __init__(self, attempts: int):
        super().__init__(f"Failed to allocate a unique code after {attempts} attempts")
        self.attempts = attempts


class StorageError(AffiliatePlatformError):
    """The underlying store is unreachable or rejected an operation."""


class CodeConflictError(StorageError):
    """Insert lost the race for a unique_code; the caller should pick another code."""

    def __init__(self, code: str):
        super().__init__(f"unique_code already taken: {code}")
        self.code = code


class ImportRowError(AffiliatePlatformError):
    """A single conversion row could not be merged. Recorded, never raised out of a batch."""

    def __init__(self, line: int, affiliate_id: Optional[str], raw_delta, reason: str):
        super().__init__(f"row {line}: {reason}")
        self.line = line
        self.affiliate_id = affiliate_id
        self.raw_delta = raw_delta
        self.reason = reason

    def to_dict(self) -> dict:
        return {
            "line": self.line,
            "affiliate_id": self.affiliate_id,
            "total_conversion": self.raw_delta,
            "reason": self.reason,
        }
