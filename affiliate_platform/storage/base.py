"""
Base storage interface for the Affiliate Platform.

Purpose:
    Define a small, stable contract that multiple storage backends
    (in-memory, PostgreSQL) can implement without requiring changes to the
    link, click, analytics or conversion services.

Guarantees every backend must provide:
    - `unique_code` uniqueness enforced at insert time; a lost race surfaces
      as `CodeConflictError`, never as a silent overwrite.
    - `add_conversion` is atomic per affiliate_id (no lost updates).
    - Any other failure surfaces as `StorageError`.

Testing & Coverage:
    These are abstract methods and are not executed directly in tests.
    We annotate them with `# pragma: no cover` so coverage tools don't
    penalize the project for un-runnable abstract declarations.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import List, Optional

from ..models import AffiliateLink, ClickEvent


class BaseStorage(ABC):
    """Abstract base class for storage backends."""

    # ---- Affiliate links --------------------------------------------------

    @abstractmethod  # pragma: no cover
    def code_exists(self, unique_code: str) -> bool:
        """Return True if an AffiliateLink already uses this code."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def insert_link(self, target_url: str, unique_code: str, affiliate_id: Optional[str] = None) -> AffiliateLink:
        """
        Persist a new AffiliateLink and return it with its store-assigned id.

        Raises:
            CodeConflictError: `unique_code` is already taken.
            StorageError: any other failure.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def get_link_by_code(self, unique_code: str) -> Optional[AffiliateLink]:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def get_link(self, link_id: int) -> Optional[AffiliateLink]:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def list_links(self) -> List[AffiliateLink]:
        """Return every AffiliateLink ordered by id."""
        raise NotImplementedError

    # ---- Click events -----------------------------------------------------

    @abstractmethod  # pragma: no cover
    def insert_click(self, link_id: int, ip_address: Optional[str], timestamp: datetime) -> ClickEvent:
        """Append a click event. Pure insert; no shared counters."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def count_unique_clicks(self, link_id: int, day: date) -> int:
        """Count distinct ip_address values for the link's clicks on `day`."""
        raise NotImplementedError

    # ---- Conversions ------------------------------------------------------

    @abstractmethod  # pragma: no cover
    def get_conversion_total(self, affiliate_id: str) -> Optional[int]:
        """Return the running total, or None when the affiliate has no row."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def add_conversion(self, affiliate_id: str, delta: int) -> int:
        """
        Atomically add `delta` to the affiliate's total, inserting the row
        when absent. Returns the new total.
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release backend resources. No-op by default."""
