"""
Abstract Base Class for Analytics Backends.

Responsibilities:
    - Define the read-only queries reporting depends on
    - Support easy substitution (e.g., store-backed, external warehouse)
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Union

__all__ = ["BaseAnalytics"]


class BaseAnalytics(ABC):
    """Abstract base for pluggable analytics backends."""

    @abstractmethod
    def unique_clicks_on_date(self, link_id: int, day: Union[str, date]) -> int:  # pragma: no cover
        """
        Count distinct visitor IPs for a link on one calendar date.

        Args:
            link_id (int): The affiliate link id.
            day (str | date): "YYYY-MM-DD" or a date.
        """
        raise NotImplementedError

    @abstractmethod
    def conversion_total(self, affiliate_id: str) -> int:  # pragma: no cover
        """Return the affiliate's running conversion total (0 if none)."""
        raise NotImplementedError
