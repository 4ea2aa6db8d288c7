"""
Analytics aggregation for the Affiliate Platform.

Responsibilities:
    - Unique clicks per link per calendar date
    - Conversion totals per affiliate
    - Per-link stats rows for the reporting endpoint

Every query is read-only and goes straight to the store, so repeated calls
over unchanged data return identical results. Reads tolerate a slightly stale
snapshot; no locking is involved.
"""

import re
from datetime import date, datetime
from typing import Any, Dict, Union

from .base import BaseAnalytics
from ..errors import ValidationError
from ..models import AffiliateLink
from ..storage.base import BaseStorage

_DAY_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")


def parse_day(day: Union[str, date]) -> date:
    """
    Accept a `date` or a "YYYY-MM-DD" string (timezone-naive calendar date).

    Raises:
        ValidationError: the string is not a valid ISO calendar date.
    """
    if isinstance(day, datetime):
        return day.date()
    if isinstance(day, date):
        return day
    text = str(day).strip()
    message = f"Invalid date {day!r}; expected YYYY-MM-DD"
    if not _DAY_PATTERN.match(text):
        raise ValidationError(message)
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError as e:
        raise ValidationError(message) from e


class AnalyticsAggregator(BaseAnalytics):
    def __init__(self, storage: BaseStorage):
        self.storage = storage

    def unique_clicks_on_date(self, link_id: int, day: Union[str, date]) -> int:
        """
        Count distinct ip_address values among the link's clicks on `day`.

        Returns:
            int: 0 when nothing matches (unknown link included).

        Example:
            Two clicks from 10.0.0.1 and one from 10.0.0.2 on 2024-05-01
            -> unique_clicks_on_date(link_id, "2024-05-01") == 2
        """
        return self.storage.count_unique_clicks(link_id, parse_day(day))

    def conversion_total(self, affiliate_id: str) -> int:
        if not affiliate_id:
            return 0
        total = self.storage.get_conversion_total(affiliate_id)
        return total if total is not None else 0

    def link_stats(self, link: AffiliateLink, day: Union[str, date]) -> Dict[str, Any]:
        """Unique clicks on `day` plus the owning affiliate's conversion total."""
        return {
            "unique_clicks": self.unique_clicks_on_date(link.id, day),
            "total_conversions": self.conversion_total(link.affiliate_id) if link.affiliate_id else 0,
        }
