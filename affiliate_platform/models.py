"""
Domain records shared by storage backends and services.

Records are frozen: links and click events are never mutated once written,
and conversion totals are replaced by a fresh record on every merge.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class AffiliateLink:
    id: int
    target_url: str
    unique_code: str
    affiliate_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ClickEvent:
    id: int
    link_id: int
    ip_address: Optional[str]
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass(frozen=True)
class ConversionTotal:
    affiliate_id: str
    total_conversion: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
