"""
Storage module for the Affiliate Platform (in-memory implementation).

Responsibilities:
    - Keep affiliate links, click events and conversion totals in process memory
    - Enforce unique_code uniqueness and per-affiliate atomic merges
    - Serve as the fast, deterministic backend for tests

Design:
    - A single `threading.Lock` guards every read-modify-write, mirroring what
      the unique index and `ON CONFLICT` upsert give the PostgreSQL backend.
    - Records are frozen dataclasses, so handing them out needs no copies.
"""

import itertools
import threading
from collections import defaultdict
from datetime import date, datetime
from typing import Dict, List, Optional

from .base import BaseStorage
from ..errors import CodeConflictError
from ..models import AffiliateLink, ClickEvent


class Storage(BaseStorage):
    def __init__(self):
        """
        Initialize empty in-memory tables.

        Internal schema:
            self.links        = {link_id: AffiliateLink}
            self.codes        = {unique_code: link_id}
            self.clicks       = {link_id: [ClickEvent, ...]}
            self.conversions  = {affiliate_id: int}
        """
        self.links: Dict[int, AffiliateLink] = {}
        self.codes: Dict[str, int] = {}
        self.clicks: Dict[int, List[ClickEvent]] = defaultdict(list)
        self.conversions: Dict[str, int] = {}
        self._link_ids = itertools.count(1)
        self._click_ids = itertools.count(1)
        self._lock = threading.Lock()

    # ---- Affiliate links --------------------------------------------------

    def code_exists(self, unique_code: str) -> bool:
        with self._lock:
            return unique_code in self.codes

    def insert_link(self, target_url: str, unique_code: str, affiliate_id: Optional[str] = None) -> AffiliateLink:
        """
        Insert a link, refusing a code that is already taken.

        The existence check and the write happen under one lock, which is the
        in-memory equivalent of the UNIQUE(unique_code) constraint.
        """
        with self._lock:
            if unique_code in self.codes:
                raise CodeConflictError(unique_code)
            link = AffiliateLink(
                id=next(self._link_ids),
                target_url=target_url,
                unique_code=unique_code,
                affiliate_id=affiliate_id,
            )
            self.links[link.id] = link
            self.codes[unique_code] = link.id
            return link

    def get_link_by_code(self, unique_code: str) -> Optional[AffiliateLink]:
        with self._lock:
            link_id = self.codes.get(unique_code)
            return self.links.get(link_id) if link_id is not None else None

    def get_link(self, link_id: int) -> Optional[AffiliateLink]:
        with self._lock:
            return self.links.get(link_id)

    def list_links(self) -> List[AffiliateLink]:
        with self._lock:
            return [self.links[k] for k in sorted(self.links)]

    # ---- Click events -----------------------------------------------------

    def insert_click(self, link_id: int, ip_address: Optional[str], timestamp: datetime) -> ClickEvent:
        # Orphaned link ids are accepted, as with a plain SQL insert.
        with self._lock:
            event = ClickEvent(
                id=next(self._click_ids),
                link_id=link_id,
                ip_address=ip_address,
                timestamp=timestamp,
            )
            self.clicks[link_id].append(event)
            return event

    def count_unique_clicks(self, link_id: int, day: date) -> int:
        with self._lock:
            events = list(self.clicks.get(link_id, ()))
        # COUNT(DISTINCT ...) semantics: NULL addresses are not counted.
        return len({e.ip_address for e in events if e.ip_address is not None and e.timestamp.date() == day})

    # ---- Conversions ------------------------------------------------------

    def get_conversion_total(self, affiliate_id: str) -> Optional[int]:
        with self._lock:
            return self.conversions.get(affiliate_id)

    def add_conversion(self, affiliate_id: str, delta: int) -> int:
        with self._lock:
            total = self.conversions.get(affiliate_id, 0) + delta
            self.conversions[affiliate_id] = total
            return total
