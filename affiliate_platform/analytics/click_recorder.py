"""
Click recording for the Affiliate Platform.

Responsibilities:
    - Append one ClickEvent per observed redirect
    - Never delay or alter the redirect that triggered it

The redirect route decides its response first and then calls `record()`, which
only submits the write to a private thread pool and returns. The write runs on
its own; a failing store is logged on this module's logger and the click is
dropped, so analytics may undercount but redirects keep working.

Once submitted, a write is owned by the pool, not by the request: a client
disconnecting or the request being cancelled does not cancel it.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Optional, Set

from ..config import settings
from ..models import ClickEvent
from ..storage.base import BaseStorage

log = logging.getLogger(__name__)


def _utc_naive(ts: Optional[datetime]) -> datetime:
    """Normalize to a naive UTC datetime; naive inputs are assumed to be UTC already."""
    if ts is None:
        return datetime.now(timezone.utc).replace(tzinfo=None)
    if ts.tzinfo is not None:
        return ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


class ClickRecorder:
    def __init__(self, storage: BaseStorage, max_workers: Optional[int] = None):
        """
        Args:
            storage: backend receiving click inserts.
            max_workers: background threads; defaults to settings.CLICK_WORKERS.
        """
        self.storage = storage
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.CLICK_WORKERS,
            thread_name_prefix="click-recorder",
        )
        self._pending: Set[Future] = set()
        self._pending_lock = threading.Lock()

    def record(self, link_id: int, ip_address: Optional[str], timestamp: Optional[datetime] = None) -> Future:
        """
        Dispatch a click write and return immediately.

        The timestamp is taken now (not when the write runs) if absent.

        Returns:
            Future resolving to the stored ClickEvent, or None if the write
            failed. The future never raises.
        """
        ts = _utc_naive(timestamp)
        try:
            future = self._executor.submit(self._write, link_id, ip_address, ts)
        except RuntimeError:
            # Pool already shut down (application stopping).
            log.warning("click for link %s dropped: recorder is shut down", link_id)
            future = Future()
            future.set_result(None)
            return future
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def _write(self, link_id: int, ip_address: Optional[str], timestamp: datetime) -> Optional[ClickEvent]:
        try:
            return self.storage.insert_click(link_id, ip_address, timestamp)
        except Exception:
            log.exception("failed to record click for link %s from %s", link_id, ip_address)
            return None

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until every write dispatched so far has finished."""
        with self._pending_lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)

    def shutdown(self) -> None:
        """Drain pending writes and stop the worker threads."""
        self._executor.shutdown(wait=True)
