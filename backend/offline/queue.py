"""
Offline queue of reports waiting for connectivity.

Delivery is at-least-once: the queue is only cleared after every item has
been submitted, so a failure part-way through leaves all items queued and the
ones already accepted will be sent again on the next flush.
"""

import logging
import threading
from typing import Callable, List, Optional

from backend.errors import SyncFailure
from backend.offline.schemas import PendingReport
from backend.offline.storage import PENDING_REPORTS_KEY, LocalStorage

log = logging.getLogger(__name__)

SubmitFn = Callable[[PendingReport], object]


class OfflineQueue:
    def __init__(self, storage: LocalStorage, submit: Optional[SubmitFn] = None, online: bool = True):
        self.storage = storage
        self.submit = submit
        self.last_failure: Optional[SyncFailure] = None
        self._online = online
        self._lock = threading.Lock()
        self._items: List[PendingReport] = [
            PendingReport.model_validate(raw) for raw in storage.get(PENDING_REPORTS_KEY, [])
        ]

    @property
    def online(self) -> bool:
        return self._online

    @property
    def pending(self) -> List[PendingReport]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def enqueue(self, report: PendingReport) -> None:
        with self._lock:
            items = self._items + [report]
            self.storage.set(PENDING_REPORTS_KEY, [i.model_dump(mode="json", by_alias=True) for i in items])
            self._items = items
        log.info("Queued report offline (%d pending)", len(items), extra={"queued": len(items)})

    def flush(self, submit: Optional[SubmitFn] = None) -> int:
        """Submit every queued report in order; returns how many left the queue."""
        submit = submit or self.submit
        if submit is None:
            raise ValueError("No submit function configured for the offline queue")

        with self._lock:
            if not self._items:
                return 0
            for index, item in enumerate(self._items):
                try:
                    submit(item)
                except Exception as exc:
                    self.last_failure = SyncFailure(f"Failed to sync queued report: {exc}", item_index=index)
                    log.warning(
                        "Sync stopped at item %d of %d; queue kept", index + 1, len(self._items), exc_info=True
                    )
                    return 0

            flushed = len(self._items)
            # durable copy first: if that fails, memory still matches disk
            self.storage.remove(PENDING_REPORTS_KEY)
            self._items = []
            self.last_failure = None
        log.info("Synced %d queued reports", flushed)
        return flushed

    def set_online(self, online: bool) -> Optional[int]:
        """Record a connectivity signal; going back online triggers one flush."""
        was_online, self._online = self._online, online
        if online and not was_online and self.submit is not None:
            return self.flush()
        return None
