"""
In-memory view of the live admission store, kept current by the change feed.

The cache is an actor: one asyncio task owns the collection and applies
messages from its inbox one at a time. Feed listeners, loaders and readers
only post messages (thread-safe, via the owning loop), so inserts and deletes
are applied in arrival order without locks, and readers always get an
immutable snapshot taken between two messages.

Lifecycle of an admission id: absent -> present (insert or initial load)
-> absent (delete). Admissions are never updated in place.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from hospital_analytics.schemas.records import LiveAdmission
from hospital_analytics.services.feed import ChangeFeed, ChangeNotification, ChangeType, Subscription

logger = logging.getLogger(__name__)


class CacheStatus(str, Enum):
    LOADING = "loading"
    CURRENT = "current"
    STALE = "stale"


@dataclass(frozen=True)
class CacheSnapshot:
    admissions: tuple[LiveAdmission, ...]
    status: CacheStatus
    version: int

    @property
    def is_loaded(self) -> bool:
        return self.status != CacheStatus.LOADING


# ---------------------------------------------------------------------------
# Inbox messages
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class _Load:
    admissions: tuple[LiveAdmission, ...]


@dataclass(frozen=True)
class _Apply:
    notification: ChangeNotification


@dataclass(frozen=True)
class _BeginFetch:
    pass


@dataclass(frozen=True)
class _FetchFailed:
    reason: str


@dataclass(frozen=True)
class _MarkStale:
    reason: str


@dataclass(frozen=True)
class _Read:
    future: asyncio.Future


class _Stop:
    pass


class LiveAdmissionCache:
    """Newest-first collection of live admissions owned by a single task."""

    def __init__(self, name: str = "live_admissions"):
        self.name = name
        self._admissions: tuple[LiveAdmission, ...] = ()
        self._ids: set[str] = set()
        self._status = CacheStatus.LOADING
        self._version = 0
        self._pending: list[ChangeNotification] = []
        # between a fetch starting and its load: buffer changes, remember gaps
        self._fetching = True
        self._gap_during_fetch = False

        self._loop: asyncio.AbstractEventLoop | None = None
        self._inbox: asyncio.Queue | None = None
        self._task: asyncio.Task | None = None
        self._subscription: Subscription | None = None
        self._closed = False

    # -- lifecycle ------------------------------------------------------------

    async def start(self) -> None:
        if self._task is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._inbox = asyncio.Queue()
        self._task = self._loop.create_task(self._run())
        logger.debug("Cache '%s' started", self.name)

    def attach(self, feed: ChangeFeed) -> Subscription:
        """
        Subscribe to the feed. Notifications before the initial load are
        buffered; a feed disconnect marks the cache stale until the next load.
        """
        if self._subscription is not None:
            raise RuntimeError(f"Cache '{self.name}' is already attached to a feed")
        self._subscription = feed.subscribe(self.notify, on_disconnect=self.mark_stale)
        return self._subscription

    async def close(self) -> None:
        """Release the feed subscription and stop the owning task."""
        if self._closed:
            return
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._task is not None:
            self._post(_Stop())
            self._closed = True
            await self._task
        self._closed = True
        logger.debug("Cache '%s' closed", self.name)

    @property
    def closed(self) -> bool:
        return self._closed

    # -- message posting ------------------------------------------------------

    def _post(self, message) -> None:
        if self._closed:
            return
        if self._loop is None or self._inbox is None:
            raise RuntimeError(f"Cache '{self.name}' has not been started")
        self._loop.call_soon_threadsafe(self._inbox.put_nowait, message)

    def notify(self, notification: ChangeNotification) -> None:
        """Feed listener; safe to call from any thread."""
        self._post(_Apply(notification))

    def load(self, admissions: Iterable[LiveAdmission]) -> None:
        """Replace the collection with a full fetch (newest first)."""
        self._post(_Load(tuple(admissions)))

    def begin_fetch(self) -> None:
        """
        Announce a full fetch. Until the matching load, notifications are
        buffered and replayed on top of the fetched collection.
        """
        self._post(_BeginFetch())

    def fetch_failed(self, reason: str) -> None:
        self._post(_FetchFailed(reason))

    def mark_stale(self, reason: str = "feed disconnected") -> None:
        self._post(_MarkStale(reason))

    # -- reads ------------------------------------------------------------------

    def snapshot(self) -> CacheSnapshot:
        """The state after the last applied message."""
        return CacheSnapshot(self._admissions, self._status, self._version)

    async def read(self) -> CacheSnapshot:
        """A snapshot taken after every message posted so far has been applied."""
        if self._closed or self._task is None:
            return self.snapshot()
        future = self._loop.create_future()
        self._post(_Read(future))
        return await future

    # -- owner task -----------------------------------------------------------

    async def _run(self) -> None:
        while True:
            message = await self._inbox.get()
            if isinstance(message, _Stop):
                break
            self._handle(message)

        # readers queued behind the stop still get an answer
        while not self._inbox.empty():
            message = self._inbox.get_nowait()
            if isinstance(message, _Read) and not message.future.done():
                message.future.set_result(self.snapshot())

    def _handle(self, message) -> None:
        if isinstance(message, _Apply):
            if self._fetching:
                self._pending.append(message.notification)
            else:
                self._apply(message.notification)
        elif isinstance(message, _Load):
            self._replace(message.admissions)
        elif isinstance(message, _BeginFetch):
            self._fetching = True
            self._gap_during_fetch = False
        elif isinstance(message, _FetchFailed):
            self._abandon_fetch(message.reason)
        elif isinstance(message, _MarkStale):
            self._mark_stale(message.reason)
        elif isinstance(message, _Read):
            if not message.future.done():
                message.future.set_result(self.snapshot())

    def _mark_stale(self, reason: str) -> None:
        if self._fetching:
            # the fetch in flight may already be older than the gap
            self._gap_during_fetch = True
        if self._status == CacheStatus.CURRENT:
            self._status = CacheStatus.STALE
        logger.warning("Cache '%s' is stale: %s", self.name, reason)

    def _abandon_fetch(self, reason: str) -> None:
        logger.warning("Cache '%s' fetch failed: %s", self.name, reason)
        if self._status == CacheStatus.LOADING:
            return
        pending, self._pending = self._pending, []
        for notification in pending:
            self._apply(notification)
        self._fetching = False
        self._gap_during_fetch = False
        self._status = CacheStatus.STALE

    def _replace(self, admissions: tuple[LiveAdmission, ...]) -> None:
        previous = self._status
        unique: dict[str, LiveAdmission] = {}
        for admission in admissions:
            unique.setdefault(admission.id, admission)
        self._admissions = tuple(unique.values())
        self._ids = set(unique)
        self._version += 1

        pending, self._pending = self._pending, []
        for notification in pending:
            self._apply(notification)

        self._status = CacheStatus.STALE if self._gap_during_fetch else CacheStatus.CURRENT
        self._fetching = False
        self._gap_during_fetch = False

        logger.info(
            "Cache '%s' %s: %d admissions (%d buffered notifications replayed)",
            self.name,
            "loaded" if previous == CacheStatus.LOADING else "resynced",
            len(self._admissions),
            len(pending),
        )

    def _apply(self, notification: ChangeNotification) -> None:
        if notification.type == ChangeType.INSERT:
            admission = notification.admission
            if admission is None or admission.id in self._ids:
                return
            self._admissions = (admission,) + self._admissions
            self._ids.add(admission.id)
        elif notification.type == ChangeType.DELETE:
            if notification.admission_id not in self._ids:
                return
            self._admissions = tuple(
                a for a in self._admissions if a.id != notification.admission_id
            )
            self._ids.discard(notification.admission_id)
        self._version += 1
