"""Interval-aligned refresh scheduler.

Live (unfiltered) requests are cached for the remainder of a 5-minute
wall-clock bucket; filtered requests always go to the provider. The scheduler
fetches once on start, arms a one-shot timer for the next bucket boundary and
then a periodic timer with a fixed 5-minute period.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional, Protocol, Sequence

from quake_monitor.filters import FeedQuery, FilterCriteria, FilterState, build_query
from quake_monitor.models import EnvelopeMetadata, Event, ResponseEnvelope
from quake_monitor.notifications import Notification, Notifier, updated_message
from quake_monitor.parsers.base import EventParser

logger = logging.getLogger(__name__)

REFRESH_INTERVAL = timedelta(minutes=5)
FETCH_FAILED_MESSAGE = "Failed to load earthquake data"


class FeedGateway(Protocol):
    async def fetch(self, query: FeedQuery) -> ResponseEnvelope: ...


class SchedulerState(enum.Enum):
    IDLE = "idle"
    ARMED_ONE_SHOT = "armed_one_shot"
    ARMED_PERIODIC = "armed_periodic"
    STOPPED = "stopped"


# ── Interval arithmetic ──────────────────────────────────────────────────


def current_boundary(now: datetime, interval: timedelta = REFRESH_INTERVAL) -> datetime:
    """Floor ``now`` to the interval grid (sub-interval components zeroed)."""
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight + ((now - midnight) // interval) * interval


def next_boundary(now: datetime, interval: timedelta = REFRESH_INTERVAL) -> datetime:
    """Ceiling of ``now`` to the interval grid, always strictly after ``now``."""
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    steps = -(-(now - midnight) // interval)
    boundary = midnight + steps * interval
    if boundary <= now:
        boundary += interval
    return boundary


@dataclass(frozen=True)
class RefreshWindow:
    current: datetime
    next: datetime

    @classmethod
    def at(cls, now: datetime, interval: timedelta = REFRESH_INTERVAL) -> RefreshWindow:
        return cls(current_boundary(now, interval), next_boundary(now, interval))


# ── Caching policy and deltas ────────────────────────────────────────────


def should_refresh(
    filters: FilterState | FilterCriteria | None,
    last_fetched_interval: Optional[datetime],
    now: Optional[datetime] = None,
    interval: timedelta = REFRESH_INTERVAL,
) -> bool:
    if last_fetched_interval is None:
        return True
    if filters is not None and filters.is_active:
        return True
    now = now or _local_now()
    return current_boundary(now, interval) > last_fetched_interval


def compute_delta(previous: Sequence[Event], incoming: Iterable[Event]) -> int:
    """Count incoming events whose id was not in ``previous``.

    Zero when there is nothing to compare against, so the first load never
    reports everything as new.
    """
    if not previous:
        return 0
    seen = {e.id for e in previous}
    return sum(1 for e in incoming if e.id not in seen)


def accept_events(events: Iterable[Event]) -> tuple[Event, ...]:
    """Drop events that cannot be presented and duplicate ids."""
    accepted: list[Event] = []
    seen: set[str] = set()
    for event in events:
        if not EventParser.is_presentable(event):
            logger.warning("Excluding event %s without usable magnitude/depth", event.id)
            continue
        if event.id in seen:
            logger.warning("Excluding duplicate event %s", event.id)
            continue
        seen.add(event.id)
        accepted.append(event)
    return tuple(accepted)


@dataclass(frozen=True)
class Snapshot:
    """The currently displayed events and the interval they were fetched for."""

    events: tuple[Event, ...]
    interval: datetime
    metadata: EnvelopeMetadata
    fetched_at: datetime
    query: FeedQuery

    @property
    def truncated_count(self) -> int:
        return max(0, self.metadata.total - len(self.events))


@dataclass(frozen=True)
class RefreshOutcome:
    fetched: bool
    applied: bool = False
    new_events: int = 0
    error: Optional[Exception] = None


def _local_now() -> datetime:
    return datetime.now().astimezone()


# ── Scheduler ────────────────────────────────────────────────────────────


class SyncScheduler:
    """Owns the snapshot and decides when to refresh it.

    Fetches are numbered as they start; a result is applied only when it
    belongs to the most recently started fetch, so an older fetch is never
    applied even when the newer one fails. Must be started from inside a running event loop.
    """

    def __init__(
        self,
        gateway: FeedGateway,
        filters: FilterState | None = None,
        *,
        interval: timedelta = REFRESH_INTERVAL,
        clock: Callable[[], datetime] = _local_now,
        on_notify: Optional[Notifier] = None,
        on_snapshot: Optional[Callable[[Snapshot], None]] = None,
    ):
        self._gateway = gateway
        self._filters = filters or FilterState()
        self._interval = interval
        self._clock = clock
        self._on_notify = on_notify
        self._on_snapshot = on_snapshot

        self._state = SchedulerState.IDLE
        self._snapshot: Optional[Snapshot] = None
        self._last_interval: Optional[datetime] = None

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._one_shot: Optional[asyncio.TimerHandle] = None
        self._periodic: Optional[asyncio.TimerHandle] = None
        self._periodic_deadline = 0.0
        self._periodic_boundary: Optional[datetime] = None
        self._next_refresh_at: Optional[datetime] = None

        self._tasks: set[asyncio.Task] = set()
        self._initiated = 0
        self._in_flight = 0

    # -- accessors --

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def snapshot(self) -> Optional[Snapshot]:
        return self._snapshot

    @property
    def events(self) -> tuple[Event, ...]:
        return self._snapshot.events if self._snapshot else ()

    @property
    def last_fetched_interval(self) -> Optional[datetime]:
        return self._last_interval

    @property
    def next_refresh_at(self) -> Optional[datetime]:
        return self._next_refresh_at

    @property
    def interval(self) -> timedelta:
        return self._interval

    @property
    def filters(self) -> FilterState:
        return self._filters

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    def seconds_until_refresh(self, now: Optional[datetime] = None) -> Optional[float]:
        if self._next_refresh_at is None:
            return None
        now = now or self._clock()
        return max(0.0, (self._next_refresh_at - now).total_seconds())

    # -- refresh --

    def set_filters(self, filters: FilterState) -> None:
        """Replace the filter state; a running scheduler refreshes right away."""
        self._filters = filters
        if self._state in (SchedulerState.ARMED_ONE_SHOT, SchedulerState.ARMED_PERIODIC):
            # Leaving the filtered feed must not keep showing filtered data
            changed = self._snapshot is not None and self._snapshot.query != build_query(filters)
            self._spawn_refresh(force=changed)

    async def refresh(
        self, *, force: bool = False, as_of: Optional[datetime] = None,
    ) -> RefreshOutcome:
        """Fetch and apply a new snapshot if the caching policy allows it.

        ``as_of`` lets a timer evaluate the policy at the boundary it was
        armed for, even if it fires marginally early.
        """
        if self._state is SchedulerState.STOPPED:
            return RefreshOutcome(fetched=False)

        now = self._clock()
        if as_of is not None and as_of > now:
            now = as_of
        if not force and not should_refresh(self._filters, self._last_interval, now, self._interval):
            logger.debug("Using cached earthquake data for interval %s", self._last_interval)
            return RefreshOutcome(fetched=False)

        interval = current_boundary(now, self._interval)
        query = build_query(self._filters)
        self._initiated += 1
        seq = self._initiated

        self._in_flight += 1
        try:
            envelope = await self._gateway.fetch(query)
        except Exception as exc:
            logger.error("Error fetching earthquake data (%s): %s", query.path, exc)
            if self._state is not SchedulerState.STOPPED:
                self._notify(Notification.error(FETCH_FAILED_MESSAGE))
            return RefreshOutcome(fetched=True, error=exc)
        finally:
            self._in_flight -= 1

        if self._state is SchedulerState.STOPPED:
            logger.debug("Discarding fetch #%d that resolved after dispose", seq)
            return RefreshOutcome(fetched=True)
        if seq != self._initiated:
            logger.debug("Discarding fetch #%d, superseded by #%d", seq, self._initiated)
            return RefreshOutcome(fetched=True)

        return self._apply(envelope, interval, query)

    def _apply(
        self, envelope: ResponseEnvelope, interval: datetime, query: FeedQuery,
    ) -> RefreshOutcome:
        had_data = self._snapshot is not None
        events = accept_events(envelope.events)
        new_count = compute_delta(self.events, events)

        self._snapshot = Snapshot(
            events=events,
            interval=interval,
            metadata=envelope.metadata,
            fetched_at=self._clock(),
            query=query,
        )
        self._last_interval = interval

        logger.info(
            "Applied %d event(s) from %s feed for interval %s (%d new)",
            len(events), query.path, interval.isoformat(), new_count,
        )
        if self._on_snapshot is not None:
            self._on_snapshot(self._snapshot)
        if had_data:
            self._notify(Notification.success(updated_message(new_count)))
        return RefreshOutcome(fetched=True, applied=True, new_events=new_count)

    def _notify(self, notification: Notification) -> None:
        if self._on_notify is not None:
            self._on_notify(notification)

    # -- timers --

    def start(self) -> None:
        """Fetch now, then align refreshes to the interval grid."""
        if self._state is not SchedulerState.IDLE:
            raise RuntimeError(f"cannot start scheduler in state {self._state.value}")
        self._loop = asyncio.get_running_loop()
        self._state = SchedulerState.ARMED_ONE_SHOT
        self._spawn_refresh()

        now = self._clock()
        boundary = next_boundary(now, self._interval)
        self._next_refresh_at = boundary
        self._one_shot = self._loop.call_later(
            (boundary - now).total_seconds(), self._on_one_shot, boundary,
        )
        logger.debug("First aligned refresh armed for %s", boundary.isoformat())

    def dispose(self) -> None:
        """Cancel both timers and any in-flight fetch. Safe to call twice."""
        if self._state is SchedulerState.STOPPED:
            return
        self._state = SchedulerState.STOPPED
        for handle in (self._one_shot, self._periodic):
            if handle is not None:
                handle.cancel()
        self._one_shot = self._periodic = None
        for task in list(self._tasks):
            task.cancel()
        self._next_refresh_at = None
        logger.debug("Scheduler disposed")

    async def wait_idle(self) -> None:
        """Wait for every fetch spawned by timers or filter changes to settle."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _on_one_shot(self, boundary: datetime) -> None:
        self._one_shot = None
        if self._state is not SchedulerState.ARMED_ONE_SHOT:
            return
        self._spawn_refresh(as_of=boundary)
        self._state = SchedulerState.ARMED_PERIODIC
        self._periodic_deadline = self._loop.time()
        self._periodic_boundary = boundary
        self._arm_periodic()

    def _arm_periodic(self) -> None:
        # Deadlines advance from the first firing so the period does not drift
        self._periodic_deadline += self._interval.total_seconds()
        self._periodic_boundary += self._interval
        self._next_refresh_at = self._periodic_boundary
        self._periodic = self._loop.call_at(self._periodic_deadline, self._on_periodic)

    def _on_periodic(self) -> None:
        self._periodic = None
        if self._state is not SchedulerState.ARMED_PERIODIC:
            return
        self._spawn_refresh(as_of=self._periodic_boundary)
        self._arm_periodic()

    def _spawn_refresh(self, *, force: bool = False, as_of: Optional[datetime] = None) -> None:
        task = self._loop.create_task(self.refresh(force=force, as_of=as_of))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
