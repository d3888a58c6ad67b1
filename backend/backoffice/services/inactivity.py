"""Inactivity tracking for back-office sessions.

A session stays ``ACTIVE`` while activity keeps arriving. ``warning_seconds``
before the inactivity deadline it enters ``WARNING``; from then on activity no
longer pushes the deadline out, and at the deadline it becomes ``EXPIRED``.
``EXPIRED`` is terminal until the tracker is initialised again.

The tracker owns no timers. Every query evaluates the state against the
injected clock, so one instance can be driven by HTTP requests on the server
or by a fake clock in tests.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum

from backoffice.core.timeutil import as_utc


Clock = Callable[[], datetime]
StateListener = Callable[["InactivitySnapshot"], None]


class SessionState(StrEnum):
    ACTIVE = "active"
    WARNING = "warning"
    EXPIRED = "expired"


@dataclass(frozen=True)
class InactivitySnapshot:
    state: SessionState
    last_activity: datetime
    deadline: datetime
    warning_at: datetime
    warned_at: datetime | None
    remaining_seconds: int

    def as_dict(self) -> dict[str, object]:
        return {
            "state": self.state.value,
            "last_activity": self.last_activity.isoformat(),
            "deadline": self.deadline.isoformat(),
            "warning_at": self.warning_at.isoformat(),
            "warned_at": self.warned_at.isoformat() if self.warned_at else None,
            "remaining_seconds": self.remaining_seconds,
        }


def _utc_now() -> datetime:
    return datetime.now(UTC)


class InactivityTracker:
    def __init__(
        self,
        *,
        timeout_seconds: int,
        warning_seconds: int,
        clock: Clock | None = None,
        on_warning: StateListener | None = None,
        on_expire: StateListener | None = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if not 0 <= warning_seconds < timeout_seconds:
            raise ValueError("warning_seconds must be in [0, timeout_seconds)")
        self._timeout = timedelta(seconds=timeout_seconds)
        self._warning = timedelta(seconds=warning_seconds)
        self._clock = clock or _utc_now
        self._on_warning = on_warning
        self._on_expire = on_expire
        self._initialized = False
        self._last_activity: datetime | None = None
        self._warned_at: datetime | None = None
        self._expired = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def init(self, *, last_activity: datetime | None = None, warned_at: datetime | None = None) -> None:
        """Start tracking. Calling it again while initialised is a no-op."""
        if self._initialized:
            return
        self._last_activity = as_utc(last_activity) if last_activity else self._now()
        self._warned_at = as_utc(warned_at) if warned_at else None
        self._expired = False
        self._initialized = True

    def dispose(self) -> None:
        self._initialized = False
        self._last_activity = None
        self._warned_at = None
        self._expired = False

    def record_activity(self) -> bool:
        """Register user activity. Returns True when the deadline moved."""
        if self.state() is not SessionState.ACTIVE:
            return False
        self._last_activity = self._now()
        return True

    def state(self) -> SessionState:
        self._require_initialized()
        if self._expired:
            return SessionState.EXPIRED
        now = self._now()
        if now >= self._deadline():
            self._expired = True
            if self._on_expire is not None:
                self._on_expire(self._build_snapshot(SessionState.EXPIRED, now))
            return SessionState.EXPIRED
        if self._warned_at is not None or now >= self._warning_at():
            if self._warned_at is None:
                self._warned_at = now
                if self._on_warning is not None:
                    self._on_warning(self._build_snapshot(SessionState.WARNING, now))
            return SessionState.WARNING
        return SessionState.ACTIVE

    def remaining_seconds(self) -> int:
        return self.snapshot().remaining_seconds

    def snapshot(self) -> InactivitySnapshot:
        current = self.state()
        return self._build_snapshot(current, self._now())

    @property
    def last_activity(self) -> datetime:
        self._require_initialized()
        assert self._last_activity is not None
        return self._last_activity

    @property
    def warned_at(self) -> datetime | None:
        return self._warned_at

    @property
    def deadline(self) -> datetime:
        self._require_initialized()
        return self._deadline()

    def _build_snapshot(self, current: SessionState, now: datetime) -> InactivitySnapshot:
        deadline = self._deadline()
        remaining = 0 if current is SessionState.EXPIRED else max(0, int((deadline - now).total_seconds()))
        return InactivitySnapshot(
            state=current,
            last_activity=self.last_activity,
            deadline=deadline,
            warning_at=self._warning_at(),
            warned_at=self._warned_at,
            remaining_seconds=remaining,
        )

    def _deadline(self) -> datetime:
        assert self._last_activity is not None
        return self._last_activity + self._timeout

    def _warning_at(self) -> datetime:
        return self._deadline() - self._warning

    def _now(self) -> datetime:
        return as_utc(self._clock())

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("InactivityTracker.init() must be called before use")
