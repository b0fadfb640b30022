"""
Process-lifetime session state.

Nothing here is persisted. A SessionContext is created once per process
and passed explicitly to the selector and the review transaction.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TimedActivity:
    start_time: float  # epoch seconds
    duration_ms: int


@dataclass(frozen=True)
class TimedActivityProgress:
    remaining_ms: int
    percent_complete: float
    completed: bool = False


@dataclass
class SessionContext:
    ignored: set[str] = field(default_factory=set)
    session_review_counts: dict[str, int] = field(default_factory=dict)
    active_timed_activity: TimedActivity | None = None

    def ignore(self, key: str) -> None:
        self.ignored.add(key)

    def is_ignored(self, key: str) -> bool:
        return key in self.ignored

    def review_count(self, key: str) -> int:
        return self.session_review_counts.get(key, 0)

    def note_review(self, key: str) -> None:
        self.session_review_counts[key] = self.review_count(key) + 1

    # ---------- Timed activity ----------

    @property
    def has_timed_activity(self) -> bool:
        return self.active_timed_activity is not None

    def start_timed_activity(self, duration_ms: int, now: float) -> bool:
        """Occupy the single timed-activity slot. Returns False if already active."""
        if self.active_timed_activity is not None:
            return False
        self.active_timed_activity = TimedActivity(start_time=now, duration_ms=max(1, int(duration_ms)))
        return True

    def cancel_timed_activity(self) -> None:
        self.active_timed_activity = None

    def tick_timed_activity(self, now: float) -> TimedActivityProgress | None:
        """
        Advance the active timed activity.

        Returns None when no activity is active. When the activity has run
        its full duration the slot is cleared and ``completed`` is set.
        """
        activity = self.active_timed_activity
        if activity is None:
            return None

        elapsed_ms = max(0.0, (now - activity.start_time) * 1000.0)
        percent = min(100.0, elapsed_ms / activity.duration_ms * 100.0)
        remaining = max(0, int(round(activity.duration_ms - elapsed_ms)))

        if elapsed_ms >= activity.duration_ms:
            self.active_timed_activity = None
            return TimedActivityProgress(remaining_ms=0, percent_complete=100.0, completed=True)

        return TimedActivityProgress(remaining_ms=remaining, percent_complete=percent)
