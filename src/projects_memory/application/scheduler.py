"""
Review Scheduler: Application layer facade.

The single object a host talks to. It wires the stats store, the selector,
the review transaction and the session context together, and exposes the
operations a host needs for its control loop:

    selection = scheduler.select_next(candidates)
    ... present selection.key, wait for the user ...
    scheduler.record_action(selection.key, action)
"""

import logging
import time
from collections.abc import Callable, Iterable, Sequence

from projects_memory.application.review import Clock, ReviewOutcome, ReviewTransaction, utc_now
from projects_memory.application.selector import CandidateSelector, Selection
from projects_memory.application.stats.migrations import MigrationReport, migrate
from projects_memory.application.stats.store import StatsStore
from projects_memory.domain.constants import (
    DEFAULT_RAPPROCHEMENT_FACTOR,
    DEFAULT_ROTATION_BONUS,
    DEFAULT_SESSION_PENALTY_WEIGHT,
)
from projects_memory.domain.session import SessionContext, TimedActivityProgress
from projects_memory.domain.stats.models import Candidate, ProjectStats, ReviewAction, StatsPayload
from projects_memory.domain.stats.ports import DocumentStorage

logger = logging.getLogger(__name__)


class ReviewScheduler:
    def __init__(
        self,
        store: StatsStore,
        session: SessionContext | None = None,
        rapprochement_factor: float = DEFAULT_RAPPROCHEMENT_FACTOR,
        rotation_bonus: float = DEFAULT_ROTATION_BONUS,
        session_penalty_weight: float = DEFAULT_SESSION_PENALTY_WEIGHT,
        legacy_storage: DocumentStorage | None = None,
        clock: Clock = utc_now,
        epoch_clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            store: Stats store over the persisted document.
            session: Process-lifetime session state; a fresh one if omitted.
            rapprochement_factor: Fraction of the gap closed by less/more often.
            rotation_bonus: Bonus given to every other project on a counted review.
            session_penalty_weight: Strength of the in-session recency penalty.
            legacy_storage: Standalone stats file from older releases (migration).
            clock: Wall clock for review dates.
            epoch_clock: Epoch-seconds clock for timed activities.
        """
        self.store = store
        self.session = session or SessionContext()
        self.legacy_storage = legacy_storage
        self.clock = clock
        self.epoch_clock = epoch_clock

        self.selector = CandidateSelector(
            store,
            self.session,
            penalty_weight=session_penalty_weight,
            rapprochement_factor=rapprochement_factor,
        )
        self.transaction = ReviewTransaction(
            store,
            self.session,
            rapprochement_factor=rapprochement_factor,
            rotation_bonus=rotation_bonus,
            clock=clock,
        )

    # ---------- Selection & review ----------

    def select_next(self, candidates: Sequence[Candidate]) -> Selection:
        return self.selector.select_next(candidates)

    def record_action(self, key: str, action: ReviewAction | str, minutes: float = 0.0) -> ReviewOutcome:
        return self.transaction.record(key, action, minutes=minutes)

    def ignore(self, key: str) -> None:
        """Skip ``key`` for the rest of this session."""
        self.session.ignore(key)

    # ---------- Stats ----------

    def get_stats(self, key: str) -> ProjectStats:
        return self.store.get_or_create(key)

    def load_all_stats(self) -> StatsPayload:
        return self.store.load()

    def migrate(self, candidates: Iterable[Candidate] = ()) -> MigrationReport:
        return migrate(self.store, self.legacy_storage, candidates)

    # ---------- Timed activity ----------

    def start_timed_activity(self, duration_ms: int) -> bool:
        """Returns False if an activity is already active (no-op)."""
        return self.session.start_timed_activity(duration_ms, self.epoch_clock())

    def cancel_timed_activity(self) -> None:
        self.session.cancel_timed_activity()

    def tick_timed_activity(self, now: float | None = None) -> TimedActivityProgress | None:
        """Progress of the active activity, or None when inactive."""
        return self.session.tick_timed_activity(self.epoch_clock() if now is None else now)
