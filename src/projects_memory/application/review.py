"""
Review transaction: applies one user action and persists its consequences.

The first click on a project only marks it as presented and stores its
score; later clicks are *counted* reviews that update history, counters
and the rotation bonus of every other project.
"""

import datetime
import logging
from collections.abc import Callable
from dataclasses import dataclass

from projects_memory.application.scoring import apply_action, rotation_bonus_delta
from projects_memory.application.stats.store import StatsStore
from projects_memory.domain.constants import DEFAULT_RAPPROCHEMENT_FACTOR, DEFAULT_ROTATION_BONUS
from projects_memory.domain.session import SessionContext
from projects_memory.domain.stats.models import ProjectStats, ReviewAction, ReviewRecord

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime.datetime]


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass
class ReviewOutcome:
    key: str
    action: ReviewAction
    stats: ProjectStats
    counted: bool  # False for the first click on a project


class ReviewTransaction:
    def __init__(
        self,
        store: StatsStore,
        session: SessionContext,
        rapprochement_factor: float = DEFAULT_RAPPROCHEMENT_FACTOR,
        rotation_bonus: float = DEFAULT_ROTATION_BONUS,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.session = session
        self.rapprochement_factor = rapprochement_factor
        self.rotation_bonus = rotation_bonus
        self.clock = clock

    def record(self, key: str, action: ReviewAction | str, minutes: float = 0.0) -> ReviewOutcome:
        """
        Apply ``action`` to project ``key`` in one load-modify-save.

        Args:
            key: Project key.
            action: One of the ReviewAction values.
            minutes: Time spent on this review, added to the global aggregate.

        Raises:
            ValueError: Unknown action (raised before any I/O).
            StorageReadError / StorageWriteError: Nothing was persisted and the
                session is unchanged; the caller should retry.
        """
        action = ReviewAction(action)
        payload = self.store.load(strict=True)

        stats = payload.projects.get(key)
        if stats is None:
            stats = self.store.new_record()
            payload.projects[key] = stats

        is_first_review = stats.is_new
        new_score = apply_action(stats.current_score, action, self.rapprochement_factor)
        now = self.clock().isoformat()

        stats.current_score = new_score
        stats.last_review_date = now
        stats.has_been_presented = True

        if not is_first_review:
            stats.total_reviews += 1
            stats.rotation_bonus = 0.0
            stats.append_history(ReviewRecord(date=now, action=action.value, score_after=new_score))

            payload.global_stats.total_reviews += 1
            payload.global_stats.total_review_minutes += max(0.0, float(minutes))

            delta = rotation_bonus_delta(self.rotation_bonus)
            for other_key, other in payload.projects.items():
                if other_key != key:
                    other.rotation_bonus += delta

        self.store.save(payload)
        self.session.note_review(key)

        logger.info(
            f"Recorded {action.value} for {key}: score={new_score:.2f} "
            f"({'counted' if not is_first_review else 'first review'})"
        )
        return ReviewOutcome(key=key, action=action, stats=stats, counted=not is_first_review)
