"""
Domain models for review statistics.

These are pure data structures with no I/O or external dependencies.
The persisted document uses camelCase keys; ``to_dict``/``from_dict``
translate between the two.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from projects_memory.domain.constants import DEFAULT_SCORE, MAX_REVIEW_HISTORY

logger = logging.getLogger(__name__)


class ReviewAction(str, Enum):
    """Buttons offered to the user when a project is presented."""

    LESS_OFTEN = "less-often"
    OK = "ok"
    MORE_OFTEN = "more-often"
    PRIORITY_MAX = "priority-max"
    FINISHED = "finished"


@dataclass(frozen=True)
class ReviewRecord:
    """
    A single entry of a project's review history.

    Attributes:
        date: ISO-8601 timestamp of the review.
        action: The action value (see ReviewAction).
        score_after: Base score persisted by this review.
    """

    date: str
    action: str
    score_after: float

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "action": self.action, "scoreAfter": self.score_after}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReviewRecord":
        return cls(
            date=str(data["date"]),
            action=str(data["action"]),
            score_after=float(data["scoreAfter"]),
        )


@dataclass
class ProjectStats:
    """
    Durable statistics for one project.

    ``has_been_presented`` records that the project received at least one
    click. The first click is not a counted review, so ``total_reviews``
    alone cannot tell a never-seen project from a seen-once one.
    """

    current_score: float = DEFAULT_SCORE
    rotation_bonus: float = 0.0
    total_reviews: int = 0
    has_been_presented: bool = False
    last_review_date: str = ""
    review_history: list[ReviewRecord] = field(default_factory=list)

    @property
    def is_new(self) -> bool:
        return not self.has_been_presented and self.total_reviews == 0

    def append_history(self, record: ReviewRecord) -> None:
        self.review_history.append(record)
        overflow = len(self.review_history) - MAX_REVIEW_HISTORY
        if overflow > 0:
            del self.review_history[:overflow]

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentScore": self.current_score,
            "rotationBonus": self.rotation_bonus,
            "totalReviews": self.total_reviews,
            "hasBeenPresented": self.has_been_presented,
            "lastReviewDate": self.last_review_date,
            "reviewHistory": [r.to_dict() for r in self.review_history],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_score: float = DEFAULT_SCORE) -> "ProjectStats":
        total = int(data.get("totalReviews", 0) or 0)
        history = [ReviewRecord.from_dict(r) for r in data.get("reviewHistory") or []]
        return cls(
            current_score=float(data.get("currentScore", default_score)),
            rotation_bonus=float(data.get("rotationBonus", 0.0) or 0.0),
            total_reviews=total,
            # Records written before the flag existed: any counted review implies a click.
            has_been_presented=bool(data.get("hasBeenPresented", total > 0)),
            last_review_date=str(data.get("lastReviewDate") or ""),
            review_history=history[-MAX_REVIEW_HISTORY:],
        )


@dataclass
class GlobalStats:
    total_reviews: int = 0
    total_review_minutes: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalReviews": self.total_reviews,
            "totalReviewMinutes": self.total_review_minutes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "GlobalStats":
        if not isinstance(data, dict):
            return cls()
        return cls(
            total_reviews=int(data.get("totalReviews", 0) or 0),
            total_review_minutes=float(data.get("totalReviewMinutes", 0.0) or 0.0),
        )


@dataclass
class StatsPayload:
    """The entire durable state, read-modify-written as a unit."""

    projects: dict[str, ProjectStats] = field(default_factory=dict)
    global_stats: GlobalStats = field(default_factory=GlobalStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "projects": {key: stats.to_dict() for key, stats in self.projects.items()},
            "global": self.global_stats.to_dict(),
        }

    @classmethod
    def from_dict(
        cls, data: dict[str, Any] | None, default_score: float = DEFAULT_SCORE
    ) -> "StatsPayload":
        data = data or {}
        raw_projects = data.get("projects")
        if not isinstance(raw_projects, dict):
            raw_projects = {}

        projects: dict[str, ProjectStats] = {}
        for key, value in raw_projects.items():
            if not isinstance(value, dict):
                logger.warning(f"Skipped stats record {key!r}: not an object")
                continue
            try:
                projects[str(key)] = ProjectStats.from_dict(value, default_score)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipped malformed stats record {key!r}: {e!r}")

        try:
            global_stats = GlobalStats.from_dict(data.get("global"))
        except (TypeError, ValueError) as e:
            logger.warning(f"Global stats unreadable, starting from zero: {e!r}")
            global_stats = GlobalStats()

        return cls(projects=projects, global_stats=global_stats)


@dataclass(frozen=True)
class Candidate:
    """
    An eligible item supplied by the host.

    Attributes:
        key: Stable identity (vault-relative path of the project file).
        display_name: Name shown to the user; used as the new-item tie-break.
        base_score_override: Legacy per-item score, if the host knows one.
        last_known_timestamp: Epoch seconds of the review date a host recorded
            outside the stats document. Informational only: echoed back to
            hosts, never used for ranking.
    """

    key: str
    display_name: str
    base_score_override: float | None = None
    last_known_timestamp: float | None = None
