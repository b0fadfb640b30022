"""
Candidate selector for review sessions.

Picks the next project to present by:
1. Dropping projects ignored for the rest of the session
2. Giving never-presented projects absolute priority (by display name)
3. Otherwise ranking reviewed projects by effective score
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from projects_memory.application.scoring import effective_score
from projects_memory.application.stats.store import StatsStore
from projects_memory.domain.constants import DEFAULT_RAPPROCHEMENT_FACTOR, DEFAULT_SESSION_PENALTY_WEIGHT
from projects_memory.domain.errors import NoCandidatesError, StorageError
from projects_memory.domain.session import SessionContext
from projects_memory.domain.stats.models import Candidate, ProjectStats

logger = logging.getLogger(__name__)


@dataclass
class Selection:
    """Result of a selection cycle."""

    key: str
    display_name: str
    is_new: bool
    effective_score: float
    stats: ProjectStats


@dataclass
class RankedCandidate:
    candidate: Candidate
    stats: ProjectStats
    effective_score: float


def partition_candidates(
    candidates: Sequence[Candidate],
    stats_by_key: dict[str, ProjectStats],
) -> tuple[list[Candidate], list[Candidate]]:
    """Split candidates into (new, reviewed), preserving input order."""
    new: list[Candidate] = []
    reviewed: list[Candidate] = []
    for candidate in candidates:
        if stats_by_key[candidate.key].is_new:
            new.append(candidate)
        else:
            reviewed.append(candidate)
    return new, reviewed


def rank_candidates(
    candidates: Sequence[Candidate],
    stats_by_key: dict[str, ProjectStats],
    session: SessionContext,
    penalty_weight: float = DEFAULT_SESSION_PENALTY_WEIGHT,
    rapprochement_factor: float = DEFAULT_RAPPROCHEMENT_FACTOR,
) -> list[RankedCandidate]:
    """Effective scores for ``candidates``, highest first; ties keep input order."""
    ranked = []
    for candidate in candidates:
        stats = stats_by_key[candidate.key]
        score = effective_score(
            stats.current_score,
            stats.rotation_bonus,
            session.review_count(candidate.key),
            penalty_weight,
            rapprochement_factor,
        )
        ranked.append(RankedCandidate(candidate, stats, score))

    # sorted() is stable, so equal scores stay in input order.
    return sorted(ranked, key=lambda r: r.effective_score, reverse=True)


class CandidateSelector:
    def __init__(
        self,
        store: StatsStore,
        session: SessionContext,
        penalty_weight: float = DEFAULT_SESSION_PENALTY_WEIGHT,
        rapprochement_factor: float = DEFAULT_RAPPROCHEMENT_FACTOR,
    ):
        self.store = store
        self.session = session
        self.penalty_weight = penalty_weight
        self.rapprochement_factor = rapprochement_factor

    def _fetch_stats(self, keys: list[str]) -> dict[str, ProjectStats]:
        try:
            return self.store.get_or_create_many(keys)
        except StorageError as e:
            # Default records are re-derived on the next load; selection goes on.
            logger.warning(f"Could not persist new stats records: {e}")
            payload = self.store.load()
            return {k: payload.projects.get(k) or self.store.new_record() for k in keys}

    def eligible(self, candidates: Sequence[Candidate]) -> list[Candidate]:
        seen: set[str] = set()
        eligible = []
        for c in candidates:
            if self.session.is_ignored(c.key) or c.key in seen:
                continue
            seen.add(c.key)
            eligible.append(c)
        return eligible

    def select_next(self, candidates: Sequence[Candidate]) -> Selection:
        """
        Choose the next project to present.

        Raises:
            NoCandidatesError: No candidate remains after session exclusions.
        """
        eligible = self.eligible(candidates)
        if not eligible:
            raise NoCandidatesError()

        stats_by_key = self._fetch_stats([c.key for c in eligible])
        new, reviewed = partition_candidates(eligible, stats_by_key)

        if new:
            chosen = min(new, key=lambda c: (c.display_name, c.key))
            stats = stats_by_key[chosen.key]
            logger.debug(f"Selected new project {chosen.key} ({len(new)} new pending)")
            return Selection(
                key=chosen.key,
                display_name=chosen.display_name,
                is_new=True,
                effective_score=effective_score(stats.current_score, stats.rotation_bonus),
                stats=stats,
            )

        best = rank_candidates(
            reviewed,
            stats_by_key,
            self.session,
            self.penalty_weight,
            self.rapprochement_factor,
        )[0]
        logger.debug(f"Selected {best.candidate.key} with effective score {best.effective_score:.2f}")
        return Selection(
            key=best.candidate.key,
            display_name=best.candidate.display_name,
            is_new=False,
            effective_score=best.effective_score,
            stats=best.stats,
        )
