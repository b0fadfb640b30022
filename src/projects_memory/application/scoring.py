"""
Scoring engine.

Pure computation module with no I/O and no hidden state. Scores live in
[SCORE_MIN, SCORE_MAX]; the review actions close a fraction of the gap
toward either bound ("rapprochement").
"""

import math

from projects_memory.domain.constants import SCORE_MAX, SCORE_MIN
from projects_memory.domain.stats.models import ReviewAction


def clamp_score(score: float) -> float:
    return min(SCORE_MAX, max(SCORE_MIN, score))


def close_gap_to_floor(score: float, factor: float) -> float:
    """Move ``score`` a fraction ``factor`` of the way toward SCORE_MIN."""
    return score - factor * (score - SCORE_MIN)


def close_gap_to_ceiling(score: float, factor: float) -> float:
    """Move ``score`` a fraction ``factor`` of the way toward SCORE_MAX."""
    return score + factor * (SCORE_MAX - score)


def apply_action(current_score: float, action: ReviewAction | str, rapprochement_factor: float) -> float:
    """
    Compute the new base score for a review action.

    ``finished`` leaves the score untouched; the host removes the item from
    candidacy. Every result is clamped to [1, 100].

    Raises:
        ValueError: ``action`` is not a known ReviewAction value.
    """
    action = ReviewAction(action)

    if action is ReviewAction.LESS_OFTEN:
        new_score = close_gap_to_floor(current_score, rapprochement_factor)
    elif action is ReviewAction.MORE_OFTEN:
        new_score = close_gap_to_ceiling(current_score, rapprochement_factor)
    elif action is ReviewAction.PRIORITY_MAX:
        new_score = SCORE_MAX
    else:
        # OK and FINISHED
        new_score = current_score

    return clamp_score(new_score)


def session_penalty(
    score: float,
    session_reviews: int,
    weight: float,
    rapprochement_factor: float,
) -> float:
    """
    Apply the in-session recency penalty to ``score``.

    With ``k = session_reviews * weight``, the "less often" reduction is
    applied ``floor(k)`` times, then once more scaled by the fractional
    part of ``k``. The result varies continuously with the weight.
    """
    if session_reviews <= 0 or weight <= 0:
        return score

    strength = session_reviews * weight
    full = math.floor(strength)
    remainder = strength - full

    for _ in range(full):
        score = close_gap_to_floor(score, rapprochement_factor)
    if remainder > 0:
        score = close_gap_to_floor(score, remainder * rapprochement_factor)
    return score


def effective_score(
    base: float,
    rotation_bonus: float,
    session_reviews: int = 0,
    weight: float = 0.0,
    rapprochement_factor: float = 0.0,
) -> float:
    """Ranking value: base + rotation bonus, minus the session recency penalty. Never persisted."""
    return session_penalty(base + rotation_bonus, session_reviews, weight, rapprochement_factor)


def rotation_bonus_delta(bonus_amount: float) -> float:
    """Bonus added to every other item after a counted review."""
    return max(0.0, float(bonus_amount))
