"""
Chart data builder for review statistics.

This is a pure computation module with no I/O. It turns the review
history ledger into per-project daily series that a host can plot.
"""

import datetime
from dataclasses import dataclass, field

from projects_memory.domain.constants import CHART_COLORS, REPORT_DAYS
from projects_memory.domain.stats.models import StatsPayload


@dataclass
class Dataset:
    label: str
    data: list[float]
    border_color: str
    background_color: str


@dataclass
class ChartData:
    labels: list[str]
    datasets: list[Dataset] = field(default_factory=list)


@dataclass
class StatsReport:
    """
    Three aligned chart series over the same date labels.

    real_scores: ``scoreAfter`` of the day's last review.
    effective_scores: ``scoreAfter`` plus the project's current rotation bonus.
    daily_actions: Number of counted reviews per day.
    """

    real_scores: ChartData
    effective_scores: ChartData
    daily_actions: ChartData


@dataclass
class ProjectSummary:
    key: str
    current_score: float
    rotation_bonus: float
    total_reviews: int
    last_review_date: str


def generate_colors(count: int) -> list[str]:
    return [CHART_COLORS[i % len(CHART_COLORS)] for i in range(count)]


def interpolate_missing_values(data: list[float | None]) -> list[float]:
    """
    Fill gaps: average of the nearest known neighbours, else whichever
    neighbour exists, else 0.
    """
    filled: list[float] = []
    for i, value in enumerate(data):
        if value is not None:
            filled.append(value)
            continue
        prev_value = next((data[j] for j in range(i - 1, -1, -1) if data[j] is not None), None)
        next_value = next((data[j] for j in range(i + 1, len(data)) if data[j] is not None), None)
        if prev_value is not None and next_value is not None:
            filled.append((prev_value + next_value) / 2)
        elif prev_value is not None:
            filled.append(prev_value)
        elif next_value is not None:
            filled.append(next_value)
        else:
            filled.append(0.0)
    return filled


def _review_day(date: str) -> str | None:
    try:
        parsed = datetime.datetime.fromisoformat(date.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(datetime.timezone.utc)
    return parsed.date().isoformat()


def build_chart_data(
    payload: StatsPayload,
    today: datetime.date,
    days: int = REPORT_DAYS,
) -> StatsReport:
    """Build the real/effective/daily-actions series for the ``days`` ending at ``today``."""
    labels = [(today - datetime.timedelta(days=offset)).isoformat() for offset in range(days - 1, -1, -1)]
    index_of = {label: i for i, label in enumerate(labels)}

    report = StatsReport(
        real_scores=ChartData(labels=labels),
        effective_scores=ChartData(labels=labels),
        daily_actions=ChartData(labels=labels),
    )

    keys = list(payload.projects)
    for key, color in zip(keys, generate_colors(len(keys))):
        project = payload.projects[key]
        label = key.removesuffix(".md")

        real: list[float | None] = [None] * days
        effective: list[float | None] = [None] * days
        actions = [0.0] * days

        for review in project.review_history:
            day = _review_day(review.date)
            i = index_of.get(day) if day else None
            if i is None:
                continue  # Outside the window.
            real[i] = review.score_after
            effective[i] = review.score_after + project.rotation_bonus
            actions[i] += 1

        report.real_scores.datasets.append(
            Dataset(label, interpolate_missing_values(real), color, color + "20")
        )
        report.effective_scores.datasets.append(
            Dataset(label, interpolate_missing_values(effective), color, color + "20")
        )
        report.daily_actions.datasets.append(Dataset(label, actions, color, color + "80"))

    return report


def summarize(payload: StatsPayload) -> list[ProjectSummary]:
    """Per-project rows, highest current score first."""
    rows = [
        ProjectSummary(
            key=key,
            current_score=stats.current_score,
            rotation_bonus=stats.rotation_bonus,
            total_reviews=stats.total_reviews,
            last_review_date=stats.last_review_date,
        )
        for key, stats in payload.projects.items()
    ]
    return sorted(rows, key=lambda r: r.current_score, reverse=True)
