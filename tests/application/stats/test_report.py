import datetime

import pytest

from projects_memory.application.stats.report import (
    build_chart_data,
    generate_colors,
    interpolate_missing_values,
    summarize,
)
from projects_memory.domain.constants import CHART_COLORS
from projects_memory.domain.stats.models import ProjectStats, ReviewRecord, StatsPayload

TODAY = datetime.date(2026, 3, 14)


def review(day: int, score: float, action: str = "ok") -> ReviewRecord:
    return ReviewRecord(date=f"2026-03-{day:02d}T10:00:00+00:00", action=action, score_after=score)


@pytest.fixture
def payload():
    return StatsPayload(
        projects={
            "Projects/Alpha.md": ProjectStats(
                current_score=70,
                rotation_bonus=4,
                total_reviews=3,
                has_been_presented=True,
                review_history=[review(10, 40), review(12, 60), review(12, 70, "more-often")],
            ),
            "Projects/Beta.md": ProjectStats(current_score=20),
        }
    )


def test_labels_cover_the_window_ending_today(payload):
    chart = build_chart_data(payload, TODAY, days=5)

    assert chart.real_scores.labels == [
        "2026-03-10",
        "2026-03-11",
        "2026-03-12",
        "2026-03-13",
        "2026-03-14",
    ]
    assert chart.daily_actions.labels == chart.real_scores.labels


def test_real_scores_use_last_review_of_the_day_and_interpolate(payload):
    chart = build_chart_data(payload, TODAY, days=5)
    alpha = chart.real_scores.datasets[0]

    assert alpha.label == "Projects/Alpha"
    # 11th: average of neighbours; 13th-14th: carry the last known value.
    assert alpha.data == [40, 55, 70, 70, 70]


def test_effective_scores_add_rotation_bonus(payload):
    chart = build_chart_data(payload, TODAY, days=5)

    assert chart.effective_scores.datasets[0].data == [44, 59, 74, 74, 74]


def test_daily_actions_count_reviews(payload):
    chart = build_chart_data(payload, TODAY, days=5)

    assert chart.daily_actions.datasets[0].data == [1, 0, 2, 0, 0]
    assert chart.daily_actions.datasets[1].data == [0, 0, 0, 0, 0]


def test_project_without_history_is_flat_zero(payload):
    chart = build_chart_data(payload, TODAY, days=3)

    assert chart.real_scores.datasets[1].data == [0, 0, 0]


def test_reviews_outside_the_window_are_ignored(payload):
    chart = build_chart_data(payload, TODAY, days=2)

    assert chart.daily_actions.datasets[0].data == [0, 0]


def test_colors_are_assigned_per_project(payload):
    chart = build_chart_data(payload, TODAY, days=3)
    alpha, beta = chart.real_scores.datasets

    assert alpha.border_color == CHART_COLORS[0]
    assert beta.border_color == CHART_COLORS[1]
    assert alpha.background_color == CHART_COLORS[0] + "20"
    assert chart.daily_actions.datasets[0].background_color == CHART_COLORS[0] + "80"


def test_generate_colors_wraps_the_palette():
    colors = generate_colors(len(CHART_COLORS) + 2)

    assert colors[len(CHART_COLORS)] == CHART_COLORS[0]
    assert colors[-1] == CHART_COLORS[1]


@pytest.mark.parametrize(
    "data, expected",
    [
        ([None, None], [0, 0]),
        ([None, 5, None], [5, 5, 5]),
        ([2, None, None, 8], [2, 5, 5, 8]),
        ([1, 2, 3], [1, 2, 3]),
    ],
)
def test_interpolate_missing_values(data, expected):
    assert interpolate_missing_values(data) == expected


def test_summarize_sorts_by_score(payload):
    rows = summarize(payload)

    assert [r.key for r in rows] == ["Projects/Alpha.md", "Projects/Beta.md"]
    assert rows[0].total_reviews == 3
