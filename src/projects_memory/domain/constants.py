"""Centralized constants for projects-memory.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Scores ----------
SCORE_MIN = 1.0
SCORE_MAX = 100.0
DEFAULT_SCORE = 50.0
DEFAULT_RAPPROCHEMENT_FACTOR = 0.2
DEFAULT_ROTATION_BONUS = 1.0
DEFAULT_SESSION_PENALTY_WEIGHT = 1.0

# ---------- History ----------
MAX_REVIEW_HISTORY = 100

# ---------- Timed activity ----------
DEFAULT_TIMED_ACTIVITY_MINUTES = 25
DEFAULT_TICK_INTERVAL = 1.0  # seconds

# ---------- Vault ----------
DEFAULT_PROJECT_TAGS = "projet"
DEFAULT_ARCHIVE_TAG = "projet-fini"
LEGACY_SCORE_FIELD = "pertinence_score"
LAST_REVIEWED_FIELD = "last_reviewed_date"

# ---------- Reports ----------
REPORT_DAYS = 30
CHART_COLORS = [
    "#3b82f6",  # blue
    "#ef4444",  # red
    "#10b981",  # green
    "#f59e0b",  # yellow
    "#8b5cf6",  # purple
    "#06b6d4",  # cyan
    "#f97316",  # orange
    "#84cc16",  # lime
    "#ec4899",  # pink
    "#6b7280",  # gray
]
