"""
Schema migrations for the persisted document.

Steps run in a fixed order, each gated by its own flag under the
document's ``migrations`` key. A step persists its result together with
its flag, so an interrupted run resumes at the first unfinished step.
Malformed legacy records are skipped and logged; they never block the
rest of the migration.
"""

import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from projects_memory.application.scoring import clamp_score
from projects_memory.domain.constants import SCORE_MAX
from projects_memory.domain.errors import MigrationError, StorageReadError
from projects_memory.domain.stats.models import Candidate, GlobalStats, ProjectStats, StatsPayload
from projects_memory.domain.stats.ports import DocumentStorage

from .store import StatsStore, legacy_flat_scores

logger = logging.getLogger(__name__)

FLAG_LEGACY_STATS_FILE = "legacyStatsFile"
FLAG_SEED_SCORES = "seedScores"
FLAG_NORMALIZE_SCORES = "normalizeScores"


@dataclass
class MigrationReport:
    steps_run: list[str] = field(default_factory=list)
    steps_skipped: list[str] = field(default_factory=list)
    imported: int = 0
    seeded: int = 0
    normalized: int = 0
    errors: list[str] = field(default_factory=list)


def _finite_score(key: str, value: Any) -> float:
    try:
        score = float(value)
    except (TypeError, ValueError) as e:
        raise MigrationError(key, f"score {value!r} is not a number") from e
    if not math.isfinite(score):
        raise MigrationError(key, f"score {value!r} is not finite")
    return score


def _import_legacy_stats(
    payload: StatsPayload,
    document: dict[str, Any],
    report: MigrationReport,
    legacy_storage: DocumentStorage | None,
    default_score: float,
) -> bool:
    """(a) Merge a standalone legacy statistics file into the payload."""
    if legacy_storage is None:
        return True

    try:
        legacy = legacy_storage.read()
    except StorageReadError as e:
        # Leave the flag unset: the file may become readable later.
        report.errors.append(str(e))
        logger.warning(f"Legacy stats file unreadable, will retry next run: {e}")
        return False

    if not legacy:
        return True

    projects = legacy.get("projects") or {}
    if not isinstance(projects, dict):
        report.errors.append("legacy projects section is not an object")
        projects = {}

    for key, raw in projects.items():
        if key in payload.projects:
            continue  # Already migrated by an interrupted earlier run.
        try:
            if not isinstance(raw, dict):
                raise MigrationError(key, "record is not an object")
            _finite_score(key, raw.get("currentScore", default_score))
            record = ProjectStats.from_dict(raw, default_score=default_score)
        except MigrationError as e:
            report.errors.append(str(e))
            logger.warning(str(e))
            continue
        except (KeyError, TypeError, ValueError) as e:
            err = MigrationError(key, f"malformed record ({e})")
            report.errors.append(str(err))
            logger.warning(str(err))
            continue
        payload.projects[key] = record
        report.imported += 1

    gs = payload.global_stats
    if gs.total_reviews == 0 and gs.total_review_minutes == 0:
        try:
            legacy_global = legacy.get("global")
            if isinstance(legacy_global, dict):
                payload.global_stats = GlobalStats.from_dict(legacy_global)
        except (TypeError, ValueError) as e:
            report.errors.append(f"legacy global stats skipped: {e}")
            logger.warning(f"Legacy global stats skipped: {e}")

    return True


def _seed_scores(
    payload: StatsPayload,
    document: dict[str, Any],
    report: MigrationReport,
    candidates: list[Candidate],
    default_score: float,
) -> bool:
    """(b) Create records for unknown items from legacy per-item overrides."""
    overrides: dict[str, Any] = dict(legacy_flat_scores(document))
    for candidate in candidates:
        if candidate.base_score_override is not None:
            overrides[candidate.key] = candidate.base_score_override
        else:
            overrides.setdefault(candidate.key, None)

    for key, value in overrides.items():
        if key in payload.projects:
            continue
        score = default_score
        if value is not None:
            try:
                score = _finite_score(key, value)
            except MigrationError as e:
                report.errors.append(str(e))
                logger.warning(f"{e}; using default score")
        payload.projects[key] = ProjectStats(current_score=score)
        report.seeded += 1

    for key in legacy_flat_scores(document):
        del document[key]

    return True


def _normalize_scores(
    payload: StatsPayload,
    document: dict[str, Any],
    report: MigrationReport,
    default_score: float,
) -> bool:
    """(c) Rescale an unnormalized score range into [1, 100]."""
    scores: dict[str, float] = {}
    for key, stats in payload.projects.items():
        try:
            scores[key] = _finite_score(key, stats.current_score)
        except MigrationError as e:
            report.errors.append(str(e))
            logger.warning(f"{e}; resetting to default score")
            scores[key] = default_score

    if not scores:
        return True

    observed_max = max(scores.values())
    scale = SCORE_MAX / observed_max if observed_max > SCORE_MAX else 1.0
    if scale != 1.0:
        logger.info(f"Rescaling scores against observed maximum {observed_max:g}")

    for key, score in scores.items():
        normalized = clamp_score(score * scale)
        if normalized != payload.projects[key].current_score:
            payload.projects[key].current_score = normalized
            report.normalized += 1

    return True


def migrate(
    store: StatsStore,
    legacy_storage: DocumentStorage | None = None,
    candidates: Iterable[Candidate] = (),
) -> MigrationReport:
    """
    Run every pending migration step against ``store``.

    Args:
        store: The stats store owning the unified document.
        legacy_storage: Standalone statistics file from older releases, if any.
        candidates: Current eligible items; their ``base_score_override``
            seeds scores for items without a record.

    Returns:
        A MigrationReport describing what ran. Running twice is a no-op the
        second time.
    """
    report = MigrationReport()
    candidate_list = list(candidates)
    default = store.default_score

    steps: list[tuple[str, Callable[[StatsPayload, dict[str, Any]], bool]]] = [
        (
            FLAG_LEGACY_STATS_FILE,
            lambda p, d: _import_legacy_stats(p, d, report, legacy_storage, default),
        ),
        (
            FLAG_SEED_SCORES,
            lambda p, d: _seed_scores(p, d, report, candidate_list, default),
        ),
        (
            FLAG_NORMALIZE_SCORES,
            lambda p, d: _normalize_scores(p, d, report, default),
        ),
    ]

    for flag, step in steps:
        document = store.load_document(strict=True)
        flags = document.get("migrations")
        if not isinstance(flags, dict):
            flags = {}

        if flags.get(flag):
            report.steps_skipped.append(flag)
            continue

        payload = store.payload_from_document(document)
        if not step(payload, document):
            continue

        flags[flag] = True
        document["migrations"] = flags
        document["stats"] = payload.to_dict()
        store.save_document(document)
        report.steps_run.append(flag)
        logger.info(f"Migration step '{flag}' complete")

    return report
