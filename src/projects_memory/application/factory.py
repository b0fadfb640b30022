"""
Scheduler Factory
Centralizes the wiring of storage adapters and the scheduler from config.
"""

from projects_memory.application.config import AppConfig
from projects_memory.application.scheduler import ReviewScheduler
from projects_memory.application.stats.store import StatsStore
from projects_memory.domain.session import SessionContext
from projects_memory.domain.stats.ports import CandidateSource
from projects_memory.infrastructure.adapters.stats.json_storage import JsonFileStorage
from projects_memory.infrastructure.adapters.vault_candidates import VaultCandidateSource


def get_stats_store(config: AppConfig) -> StatsStore:
    return StatsStore(JsonFileStorage(config.data_file), default_score=config.default_score)


def get_scheduler(config: AppConfig, session: SessionContext | None = None) -> ReviewScheduler:
    """
    Returns a ReviewScheduler over the configured data file.
    """
    legacy = JsonFileStorage(config.legacy_stats_file) if config.legacy_stats_file else None
    return ReviewScheduler(
        get_stats_store(config),
        session=session,
        rapprochement_factor=config.rapprochement_factor,
        rotation_bonus=config.rotation_bonus,
        session_penalty_weight=config.session_penalty_weight,
        legacy_storage=legacy,
    )


def get_candidate_source(config: AppConfig) -> CandidateSource:
    """
    Returns the vault candidate source for the configured vault.

    Raises:
        ValueError: No vault root is configured.
    """
    if config.vault_root is None:
        raise ValueError("No vault configured. Pass a vault path or set PMEM_VAULT_ROOT.")
    return VaultCandidateSource(
        config.vault_root,
        project_tags=config.project_tag_list,
        archive_tag=config.normalized_archive_tag,
    )
