from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from projects_memory.domain.constants import (
    DEFAULT_ARCHIVE_TAG,
    DEFAULT_PROJECT_TAGS,
    DEFAULT_RAPPROCHEMENT_FACTOR,
    DEFAULT_ROTATION_BONUS,
    DEFAULT_SCORE,
    DEFAULT_SESSION_PENALTY_WEIGHT,
    DEFAULT_TICK_INTERVAL,
    DEFAULT_TIMED_ACTIVITY_MINUTES,
)

CONFIG_DIR = Path.home() / ".config/projects-memory"


class AppConfig(BaseSettings):
    """
    Configuration model for projects-memory.
    Supports loading from:
    1. Environment variables (PMEM_*)
    2. Config file (~/.config/projects-memory/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="PMEM_",
        extra="ignore",
    )

    # Paths
    data_file: Path = Field(default_factory=lambda: CONFIG_DIR / "data.json")
    legacy_stats_file: Path | None = None
    vault_root: Path | None = None

    # Candidate filtering
    project_tags: str = DEFAULT_PROJECT_TAGS
    archive_tag: str = DEFAULT_ARCHIVE_TAG

    # Scoring
    default_score: float = Field(default=DEFAULT_SCORE, ge=1, le=100)
    rapprochement_factor: float = Field(default=DEFAULT_RAPPROCHEMENT_FACTOR, ge=0, le=1)
    rotation_bonus: float = Field(default=DEFAULT_ROTATION_BONUS, ge=0)
    session_penalty_weight: float = Field(default=DEFAULT_SESSION_PENALTY_WEIGHT, ge=0)

    # Timed activity
    timed_activity_minutes: float = Field(default=DEFAULT_TIMED_ACTIVITY_MINUTES, gt=0)
    tick_interval: float = Field(default=DEFAULT_TICK_INTERVAL, gt=0)

    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # Earlier sources win: CLI overrides, then env, then the TOML file.
        toml_file = CONFIG_DIR / "config.toml"
        if toml_file.exists():
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_file", "legacy_stats_file", "vault_root", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path | None:
        if v is None or v == "":
            return None
        return Path(v).expanduser().resolve()

    @property
    def project_tag_list(self) -> list[str]:
        """Configured project tags without the leading '#'."""
        return [t.strip().lstrip("#") for t in self.project_tags.split(",") if t.strip()]

    @property
    def normalized_archive_tag(self) -> str:
        return self.archive_tag.strip().lstrip("#")

    @property
    def timed_activity_ms(self) -> int:
        return int(max(1.0, self.timed_activity_minutes) * 60 * 1000)


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/projects-memory/config.toml (if exists)
    3. Environment variables (PMEM_*)
    4. cli_overrides (passed from Typer)
    """
    # Typer passes None for options the user did not give.
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    config = AppConfig(**overrides)

    if config.legacy_stats_file is None:
        # Older releases kept statistics beside the settings file.
        config.legacy_stats_file = config.data_file.with_name("stats.json")

    return config
