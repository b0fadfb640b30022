"""
Vault Candidate Source: Infrastructure adapter for an Obsidian-style vault.

Implements CandidateSource by reading Markdown frontmatter. Only the
frontmatter ``tags`` field is consulted; inline ``#tags`` in the body are
not parsed.
"""

import datetime
import logging
import math
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from projects_memory.application.utils.text import (
    YAML_ERROR_KEY,
    frontmatter_tags,
    parse_frontmatter,
    rebuild_markdown_with_frontmatter,
)
from projects_memory.domain.constants import LAST_REVIEWED_FIELD, LEGACY_SCORE_FIELD
from projects_memory.domain.stats.models import Candidate
from projects_memory.domain.stats.ports import CandidateSource

logger = logging.getLogger(__name__)


def iter_markdown_files(root: Path) -> Iterator[Path]:
    """Markdown files under ``root``, skipping hidden directories such as .obsidian."""
    for path in sorted(root.rglob("*.md")):
        rel_parts = path.relative_to(root).parts
        if any(part.startswith(".") for part in rel_parts):
            continue
        yield path


def _parse_override(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    return score if math.isfinite(score) else None


def _parse_timestamp(value: Any) -> float | None:
    if isinstance(value, datetime.datetime):
        dt = value
    elif isinstance(value, datetime.date):
        dt = datetime.datetime.combine(value, datetime.time())
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt.timestamp()


class VaultCandidateSource(CandidateSource):
    def __init__(self, root: Path, project_tags: list[str], archive_tag: str = ""):
        self.root = Path(root)
        self.project_tags = {t.lstrip("#") for t in project_tags if t}
        self.archive_tag = archive_tag.lstrip("#")

    def key_for(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def list_eligible_items(self) -> list[Candidate]:
        """Project files carrying a project tag and not the archive tag."""
        if not self.project_tags:
            logger.warning("No project tags configured; no candidates")
            return []

        candidates: list[Candidate] = []
        for path in iter_markdown_files(self.root):
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"[vault] Skipped {path.name}: {e}")
                continue

            meta, _ = parse_frontmatter(text)
            if not meta or YAML_ERROR_KEY in meta:
                continue

            tags = set(frontmatter_tags(meta))
            if not tags & self.project_tags:
                continue
            if self.archive_tag and self.archive_tag in tags:
                logger.debug(f"[vault] Skipped archived {path.name}")
                continue

            candidates.append(
                Candidate(
                    key=self.key_for(path),
                    display_name=path.stem,
                    base_score_override=_parse_override(meta.get(LEGACY_SCORE_FIELD)),
                    last_known_timestamp=_parse_timestamp(meta.get(LAST_REVIEWED_FIELD)),
                )
            )

        logger.debug(f"[vault] {len(candidates)} eligible project(s) under {self.root}")
        return candidates

    def archive(self, key: str) -> None:
        """Swap the project tags for the archive tag in the file's frontmatter."""
        path = self.root / key
        text = path.read_text(encoding="utf-8")
        meta, body = parse_frontmatter(text)
        if YAML_ERROR_KEY in meta:
            raise ValueError(f"Cannot archive {key}: {meta[YAML_ERROR_KEY]}")

        tags = [t for t in frontmatter_tags(meta) if t not in self.project_tags]
        if self.archive_tag and self.archive_tag not in tags:
            tags.append(self.archive_tag)
        meta["tags"] = tags

        path.write_text(rebuild_markdown_with_frontmatter(meta, body), encoding="utf-8")
        logger.info(f"Archived {key}")
