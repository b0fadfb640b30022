from typing import Any

import yaml  # type: ignore
import yaml.constructor

FENCE = "---"
YAML_ERROR_KEY = "__yaml_error__"

# ---------- Frontmatter helpers ----------


class StrictMappingLoader(yaml.SafeLoader):
    """SafeLoader that rejects a mapping repeating one of its keys."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in seen:
                raise yaml.constructor.ConstructorError(
                    None, None, f"found duplicate key '{key}'", key_node.start_mark
                )
            seen.add(key)
        return super().construct_mapping(node, deep)


def split_frontmatter(md_text: str) -> tuple[str, str] | None:
    """
    Split a note into (yaml block, body) on its ``---`` fences.

    Returns None when the note has no complete frontmatter block.
    """
    lines = md_text.split("\n")
    if lines[0].strip() != FENCE:
        return None

    for end, line in enumerate(lines[1:], start=1):
        if line.strip() == FENCE:
            return "\n".join(lines[1:end]), "\n".join(lines[end + 1 :])
    return None


def parse_frontmatter(md_text: str) -> tuple[dict[str, Any], str]:
    """Parse a note's YAML frontmatter.

    Notes without frontmatter give ``({}, md_text)``. Malformed YAML gives a
    meta dict holding only ``__yaml_error__`` and the untouched text.
    """
    md_text = md_text.lstrip("\ufeff")
    parts = split_frontmatter(md_text)
    if parts is None:
        return {}, md_text

    # Tabs are never valid YAML indentation; editors insert them anyway.
    raw, body = parts[0].replace("\t", "  "), parts[1]

    try:
        meta = yaml.load(raw, Loader=StrictMappingLoader) or {}
    except yaml.YAMLError as e:
        return {YAML_ERROR_KEY: str(e)}, md_text

    if not isinstance(meta, dict):
        return {YAML_ERROR_KEY: "frontmatter is not a mapping"}, md_text
    return meta, body


def frontmatter_tags(meta: dict[str, Any]) -> list[str]:
    """Frontmatter ``tags`` as a list without leading '#' (list or comma-separated string)."""
    raw = meta.get("tags")
    if isinstance(raw, list):
        tags = [str(t) for t in raw if t is not None]
    elif isinstance(raw, str):
        tags = raw.split(",")
    else:
        return []
    return [t.strip().lstrip("#") for t in tags if t.strip()]


def rebuild_markdown_with_frontmatter(meta: dict[str, Any], body: str) -> str:
    """Serialize ``meta`` back above ``body``, keeping key order."""
    block = yaml.safe_dump(
        meta,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=10**9,
    )
    return f"{FENCE}\n{block}{FENCE}\n{body}"
