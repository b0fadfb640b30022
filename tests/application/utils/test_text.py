"""Tests for projects_memory.application.utils.text frontmatter helpers."""

import pytest

from projects_memory.application.utils.text import (
    frontmatter_tags,
    parse_frontmatter,
    rebuild_markdown_with_frontmatter,
    split_frontmatter,
)

# ---------- Frontmatter Parsing Tests ----------


def test_parse_frontmatter_valid():
    md = "---\ntags: [projet]\npertinence_score: 72\n---\nBody content"
    meta, body = parse_frontmatter(md)
    assert meta["tags"] == ["projet"]
    assert meta["pertinence_score"] == 72
    assert body.strip() == "Body content"


def test_parse_frontmatter_empty():
    md = "Just text, no YAML."
    meta, body = parse_frontmatter(md)
    assert meta == {}
    assert body == md


def test_parse_frontmatter_unclosed():
    md = "---\ntags: [projet]\nno closing fence"
    meta, body = parse_frontmatter(md)
    assert meta == {}
    assert body == md


def test_parse_frontmatter_strips_bom():
    meta, _ = parse_frontmatter("\ufeff---\ntitle: x\n---\n")
    assert meta == {"title": "x"}


def test_parse_frontmatter_tabs_are_fixed():
    meta, _ = parse_frontmatter("---\ntags:\n\t- projet\n---\n")
    assert meta["tags"] == ["projet"]


def test_parse_frontmatter_duplicate_keys():
    meta, _ = parse_frontmatter("---\ntags: a\ntags: b\n---\n")
    assert "__yaml_error__" in meta
    assert "duplicate key" in meta["__yaml_error__"]


def test_parse_frontmatter_invalid_yaml():
    meta, body = parse_frontmatter("---\ntags: [unclosed\n---\nbody")
    assert "__yaml_error__" in meta


def test_parse_frontmatter_not_a_mapping():
    meta, _ = parse_frontmatter("---\n- just\n- a list\n---\n")
    assert meta == {"__yaml_error__": "frontmatter is not a mapping"}


# ---------- Tags ----------


@pytest.mark.parametrize(
    "meta, expected",
    [
        ({"tags": ["projet", "#work"]}, ["projet", "work"]),
        ({"tags": "projet, #work"}, ["projet", "work"]),
        ({"tags": None}, []),
        ({"tags": [None, "x"]}, ["x"]),
        ({}, []),
        ({"tags": 42}, []),
    ],
)
def test_frontmatter_tags(meta, expected):
    assert frontmatter_tags(meta) == expected


# ---------- Rebuild ----------


def test_rebuild_markdown_keeps_key_order_and_body():
    text = rebuild_markdown_with_frontmatter({"title": "Été", "tags": ["projet"]}, "Body\n")

    assert text.startswith("---\ntitle: Été\ntags:\n- projet\n---\n")
    assert text.endswith("Body\n")
    meta, body = parse_frontmatter(text)
    assert meta == {"title": "Été", "tags": ["projet"]}
    assert body == "Body\n"


def test_split_frontmatter():
    assert split_frontmatter("---\na: 1\n---\nbody\nmore") == ("a: 1", "body\nmore")
    assert split_frontmatter("---\na: 1") is None
    assert split_frontmatter("") is None
