import pytest

from projects_memory.application.stats.store import StatsStore, empty_document, legacy_flat_scores
from projects_memory.consts import SCHEMA_VERSION
from projects_memory.domain.errors import StorageReadError
from projects_memory.domain.stats.models import ProjectStats, StatsPayload
from projects_memory.infrastructure.adapters.stats.memory_storage import InMemoryStorage


def test_missing_document_is_initialized(storage, store):
    payload = store.load()

    assert payload.projects == {}
    assert storage.read() == empty_document()
    assert storage.write_count == 1


def test_save_preserves_other_top_level_keys():
    storage = InMemoryStorage({"version": 1, "settings": {"projectTags": "work"}, "migrations": {"x": True}})
    store = StatsStore(storage)

    store.save(StatsPayload(projects={"a.md": ProjectStats(current_score=12)}))

    document = storage.read()
    assert document["settings"] == {"projectTags": "work"}
    assert document["migrations"] == {"x": True}
    assert document["version"] == SCHEMA_VERSION
    assert document["stats"]["projects"]["a.md"]["currentScore"] == 12


def test_lenient_load_falls_back_without_persisting(flaky_storage):
    store = StatsStore(flaky_storage)
    flaky_storage.fail_reads = True

    assert store.load().projects == {}
    assert flaky_storage.write_count == 0


def test_strict_load_raises(flaky_storage):
    flaky_storage.fail_reads = True

    with pytest.raises(StorageReadError):
        StatsStore(flaky_storage).load(strict=True)


def test_get_or_create_many_persists_once(storage, store):
    store.load()
    writes = storage.write_count

    records = store.get_or_create_many(["a.md", "b.md", "c.md"])

    assert set(records) == {"a.md", "b.md", "c.md"}
    assert storage.write_count == writes + 1
    assert set(store.load().projects) == {"a.md", "b.md", "c.md"}


def test_get_or_create_many_without_new_keys_does_not_write(storage, store):
    store.get_or_create_many(["a.md"])
    writes = storage.write_count

    store.get_or_create_many(["a.md"])
    assert storage.write_count == writes


def test_get_or_create_uses_configured_default_score():
    store = StatsStore(InMemoryStorage(), default_score=35)

    assert store.get_or_create("a.md").current_score == 35


def test_get_or_create_keeps_existing_records(store):
    store.save(StatsPayload(projects={"a.md": ProjectStats(current_score=88, total_reviews=4)}))

    record = store.get_or_create("a.md")
    assert record.current_score == 88
    assert record.total_reviews == 4
    assert not record.is_new


def test_unreadable_document_yields_unsaved_defaults(flaky_storage):
    store = StatsStore(flaky_storage)
    flaky_storage.fail_reads = True

    records = store.get_or_create_many(["a.md"])
    assert records["a.md"].current_score == 50
    assert flaky_storage.write_count == 0


def test_records_without_presented_flag_infer_it_from_reviews():
    storage = InMemoryStorage(
        {
            "stats": {
                "projects": {
                    "seen.md": {"currentScore": 40, "totalReviews": 2},
                    "unseen.md": {"currentScore": 40},
                }
            }
        }
    )
    projects = StatsStore(storage).load().projects

    assert not projects["seen.md"].is_new
    assert projects["unseen.md"].is_new


def test_legacy_flat_scores_ignores_reserved_and_non_numeric_keys():
    document = {
        "version": 2,
        "stats": {},
        "Projects/A.md": 42,
        "Projects/B.md": 7.5,
        "flag": True,
        "name": "vault",
    }

    assert legacy_flat_scores(document) == {"Projects/A.md": 42.0, "Projects/B.md": 7.5}


@pytest.mark.parametrize(
    "bad_record",
    [
        {"currentScore": None},
        {"currentScore": "high"},
        {"currentScore": 40, "reviewHistory": [{"date": "2026-01-01T00:00:00+00:00"}]},
        {"currentScore": 40, "reviewHistory": 7},
        "not an object",
    ],
)
def test_malformed_record_is_skipped(bad_record, caplog):
    storage = InMemoryStorage(
        {
            "stats": {
                "projects": {
                    "bad.md": bad_record,
                    "good.md": {"currentScore": 70, "totalReviews": 2},
                }
            }
        }
    )

    for strict in (False, True):
        projects = StatsStore(storage).load(strict=strict).projects
        assert set(projects) == {"good.md"}
        assert projects["good.md"].current_score == 70
    assert "bad.md" in caplog.text


@pytest.mark.parametrize("bad_global", [[1], "x", {"totalReviews": "many"}])
def test_malformed_global_stats_start_from_zero(bad_global):
    storage = InMemoryStorage(
        {"stats": {"projects": {"good.md": {"currentScore": 70}}, "global": bad_global}}
    )

    payload = StatsStore(storage).load()
    assert payload.global_stats.total_reviews == 0
    assert set(payload.projects) == {"good.md"}
