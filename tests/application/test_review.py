import datetime

import pytest

from projects_memory.application.review import ReviewTransaction
from projects_memory.application.stats.store import StatsStore
from projects_memory.domain.constants import MAX_REVIEW_HISTORY
from projects_memory.domain.errors import StorageReadError, StorageWriteError
from projects_memory.domain.session import SessionContext
from projects_memory.domain.stats.models import ReviewAction
from projects_memory.infrastructure.adapters.stats.memory_storage import InMemoryStorage


@pytest.fixture
def transaction(store, session, clock):
    return ReviewTransaction(store, session, rapprochement_factor=0.2, rotation_bonus=5.0, clock=clock)


def test_first_click_marks_presented_without_counting(transaction, store, fixed_now):
    outcome = transaction.record("Projects/A.md", ReviewAction.MORE_OFTEN)

    assert outcome.counted is False
    stats = store.load().projects["Projects/A.md"]
    assert stats.current_score == pytest.approx(60.0)
    assert stats.has_been_presented is True
    assert stats.total_reviews == 0
    assert stats.review_history == []
    assert stats.last_review_date == fixed_now.isoformat()
    assert store.load().global_stats.total_reviews == 0


def test_counted_review_updates_history_and_counters(transaction, store):
    transaction.record("Projects/A.md", "ok")
    outcome = transaction.record("Projects/A.md", "less-often", minutes=3.5)

    assert outcome.counted is True
    payload = store.load()
    stats = payload.projects["Projects/A.md"]
    assert stats.current_score == pytest.approx(40.2)
    assert stats.total_reviews == 1
    assert len(stats.review_history) == 1
    entry = stats.review_history[0]
    assert entry.action == "less-often"
    assert entry.score_after == pytest.approx(40.2)
    assert payload.global_stats.total_reviews == 1
    assert payload.global_stats.total_review_minutes == pytest.approx(3.5)


def test_rotation_bonus_goes_to_every_other_record(transaction, store):
    store.get_or_create_many(["Projects/A.md", "Projects/B.md", "Projects/C.md"])
    transaction.record("Projects/A.md", "ok")
    transaction.record("Projects/A.md", "ok")
    transaction.record("Projects/A.md", "ok")

    projects = store.load().projects
    assert projects["Projects/A.md"].rotation_bonus == 0
    assert projects["Projects/B.md"].rotation_bonus == pytest.approx(10.0)
    assert projects["Projects/C.md"].rotation_bonus == pytest.approx(10.0)

    # A counted review of B resets its own bonus.
    transaction.record("Projects/B.md", "ok")
    transaction.record("Projects/B.md", "ok")
    projects = store.load().projects
    assert projects["Projects/B.md"].rotation_bonus == 0
    assert projects["Projects/A.md"].rotation_bonus == pytest.approx(5.0)
    assert projects["Projects/C.md"].rotation_bonus == pytest.approx(15.0)


def test_first_click_does_not_grant_rotation_bonus(transaction, store):
    store.get_or_create_many(["Projects/A.md", "Projects/B.md"])
    transaction.record("Projects/A.md", "ok")

    assert store.load().projects["Projects/B.md"].rotation_bonus == 0


def test_finished_keeps_score_and_counts(transaction, store):
    transaction.record("Projects/A.md", "priority-max")
    outcome = transaction.record("Projects/A.md", "finished")

    assert outcome.counted is True
    assert outcome.stats.current_score == 100
    assert outcome.stats.total_reviews == 1


def test_history_is_capped(store, session, clock, fixed_now):
    transaction = ReviewTransaction(store, session, clock=clock)
    for i in range(150):
        transaction.record("Projects/A.md", "ok" if i % 2 else "more-often")

    stats = store.load().projects["Projects/A.md"]
    assert stats.total_reviews == 149
    assert len(stats.review_history) == MAX_REVIEW_HISTORY
    # The 100 most recent counted reviews are kept: clicks 50 to 149.
    assert stats.review_history[0].date == (fixed_now + datetime.timedelta(minutes=50)).isoformat()
    assert stats.review_history[-1].date == stats.last_review_date


def test_unknown_action_raises_before_io(session, flaky_storage):
    storage = flaky_storage
    storage.fail_reads = True
    transaction = ReviewTransaction(StatsStore(storage), session)

    with pytest.raises(ValueError):
        transaction.record("Projects/A.md", "sometimes")


def test_negative_minutes_are_ignored(transaction, store):
    transaction.record("Projects/A.md", "ok")
    transaction.record("Projects/A.md", "ok", minutes=-10)

    assert store.load().global_stats.total_review_minutes == 0


def test_failed_write_leaves_session_and_storage_untouched(clock, flaky_storage):
    storage = flaky_storage
    store = StatsStore(storage)
    session = SessionContext()
    transaction = ReviewTransaction(store, session, clock=clock)
    transaction.record("Projects/A.md", "ok")
    before = storage.read()

    storage.fail_writes = True
    with pytest.raises(StorageWriteError):
        transaction.record("Projects/A.md", "less-often")

    assert session.review_count("Projects/A.md") == 1
    assert storage.read() == before


def test_failed_read_does_not_overwrite_data(clock, flaky_storage):
    storage = flaky_storage
    store = StatsStore(storage)
    transaction = ReviewTransaction(store, SessionContext(), clock=clock)
    transaction.record("Projects/A.md", "ok")
    writes = storage.write_count

    storage.fail_reads = True
    with pytest.raises(StorageReadError):
        transaction.record("Projects/B.md", "ok")

    assert storage.write_count == writes


def test_end_to_end_scenario(scheduler, store, make_candidates):
    candidates = make_candidates("Alpha", "Beta")

    first = scheduler.select_next(candidates)
    assert first.key == "Projects/Alpha.md"
    assert first.is_new

    outcome = scheduler.record_action(first.key, "ok")
    assert outcome.stats.current_score == 50
    assert outcome.stats.total_reviews == 0

    second = scheduler.select_next(candidates)
    assert second.key == "Projects/Beta.md"
    assert second.is_new

    outcome = scheduler.record_action("Projects/Alpha.md", "less-often")
    assert outcome.stats.current_score == pytest.approx(40.2)
    assert outcome.stats.total_reviews == 1
    assert len(outcome.stats.review_history) == 1

    beta = store.load().projects["Projects/Beta.md"]
    assert beta.rotation_bonus == pytest.approx(5.0)


def test_malformed_stored_record_does_not_block_reviews(clock):
    storage = InMemoryStorage({"stats": {"projects": {"bad.md": {"currentScore": "high"}}}})
    transaction = ReviewTransaction(StatsStore(storage), SessionContext(), clock=clock)

    outcome = transaction.record("good.md", "more-often")

    assert outcome.stats.current_score == pytest.approx(60.0)
    assert "good.md" in StatsStore(storage).load().projects
