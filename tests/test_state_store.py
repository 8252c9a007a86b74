import pytest

from autoconnect.models.key_value import KeyValue
from autoconnect.workflow.errors import StateCorrupt
from autoconnect.workflow.state import (
    Outcome,
    ProcessedEntry,
    Profile,
    ProfilePhase,
    WorkflowState,
    WorkflowStep,
)
from tests.fakes import make_profile


def _write_raw(session_factory, key, value):
    db = session_factory()
    try:
        db.add(KeyValue(key=key, value=value))
        db.commit()
    finally:
        db.close()


def test_load_without_state_is_none(store):
    assert store.load() is None


def test_save_and_load_round_trip(store):
    state = WorkflowState(
        step=WorkflowStep.PROCESSING,
        phase=ProfilePhase.GENERATING_MESSAGE,
        queue=[make_profile("ada-lovelace"), make_profile("grace-hopper")],
        generated_message="Hi Ada",
        prompt_text="hello",
        per_profile_status={0: {"label": "Navigating"}},
    )
    store.save(state)

    loaded = store.load()
    assert loaded.step == WorkflowStep.PROCESSING
    assert loaded.phase == ProfilePhase.GENERATING_MESSAGE
    assert [p.name for p in loaded.queue] == ["Ada Lovelace", "Grace Hopper"]
    assert loaded.generated_message == "Hi Ada"
    assert loaded.per_profile_status[0].label == "Navigating"


def test_save_overwrites_whole_record(store):
    store.save(WorkflowState(step=WorkflowStep.COLLECTING, queue=[make_profile("ada-lovelace")]))
    store.save(WorkflowState(step=WorkflowStep.READY_TO_PROCESS))

    loaded = store.load()
    assert loaded.step == WorkflowStep.READY_TO_PROCESS
    assert loaded.queue == []


def test_unreadable_state_is_discarded(store, session_factory):
    _write_raw(session_factory, "workflow_state", '{"step": "processing", "queue": [')

    assert store.load() is None
    # Deleted, so the next load does not warn again
    assert store._read("workflow_state") is None


def test_state_with_broken_invariants_is_discarded(store):
    state = WorkflowState(step=WorkflowStep.PROCESSING, queue=[make_profile("ada-lovelace")])
    state.cursor = 5
    store.save(state)

    assert store.load() is None


def test_unknown_fields_are_ignored(store, session_factory):
    _write_raw(session_factory, "workflow_state", '{"step": "collecting", "legacy_flag": true}')
    assert store.load().step == WorkflowStep.COLLECTING


def test_archive_folds_counters_and_clears_state(store):
    state = WorkflowState(step=WorkflowStep.COMPLETED, sent_count=4, failed_count=1)
    store.save(state)

    counters = store.archive_and_clear(state)
    assert (counters.sent_count, counters.failed_count, counters.campaigns) == (4, 1, 1)
    assert store.load() is None

    store.archive_and_clear(WorkflowState(sent_count=2))
    counters = store.load_counters()
    assert (counters.sent_count, counters.failed_count, counters.campaigns) == (6, 1, 2)


def test_counters_survive_state_clear(store):
    store.archive_and_clear(WorkflowState(sent_count=3))
    store.clear()
    assert store.load_counters().sent_count == 3


def test_sent_today_resets_on_a_new_day(store):
    store.note_sent_today("2026-03-01")
    store.note_sent_today("2026-03-01")
    assert store.load_counters().sent_on("2026-03-01") == 2
    assert store.load_counters().sent_on("2026-03-02") == 0

    store.note_sent_today("2026-03-02")
    counters = store.load_counters()
    assert counters.sent_on("2026-03-02") == 1
    assert counters.sent_on("2026-03-01") == 0


def test_unreadable_counters_start_from_zero(store, session_factory):
    _write_raw(session_factory, "durable_counters", "not json")
    assert store.load_counters().sent_count == 0


# --- Model rules ---


def test_profile_requires_name_and_profile_url():
    with pytest.raises(ValueError):
        Profile(name="  ", canonical_url="https://www.linkedin.com/in/jane")
    with pytest.raises(ValueError):
        Profile(name="Jane Doe", canonical_url="https://www.linkedin.com/company/acme")


def test_profile_name_parts():
    profile = make_profile("jane-doe", name="Jane  van Doe")
    assert profile.name == "Jane van Doe"
    assert profile.first_name == "Jane"
    assert profile.last_name == "van Doe"
    assert make_profile("cher", name="Cher").last_name == ""


def test_invariants_reject_counter_mismatch():
    ada = make_profile("ada-lovelace")
    state = WorkflowState(
        step=WorkflowStep.PROCESSING,
        queue=[ada],
        cursor=1,
        processed=[ProcessedEntry(index=0, profile=ada, outcome=Outcome.SENT)],
    )
    with pytest.raises(StateCorrupt):
        state.check_invariants()

    state.sent_count = 1
    state.check_invariants()


def test_clear_profile_scope():
    state = WorkflowState(
        phase=ProfilePhase.SENDING,
        generated_message="Hi",
        generated_interests=["x"],
        last_known_canonical_url="https://www.linkedin.com/in/x",
        navigations=2,
    )
    state.clear_profile_scope()
    assert state.phase is None
    assert state.generated_message is None
    assert state.generated_interests is None
    assert state.last_known_canonical_url is None
    assert state.navigations == 0


def test_outcome_counts_as_sent():
    assert Outcome.SENT.counts_as_sent
    assert Outcome.POSSIBLY_SENT.counts_as_sent
    assert not Outcome.FAILED.counts_as_sent
