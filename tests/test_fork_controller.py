from __future__ import annotations

from typing import Any

import pytest

from ad_draft_sync.engine.base import ControllerClosedError, UnknownFieldError
from ad_draft_sync.engine.fork import ForkController
from ad_draft_sync.engine.instrumented import CountingStore
from ad_draft_sync.engine.manual import ManualTimerFactory
from ad_draft_sync.engine.observer import DraftChange
from ad_draft_sync.model import GALLERY_FIELDS, AdRecord, CommitPolicy


def _debounced(
    store: CountingStore, timers: ManualTimerFactory, **kwargs: Any
) -> ForkController:
    return ForkController(
        store,
        view_id="gallery",
        policy=CommitPolicy.debounced(500),
        timers=timers,
        **kwargs,
    )


def _immediate(store: CountingStore, **kwargs: Any) -> ForkController:
    return ForkController(store, view_id="table", policy=CommitPolicy.immediate(), **kwargs)


def test_controller_is_seeded_from_store_snapshot(timers: ManualTimerFactory) -> None:
    store = CountingStore(AdRecord(headline="Seed"))
    controller = _debounced(store, timers)

    assert controller.value("headline") == "Seed"
    assert controller.state("headline") == "synced"
    assert not controller.has_unsaved_changes()


def test_synced_field_adopts_external_update(
    store: CountingStore, timers: ManualTimerFactory
) -> None:
    controller = _debounced(store, timers)

    assert controller.accept_external_update("headline", "From elsewhere")
    assert controller.value("headline") == "From elsewhere"

    store.set_field("description", "Store write")
    assert controller.value("description") == "Store write"


def test_forked_field_ignores_external_update(
    store: CountingStore, timers: ManualTimerFactory
) -> None:
    controller = _debounced(store, timers)
    controller.apply_user_edit("headline", "Local draft")

    assert controller.state("headline") == "forked_pending"
    assert not controller.accept_external_update("headline", "Remote")
    store.set_field("headline", "Remote via store")

    assert controller.value("headline") == "Local draft"
    assert controller.has_unsaved_changes()


def test_preset_load_resyncs_only_unforked_fields(
    store: CountingStore, timers: ManualTimerFactory
) -> None:
    controller = _debounced(store, timers)
    controller.apply_user_edit("headline", "Typing...")

    store.set_all(AdRecord(headline="Preset", call_to_action="Shop Now", description="Body"))

    assert controller.value("headline") == "Typing..."
    assert controller.value("call_to_action") == "Shop Now"
    assert controller.value("description") == "Body"


def test_link_edit_is_normalized_immediately_and_committed_once_after_debounce(
    store: CountingStore, timers: ManualTimerFactory
) -> None:
    controller = _debounced(store, timers)

    displayed = controller.apply_user_edit("link", "example.com")

    assert displayed == "https://example.com/"
    assert controller.value("link") == "https://example.com/"
    assert store.get_all().link == ""
    assert store.counters.set_field_calls == 0

    timers.advance(499)
    assert store.counters.set_field_calls == 0
    timers.advance(1)

    assert store.get_all().link == "https://example.com/"
    assert store.counters.writes == [("link", "https://example.com/")]
    assert controller.state("link") == "synced"

    timers.run_pending()
    assert store.counters.set_field_calls == 1


def test_debounce_coalesces_rapid_edits_into_one_write(
    store: CountingStore, timers: ManualTimerFactory
) -> None:
    controller = _debounced(store, timers)

    for index, text in enumerate(["S", "Su", "Sum", "Summ", "Summer"]):
        if index:
            timers.advance(20)
        controller.apply_user_edit("headline", text)
    timers.run_pending()

    assert store.counters.writes == [("headline", "Summer")]


def test_immediate_policy_writes_once_per_edit(store: CountingStore) -> None:
    controller = _immediate(store)

    controller.apply_user_edit("headline", "A")
    controller.apply_user_edit("headline", "AB")
    controller.apply_user_edit("call_to_action", "Go")

    assert store.counters.writes == [
        ("headline", "A"),
        ("headline", "AB"),
        ("call_to_action", "Go"),
    ]
    assert controller.forked_fields() == ()
    assert not controller.has_unsaved_changes()


def test_commit_echo_does_not_refork_or_rewrite(store: CountingStore) -> None:
    controller = _immediate(store)
    changes: list[DraftChange] = []
    controller.add_observer(changes.append)

    controller.apply_user_edit("link", "example.com")

    assert store.counters.set_field_calls == 1
    assert controller.state("link") == "synced"
    assert [change.cause for change in changes] == ["edit", "commit"]


def test_link_edits_followed_by_notifications_stay_bounded(
    store: CountingStore, timers: ManualTimerFactory
) -> None:
    gallery = _debounced(store, timers)
    table = _immediate(store)
    edits = 50

    for index in range(edits):
        gallery.apply_user_edit("link", f"site{index}.example")
        timers.advance(500)
        table.apply_user_edit("link", f"https://other{index}.example")

    timers.run_pending()

    assert store.counters.set_field_calls == 2 * edits
    assert store.counters.notifications <= 2 * 2 * edits
    assert gallery.value("link") == table.value("link") == f"https://other{edits - 1}.example/"


def test_commit_after_external_resync_is_ignored(
    store: CountingStore, timers: ManualTimerFactory
) -> None:
    controller = _debounced(store, timers)
    controller.apply_user_edit("headline", "Draft")

    controller.on_commit_fired("description")

    assert store.counters.set_field_calls == 0


def test_deactivated_controller_keeps_fork_and_reseeds_synced_fields(
    store: CountingStore, timers: ManualTimerFactory
) -> None:
    controller = _debounced(store, timers)
    controller.apply_user_edit("headline", "In progress")
    controller.deactivate()

    store.set_all(AdRecord(headline="Preset A", description="Preset body"))
    assert controller.value("description") == ""

    controller.activate()

    assert controller.value("headline") == "In progress"
    assert controller.value("description") == "Preset body"
    assert controller.has_pending_commit("headline")


def test_pending_commit_still_fires_while_deactivated(
    store: CountingStore, timers: ManualTimerFactory
) -> None:
    controller = _debounced(store, timers)
    controller.apply_user_edit("headline", "Draft")
    controller.deactivate()

    timers.advance(500)

    assert store.get_all().headline == "Draft"
    assert controller.state("headline") == "synced"


def test_close_cancels_pending_commits_without_writing(
    store: CountingStore, timers: ManualTimerFactory
) -> None:
    with _debounced(store, timers) as controller:
        controller.apply_user_edit("headline", "Never saved")
        assert controller.has_pending_commit("headline")

    assert controller.closed
    assert timers.run_pending() == 0
    assert store.counters.set_field_calls == 0
    assert store.subscriber_count == 0
    with pytest.raises(ControllerClosedError):
        controller.apply_user_edit("headline", "late")
    with pytest.raises(ControllerClosedError):
        controller.activate()


def test_flush_commits_pending_fields_now(store: CountingStore, timers: ManualTimerFactory) -> None:
    controller = _debounced(store, timers)
    controller.apply_user_edit("headline", "Now")
    controller.apply_user_edit("description", "Also now")

    assert controller.flush() == 2
    assert store.get_all().headline == "Now"
    assert store.get_all().description == "Also now"
    assert timers.run_pending() == 0
    assert store.counters.set_field_calls == 2


def test_edit_outside_view_fields_is_rejected(
    store: CountingStore, timers: ManualTimerFactory
) -> None:
    controller = _debounced(store, timers, fields=GALLERY_FIELDS)

    with pytest.raises(UnknownFieldError):
        controller.apply_user_edit("launch_as", "paused")

    store.set_field("launch_as", "paused")
    assert controller.value("launch_as") == "paused"


def test_observers_receive_changed_fields(store: CountingStore, timers: ManualTimerFactory) -> None:
    controller = _debounced(store, timers)
    changes: list[DraftChange] = []
    remove = controller.add_observer(changes.append)

    store.set_all(AdRecord(headline="H", call_to_action="C"))
    controller.apply_user_edit("description", "D")
    remove()
    store.set_field("link", "https://x/")

    assert [(c.cause, c.changed_fields) for c in changes] == [
        ("external", ("headline", "call_to_action")),
        ("edit", ("description",)),
    ]
    assert changes[-1].view_id == "gallery"


def test_deactivated_controller_reports_only_forks_as_unsaved(
    store: CountingStore, timers: ManualTimerFactory
) -> None:
    controller = _debounced(store, timers)
    controller.deactivate()

    store.set_field("headline", "Written elsewhere")

    assert controller.value("headline") == ""
    assert not controller.has_unsaved_changes()

    controller.activate()
    controller.apply_user_edit("description", "Draft")
    controller.deactivate()
    assert controller.has_unsaved_changes()
