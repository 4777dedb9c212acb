#!/usr/bin/env python3
"""
Tests for media group collection and dispatch.
"""
import threading
from unittest.mock import MagicMock

import pytest

from models.data_models import PhotoGroup, PhotoItem
from models.telegram import Chat, Message, PhotoSize
from workers.media_group_worker import MediaGroupCoordinator

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _photo(message_id: int) -> PhotoItem:
    sizes = [PhotoSize(file_id=f"f{message_id}", width=10, height=10)]
    return PhotoItem(message=Message(message_id=message_id, chat=Chat(id=1), photo=sizes), sizes=sizes)


@pytest.fixture
def handlers():
    return MagicMock(name="on_batch"), MagicMock(name="on_single")


@pytest.fixture
def coordinator(handlers):
    on_batch, on_single = handlers
    # Long window: tests flush explicitly
    c = MediaGroupCoordinator(on_batch=on_batch, on_single=on_single, window=60)
    yield c
    c.shutdown(wait=True)


# ---------------------------------------------------------------------------
# PhotoGroup
# ---------------------------------------------------------------------------


def test_photo_group_first_non_empty_caption_wins():
    group = PhotoGroup(group_id="g")
    group.add(_photo(1), None)
    group.add(_photo(2), "   ")
    group.add(_photo(3), "libro 5")
    group.add(_photo(4), "libro 9")

    assert group.caption == "libro 5"
    assert [item.position for item in group.items] == [1, 2, 3, 4]


# ---------------------------------------------------------------------------
# MediaGroupCoordinator
# ---------------------------------------------------------------------------


def test_group_with_one_caption_is_processed_as_batch(coordinator, handlers):
    on_batch, on_single = handlers
    coordinator.add("g1", _photo(1))
    coordinator.add("g1", _photo(2), "libro 7")
    coordinator.add("g1", _photo(3))

    coordinator.flush("g1").result(timeout=5)

    on_batch.assert_called_once()
    items, caption = on_batch.call_args.args
    assert [i.message.message_id for i in items] == [1, 2, 3]
    assert caption == "libro 7"
    on_single.assert_not_called()


def test_group_of_one_is_processed_standalone(coordinator, handlers):
    on_batch, on_single = handlers
    coordinator.add("g1", _photo(1), "libro 2")

    coordinator.flush("g1").result(timeout=5)

    on_single.assert_called_once()
    item, caption = on_single.call_args.args
    assert item.message.message_id == 1
    assert caption == "libro 2"
    on_batch.assert_not_called()


def test_group_is_taken_once(coordinator, handlers):
    on_batch, _ = handlers
    coordinator.add("g1", _photo(1))
    coordinator.add("g1", _photo(2))

    coordinator.flush("g1").result(timeout=5)

    assert coordinator.flush("g1") is None
    assert coordinator.pending() == 0
    on_batch.assert_called_once()


def test_groups_are_kept_apart(coordinator, handlers):
    on_batch, _ = handlers
    coordinator.add("g1", _photo(1), "libro 1")
    coordinator.add("g2", _photo(2), "libro 2")
    coordinator.add("g1", _photo(3))
    coordinator.add("g2", _photo(4))

    coordinator.flush("g1").result(timeout=5)
    coordinator.flush("g2").result(timeout=5)

    captions = [c.args[1] for c in on_batch.call_args_list]
    assert captions == ["libro 1", "libro 2"]


def test_late_photo_starts_new_group(coordinator, handlers):
    on_batch, on_single = handlers
    coordinator.add("g1", _photo(1))
    coordinator.add("g1", _photo(2))
    coordinator.flush("g1").result(timeout=5)

    coordinator.add("g1", _photo(3))
    coordinator.flush("g1").result(timeout=5)

    assert len(on_batch.call_args.args[0]) == 2
    assert on_single.call_args.args[0].message.message_id == 3


def test_handler_errors_are_contained(coordinator, handlers):
    on_batch, _ = handlers
    on_batch.side_effect = RuntimeError("telegram down")
    coordinator.add("g1", _photo(1))
    coordinator.add("g1", _photo(2))

    coordinator.flush("g1").result(timeout=5)

    on_batch.assert_called_once()


def test_submit_single_runs_standalone(coordinator, handlers):
    _, on_single = handlers
    coordinator.submit_single(_photo(9), "libro 3").result(timeout=5)
    on_single.assert_called_once()
    assert on_single.call_args.args[1] == "libro 3"


def test_window_elapses_and_dispatches():
    done = threading.Event()
    received = []

    def on_batch(items, caption):
        received.append((len(items), caption))
        done.set()

    coordinator = MediaGroupCoordinator(on_batch=on_batch, on_single=MagicMock(), window=0.05)
    try:
        coordinator.add("g1", _photo(1), "libro 4")
        coordinator.add("g1", _photo(2))
        assert done.wait(timeout=5)
    finally:
        coordinator.shutdown(wait=True)

    assert received == [(2, "libro 4")]


def test_shutdown_drops_pending_groups(handlers):
    on_batch, on_single = handlers
    coordinator = MediaGroupCoordinator(on_batch=on_batch, on_single=on_single, window=60)
    coordinator.add("g1", _photo(1))

    coordinator.shutdown(wait=True)
    coordinator.add("g1", _photo(2))

    assert coordinator.pending() == 0
    on_batch.assert_not_called()
    on_single.assert_not_called()
