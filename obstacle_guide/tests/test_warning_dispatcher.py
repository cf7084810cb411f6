from __future__ import annotations

import threading
from typing import List, Optional, Set

import pytest

from obstacle_guide.app.models import BoundingBox, DetectedObject, Label
from obstacle_guide.app.services.warning_dispatcher import WarningDispatcher, maybe_warn


def tracked(tracking_id: Optional[int]) -> DetectedObject:
    return DetectedObject(
        bounding_box=BoundingBox(0, 0, 10, 10),
        tracking_id=tracking_id,
        labels=[Label("person", 0.9, 0)],
    )


def test_maybe_warn_once_per_tracking_id() -> None:
    seen: Set[int] = set()

    results = [maybe_warn(tracked(7), seen) for _ in range(3)]

    assert results == [True, False, False]
    assert seen == {7}
    assert maybe_warn(tracked(8), seen) is True


def test_maybe_warn_without_tracking_id_always_warns() -> None:
    seen: Set[int] = set()

    assert all(maybe_warn(tracked(None), seen) for _ in range(3))
    assert seen == set()


def test_dispatcher_never_forgets_by_default() -> None:
    dispatcher = WarningDispatcher()

    assert dispatcher.maybe_warn(tracked(1), frame_index=1)
    assert dispatcher.prune(10_000) == []
    assert not dispatcher.maybe_warn(tracked(1), frame_index=10_000)
    assert 1 in dispatcher
    assert len(dispatcher) == 1


def test_sightings_are_not_tracked_without_eviction() -> None:
    dispatcher = WarningDispatcher()
    for frame_index in range(1, 50):
        dispatcher.maybe_warn(tracked(frame_index % 7), frame_index=frame_index)

    assert dispatcher._last_seen == {}
    assert dispatcher.seen_ids() == set(range(7))


def test_dispatcher_evicts_stale_ids() -> None:
    dispatcher = WarningDispatcher(evict_after_frames=2)
    dispatcher.maybe_warn(tracked(1), frame_index=1)
    dispatcher.maybe_warn(tracked(2), frame_index=2)

    assert dispatcher.prune(3) == []
    assert dispatcher.prune(4) == [1]
    assert dispatcher.seen_ids() == {2}
    assert dispatcher.maybe_warn(tracked(1), frame_index=4)


def test_repeat_sightings_keep_id_alive() -> None:
    dispatcher = WarningDispatcher(evict_after_frames=2)
    for frame_index in range(1, 8):
        dispatcher.maybe_warn(tracked(5), frame_index=frame_index)
        dispatcher.prune(frame_index)

    assert 5 in dispatcher


def test_reset_clears_seen_ids() -> None:
    dispatcher = WarningDispatcher()
    dispatcher.maybe_warn(tracked(3))
    dispatcher.reset()

    assert len(dispatcher) == 0
    assert dispatcher.maybe_warn(tracked(3))


def test_concurrent_callers_warn_once() -> None:
    dispatcher = WarningDispatcher()
    outcomes: List[bool] = []
    outcomes_lock = threading.Lock()

    def worker() -> None:
        for _ in range(200):
            result = dispatcher.maybe_warn(tracked(42))
            with outcomes_lock:
                outcomes.append(result)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count(True) == 1
    assert len(outcomes) == 1600


def test_invalid_eviction_window() -> None:
    with pytest.raises(ValueError):
        WarningDispatcher(evict_after_frames=0)
