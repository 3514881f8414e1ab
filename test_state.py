"""
Test ContainmentState locking.

reset() and clear() must serialize with a sample that is still holding
the vehicle's lock.
"""

import threading

from armada_geofence import ContainmentState

WAIT_S = 2.0


def hold(state, vehicle_id, entered, release, inside=True):
    """Thread body: take the vehicle's lock and write until released."""
    with state.locked(vehicle_id) as memberships:
        entered.set()
        release.wait(WAIT_S)
        memberships["g1"] = inside


def start(target, *args):
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread


def test_clear_waits_for_holder_and_keeps_lock():
    state = ContainmentState()
    with state.locked("v1") as memberships:
        memberships["g1"] = False

    entered, release = threading.Event(), threading.Event()
    cleared, second_entered = threading.Event(), threading.Event()

    def clear():
        state.clear()
        cleared.set()

    def second():
        with state.locked("v1"):
            second_entered.set()

    holder = start(hold, state, "v1", entered, release)
    assert entered.wait(WAIT_S)

    clearer = start(clear)
    assert not cleared.wait(0.1)

    # A sample arriving during the clear must still see the same lock
    latecomer = start(second)
    assert not second_entered.wait(0.1)

    release.set()
    for thread in (holder, clearer, latecomer):
        thread.join(WAIT_S)

    assert cleared.is_set()
    assert second_entered.is_set()


def test_reset_waits_for_holder():
    state = ContainmentState()
    entered, release = threading.Event(), threading.Event()
    results = []

    holder = start(hold, state, "v1", entered, release)
    assert entered.wait(WAIT_S)

    resetter = start(lambda: results.append(state.reset("v1")))
    resetter.join(0.1)
    assert results == []

    release.set()
    holder.join(WAIT_S)
    resetter.join(WAIT_S)

    # The holder's write landed before the reset, so the reset saw it
    assert results == [True]
    assert state.get("v1") == {}
    assert len(state) == 0


def test_lock_survives_reset_and_clear():
    state = ContainmentState()
    with state.locked("v1") as memberships:
        memberships["g1"] = True
    lock = state._lock_for("v1")

    state.reset("v1")
    state.clear()

    assert state._lock_for("v1") is lock


def test_relock_after_reset_starts_empty():
    state = ContainmentState()
    with state.locked("v1") as memberships:
        memberships["g1"] = True

    assert state.reset("v1") is True
    with state.locked("v1") as memberships:
        assert memberships == {}
    assert state.reset("v1") is True
    assert state.reset("v1") is False
