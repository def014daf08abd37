import threading
import time

import pytest

from baliza.resolution.locks import KeyedLock


def test_same_key_writers_are_serialized():
    locks = KeyedLock()
    active = 0
    overlaps = []
    counter = threading.Lock()

    def worker():
        nonlocal active
        for _ in range(20):
            with locks.hold("anfield"):
                with counter:
                    active += 1
                    overlaps.append(active)
                time.sleep(0.0005)
                with counter:
                    active -= 1

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(overlaps) == 80
    assert max(overlaps) == 1


def test_different_keys_proceed_in_parallel():
    locks = KeyedLock()
    inside = threading.Event()
    release = threading.Event()
    entered_other = threading.Event()

    def holder():
        with locks.hold("anfield"):
            inside.set()
            release.wait(timeout=5)

    thread = threading.Thread(target=holder)
    thread.start()
    assert inside.wait(timeout=5)

    def other():
        with locks.hold("old-trafford"):
            entered_other.set()

    second = threading.Thread(target=other)
    second.start()

    assert entered_other.wait(timeout=5)
    assert len(locks) == 1
    release.set()
    thread.join()
    second.join()


def test_waiter_blocks_until_holder_releases():
    locks = KeyedLock()
    inside = threading.Event()
    release = threading.Event()
    waiter_done = threading.Event()

    def holder():
        with locks.hold("anfield"):
            inside.set()
            release.wait(timeout=5)

    def waiter():
        with locks.hold("anfield"):
            waiter_done.set()

    first = threading.Thread(target=holder)
    first.start()
    assert inside.wait(timeout=5)
    second = threading.Thread(target=waiter)
    second.start()

    assert not waiter_done.wait(timeout=0.05)
    release.set()
    assert waiter_done.wait(timeout=5)
    first.join()
    second.join()


def test_idle_locks_are_discarded():
    locks = KeyedLock()

    with locks.hold("anfield"):
        with locks.hold("old-trafford"):
            assert len(locks) == 2
        assert len(locks) == 1

    assert len(locks) == 0


def test_lock_is_released_when_body_raises():
    locks = KeyedLock()

    with pytest.raises(RuntimeError):
        with locks.hold("anfield"):
            raise RuntimeError("write conflict")

    assert len(locks) == 0
    with locks.hold("anfield"):
        assert len(locks) == 1
