"""Unit tests for echo_reservoir/locking.py."""

from __future__ import annotations

import threading

import pytest

from echo_reservoir.locking import ReadWriteLock


def test_readers_share_the_lock():
    lock = ReadWriteLock()
    with lock.read():
        with lock.read():
            assert lock.readers == 2
    assert lock.readers == 0


def test_writer_waits_for_readers():
    lock = ReadWriteLock()
    acquired = threading.Event()

    def writer():
        with lock.write():
            acquired.set()

    lock.acquire_read()
    t = threading.Thread(target=writer)
    t.start()
    assert not acquired.wait(timeout=0.1)

    lock.release_read()
    assert acquired.wait(timeout=2.0)
    t.join()
    assert lock.writing is False


def test_reader_waits_for_writer():
    lock = ReadWriteLock()
    acquired = threading.Event()

    def reader():
        with lock.read():
            acquired.set()

    lock.acquire_write()
    t = threading.Thread(target=reader)
    t.start()
    assert not acquired.wait(timeout=0.1)

    lock.release_write()
    assert acquired.wait(timeout=2.0)
    t.join()


def test_release_without_acquire():
    lock = ReadWriteLock()
    with pytest.raises(RuntimeError):
        lock.release_read()
    with pytest.raises(RuntimeError):
        lock.release_write()


def test_lock_released_on_exception():
    lock = ReadWriteLock()
    with pytest.raises(ValueError):
        with lock.write():
            raise ValueError("boom")
    assert lock.writing is False
    with lock.read():
        assert lock.readers == 1
