"""
services.key_locks - Per-key lock registry.

Mutations of one stored file (put / rename / delete) and of one
component field (link / unlink) are serialised on a lock keyed by that
identity.  Different keys never block each other.  Locks are created on
demand and dropped once nobody holds or waits for them.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager


def file_key(category, filename: str) -> tuple:
    return ("file", getattr(category, "value", category), filename)


def field_key(component_id: str, field) -> tuple:
    return ("field", component_id, getattr(field, "value", field))


class KeyLocks:

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[tuple, threading.Lock] = {}
        self._users: dict[tuple, int] = {}

    def _checkout(self, key: tuple) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: tuple) -> None:
        with self._guard:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, *keys: tuple):
        """
        Acquire every key (deduplicated, in sorted order so two callers
        asking for overlapping sets cannot deadlock) for the block.
        """
        ordered = sorted(set(keys))
        acquired: list[tuple[tuple, threading.Lock]] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                try:
                    lock.acquire()
                except BaseException:
                    self._checkin(key)
                    raise
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)

    def active_keys(self) -> list[tuple]:
        with self._guard:
            return list(self._locks.keys())


# Shared by every mutating path in the process
file_locks = KeyLocks()
