"""Thread-safe registry of owner_email -> lock serializing folder find-or-create.

Entries are reference counted and removed once no caller holds or waits on them.
"""
import threading
import logging
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)
_lock = threading.Lock()
_registry: dict[str, list] = {}  # owner_email -> [lock, users]


def _acquire_entry(owner_email: str) -> list:
    with _lock:
        entry = _registry.get(owner_email)
        if entry is None:
            entry = [threading.Lock(), 0]
            _registry[owner_email] = entry
            logger.debug(f"Registered folder lock for {owner_email}")
        entry[1] += 1
        return entry


def _release_entry(owner_email: str, entry: list) -> None:
    with _lock:
        entry[1] -= 1
        if entry[1] == 0 and _registry.get(owner_email) is entry:
            del _registry[owner_email]
            logger.debug(f"Released folder lock for {owner_email}")


@contextmanager
def hold(owner_email: str) -> Iterator[None]:
    entry = _acquire_entry(owner_email)
    try:
        with entry[0]:
            yield
    finally:
        _release_entry(owner_email, entry)


def registered() -> list[str]:
    """Emails that currently have a holder or a waiter"""
    with _lock:
        return list(_registry)


def clear() -> None:
    with _lock:
        _registry.clear()
