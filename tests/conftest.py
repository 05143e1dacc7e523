"""
Pytest configuration: ensure project root is on sys.path for imports.

Tests import the local `glossary` and `rules` packages and the top-level
modules (`utils`, `runtime_config`, ...) directly. When running tests from
certain IDEs or subdirectories, the repository root might not be on the Python
module search path. This hook prepends the repo root so imports work
consistently (e.g., `from glossary.models import ...`).
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest


def _add_repo_root_to_sys_path() -> None:
    # tests/ -> repo root
    root = Path(__file__).resolve().parents[1]
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)


_add_repo_root_to_sys_path()


class FakeHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Manual clock implementing ``call_later``/``time`` for coordinator tests."""

    def __init__(self):
        self.now = 0.0
        self.handles = []

    def time(self):
        return self.now

    def call_later(self, delay, callback):
        handle = FakeHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    def pending(self):
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [h for h in self.pending() if h.when <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.now = handle.when
            handle.fired = True
            handle.callback()
        self.now = target


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def restore_logging():
    """Undo handler changes made by ``log_setup.configure_logging``."""
    root = logging.getLogger()
    detail = logging.getLogger("detail")
    saved = (root.handlers[:], root.level, detail.handlers[:], detail.level, detail.propagate)
    yield
    for logger_obj in (root, detail):
        for handler in logger_obj.handlers[:]:
            if handler not in saved[0] and handler not in saved[2]:
                handler.close()
            logger_obj.removeHandler(handler)
    for handler in saved[0]:
        root.addHandler(handler)
    root.setLevel(saved[1])
    for handler in saved[2]:
        detail.addHandler(handler)
    detail.setLevel(saved[3])
    detail.propagate = saved[4]
