"""Decide when the scanner runs against a changing document.

The coordinator is a small state machine::

    IDLE --(initial load | real content change | route change | scroll)--> SCANNING
    SCANNING --(pass finished)--> IDLE

Content-change notifications are debounced and a minimum interval between
mutation-driven passes is enforced. Notifications that arrive while a pass is
running are coalesced into a single follow-up request. Batches consisting only
of the engine's own markers are ignored, otherwise every annotation would
trigger the next pass.

Timing goes through an injected scheduler: any object with
``call_later(delay, callback)`` returning a handle with ``cancel()`` and a
``time()`` clock. An :mod:`asyncio` event loop fits as is.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Protocol, Sequence, Tuple

from .models import GlossaryEntry, Match
from .scanner import AnnotationScanner

logger = logging.getLogger(__name__)

IGNORED_NEW_TAGS = frozenset({"STYLE", "SCRIPT", "LINK"})
LOADING_SELECTOR = '[data-loading="true"], .loading, [aria-busy="true"], .skeleton-loader'


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        ...

    def time(self) -> float:
        ...


class CoordinatorState(enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"


@dataclass
class MutationRecord:
    """Nodes added to and removed from the document in one host notification."""

    added: Sequence[Any] = field(default_factory=tuple)
    removed: Sequence[Any] = field(default_factory=tuple)


@dataclass
class CoordinatorSettings:
    debounce: float = 0.3
    min_interval: float = 2.0
    warmup_checkpoints: Tuple[float, ...] = (0.8, 2.0)
    scroll_debounce: float = 1.0


EntriesProvider = Callable[[], Sequence[GlossaryEntry]]


class MutationCoordinator:
    def __init__(
        self,
        scanner: AnnotationScanner,
        entries_provider: EntriesProvider,
        scheduler: Scheduler,
        settings: Optional[CoordinatorSettings] = None,
        enabled: Callable[[], bool] = lambda: True,
    ) -> None:
        self.scanner = scanner
        self.document = scanner.document
        self.entries_provider = entries_provider
        self.scheduler = scheduler
        self.settings = settings or CoordinatorSettings()
        self.enabled = enabled

        self.state = CoordinatorState.IDLE
        self.last_scan_time: Optional[float] = None
        self.scan_count = 0
        self._pending: Optional[TimerHandle] = None
        self._scroll_pending: Optional[TimerHandle] = None
        self._warmup_handles: List[TimerHandle] = []
        self._rescan_requested = False
        self._warmup_baseline = 0
        self.on_matches: Optional[Callable[[List[Match]], None]] = None

    # --- triggers ------------------------------------------------------------

    def start(self) -> List[Match]:
        """Initial load: run one pass immediately."""
        return self.run_scan(reason="initial load")

    def on_route_change(self) -> List[Match]:
        """Navigation inside the host page: immediate pass plus warm-up checks."""
        self._cancel_pending()
        self._cancel_warmup()
        self._rescan_requested = False
        matches = self.run_scan(reason="route change")
        self._warmup_baseline = self.document.content_size()
        for delay in self.settings.warmup_checkpoints:
            handle = self.scheduler.call_later(delay, self._warmup_check)
            self._warmup_handles.append(handle)
        return matches

    def notify_mutations(self, records: Iterable[MutationRecord]) -> bool:
        """Feed one batch of observed changes; returns ``True`` if a pass was scheduled."""
        batch = list(records)
        if not batch:
            return False
        if self.is_own_mutation(batch):
            return False
        if not self.has_new_content(batch):
            return False

        if self.state is CoordinatorState.SCANNING:
            # coalesced into one follow-up once the running pass finishes
            self._rescan_requested = True
            return True

        self._schedule()
        return True

    def on_scroll(self) -> None:
        """Scrolling (lazy-loaded index rows): one pass once scrolling settles.

        Each call restarts the scroll timer. The pass is skipped if another
        pass is running when the timer fires.
        """
        self._cancel_scroll()
        self._scroll_pending = self.scheduler.call_later(
            self.settings.scroll_debounce, self._on_scroll_timer
        )

    def stop(self) -> None:
        self._cancel_pending()
        self._cancel_scroll()
        self._cancel_warmup()
        self._rescan_requested = False
        self.state = CoordinatorState.IDLE

    # --- classification ------------------------------------------------------

    def is_own_mutation(self, batch: Sequence[MutationRecord]) -> bool:
        """``True`` if every added/removed element is one of our markers.

        Text nodes are neutral: wrapping a leaf removes the original text node
        from its parent.
        """
        doc = self.document

        def only_markers(nodes: Iterable[Any]) -> bool:
            return all(not doc.is_element(node) or doc.is_marker_node(node) for node in nodes)

        return all(only_markers(rec.added) and only_markers(rec.removed) for rec in batch)

    def has_new_content(self, batch: Sequence[MutationRecord]) -> bool:
        doc = self.document
        for rec in batch:
            for node in rec.added:
                if not doc.is_element(node) or doc.is_marker_node(node):
                    continue
                if doc.tag_name(node) not in IGNORED_NEW_TAGS:
                    return True
        return False

    # --- scheduling ----------------------------------------------------------

    def next_delay(self) -> float:
        if self.last_scan_time is None:
            return self.settings.debounce
        elapsed = self.scheduler.time() - self.last_scan_time
        if elapsed < self.settings.min_interval:
            return self.settings.min_interval - elapsed
        return self.settings.debounce

    def _schedule(self) -> None:
        self._cancel_pending()
        delay = self.next_delay()
        self._pending = self.scheduler.call_later(delay, self._on_timer)
        logger.debug("Glossary pass scheduled in %.2fs", delay)

    def _on_timer(self) -> None:
        self._pending = None
        self.run_scan(reason="content change")

    def _on_scroll_timer(self) -> None:
        self._scroll_pending = None
        if self.state is CoordinatorState.SCANNING:
            logger.debug("Scroll pass skipped, scan in progress")
            return
        self.run_scan(reason="scroll")

    def _warmup_check(self) -> None:
        loading = self.document.exists(LOADING_SELECTOR)
        size = self.document.content_size()
        if loading or size > self._warmup_baseline:
            logger.debug(
                "Warm-up pass (loading=%s, leaves %d -> %d)", loading, self._warmup_baseline, size
            )
            self._warmup_baseline = size
            self.run_scan(reason="warm-up")

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _cancel_scroll(self) -> None:
        if self._scroll_pending is not None:
            self._scroll_pending.cancel()
            self._scroll_pending = None

    def _cancel_warmup(self) -> None:
        for handle in self._warmup_handles:
            handle.cancel()
        self._warmup_handles = []

    # --- running -------------------------------------------------------------

    def run_scan(self, reason: str = "") -> List[Match]:
        if self.state is CoordinatorState.SCANNING:
            logger.debug("Pass requested during scan (%s), coalescing", reason)
            self._rescan_requested = True
            return []
        if not self.enabled():
            return []
        entries = self.entries_provider()
        if not entries:
            return []

        self.state = CoordinatorState.SCANNING
        try:
            matches = self.scanner.apply(entries)
        finally:
            self.state = CoordinatorState.IDLE
            self.last_scan_time = self.scheduler.time()
            self.scan_count += 1

        logger.debug("Glossary pass (%s) finished with %d matches", reason, len(matches))
        if self.on_matches is not None and matches:
            self.on_matches(matches)

        if self._rescan_requested:
            self._rescan_requested = False
            self._schedule()
        return matches
