"""
Structured progress reporting for sync runs.

The engine only ever calls :meth:`SyncObserver.emit`; where the events end up
(log records, a progress bar, a test list) is up to the observer.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from gemmirror.domain.models import SyncEvent

logger = logging.getLogger(__name__)


class SyncObserver(ABC):
    @abstractmethod
    def emit(self, event: SyncEvent) -> None:
        pass


class LoggingObserver(SyncObserver):
    """Write each event as one log record."""

    def __init__(self, log: logging.Logger = logger):
        self._log = log

    def emit(self, event: SyncEvent) -> None:
        if event.outcome == "failed":
            level = logging.WARNING
        elif event.outcome == "skipped":
            level = logging.DEBUG
        else:
            level = logging.INFO

        target = event.source if event.namespace is None else f"{event.source} {event.namespace}"
        message = f"[{event.action}] {target}: {event.outcome}"
        if event.detail:
            message += f" ({event.detail})"
        self._log.log(level, message)
