"""
Keeps a registry in sync with a live document.

Structural mutations are queued as they happen and processed as one batch:
removed subtrees are unregistered, then added subtrees are scanned for new
components when auto-registration is on.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from ribbon.dom import Document, Element, MutationRecord
from ribbon.registry import Registry, Scope

logger = logging.getLogger(__name__)


class Scanner:
    def __init__(self, registry: Registry, document: Document) -> None:
        self.registry = registry
        self.document = document
        self.queue: list[MutationRecord] = []
        self._disconnect: Optional[Callable[[], None]] = None
        self._scheduled: Optional[asyncio.Handle] = None

    @property
    def running(self) -> bool:
        return self._disconnect is not None

    def start(self, scan: bool = True) -> list[Scope]:
        """Observe the document; optionally register what is already there."""
        registered = self.registry.scan_and_register(self.document) if scan else []
        if self._disconnect is None:
            self._disconnect = self.document.observe(self.enqueue)
            logger.debug("Observing %r", self.document)
        return registered

    def stop(self) -> None:
        if self._disconnect is not None:
            self._disconnect()
            self._disconnect = None
        if self._scheduled is not None:
            self._scheduled.cancel()
            self._scheduled = None
        self.queue.clear()

    def enqueue(self, record: MutationRecord) -> None:
        self.queue.append(record)
        if self._scheduled is not None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Without a loop the owner calls flush()
            return
        self._scheduled = loop.call_soon(self.flush)

    def flush(self) -> list[Scope]:
        """Process every queued mutation; returns the newly registered scopes."""
        self._scheduled = None
        records, self.queue = self.queue, []
        if not records:
            return []

        registry = self.registry
        for record in records:
            for node in record.removed:
                # Moved nodes come back through ``added``
                if isinstance(node, Element) and not node.is_connected:
                    registry.scan_and_unregister(node)

        registered: list[Scope] = []
        if not registry.auto_register:
            return registered
        seen: set[int] = set()
        for record in records:
            for node in record.added:
                if not isinstance(node, Element) or id(node) in seen:
                    continue
                seen.add(id(node))
                if node.document is not self.document:
                    continue
                registered.extend(registry.scan_and_register(node))
        if registered:
            logger.debug("Registered %d component(s) from mutations", len(registered))
        return registered

    def __enter__(self) -> "Scanner":
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()
