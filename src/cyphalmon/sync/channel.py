"""In-process sync channel.

Delivery is fire-and-forget and FIFO per direction: each push is
scheduled on the event loop with ``call_soon``, so snapshots arrive in
the order they were pushed and intents in the order they were posted.
There is no ordering between the two directions and no
acknowledgement.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from cyphalmon.sync.protocol import IntentMessage, SnapshotMessage

SnapshotSink = Callable[[SnapshotMessage], None]
IntentSink = Callable[[IntentMessage], None]


class SyncChannel:
    """Bidirectional channel between a session and its view."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        on_snapshot: SnapshotSink | None = None,
        on_intent: IntentSink | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._on_snapshot = on_snapshot
        self._on_intent = on_intent
        self._logger = logger or logging.getLogger(__name__)
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def bind_view(self, on_snapshot: SnapshotSink | None) -> None:
        """Attach (or detach, with ``None``) the snapshot consumer."""
        self._on_snapshot = on_snapshot

    def bind_core(self, on_intent: IntentSink | None) -> None:
        """Attach (or detach, with ``None``) the intent consumer."""
        self._on_intent = on_intent

    def push_snapshot(self, message: SnapshotMessage) -> None:
        """Schedule delivery of a snapshot to the view."""
        if self._closed:
            return
        self._get_loop().call_soon(self._deliver_snapshot, message)

    def post_intent(self, intent: IntentMessage) -> None:
        """Schedule delivery of an intent to the core."""
        if self._closed:
            return
        self._get_loop().call_soon(self._deliver_intent, intent)

    def close(self) -> None:
        """Stop delivering; already scheduled messages are dropped."""
        self._closed = True
        self._on_snapshot = None
        self._on_intent = None

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _deliver_snapshot(self, message: SnapshotMessage) -> None:
        sink = self._on_snapshot
        if self._closed or sink is None:
            return
        try:
            sink(message)
        except Exception:
            self._logger.debug("Snapshot delivery failed", exc_info=True)

    def _deliver_intent(self, intent: IntentMessage) -> None:
        sink = self._on_intent
        if self._closed or sink is None:
            return
        try:
            sink(intent)
        except Exception:
            self._logger.debug("Intent delivery failed command=%s", intent.command, exc_info=True)
