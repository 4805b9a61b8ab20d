"""Monitoring session: state machine and controller.

A session lives exactly as long as its view. It owns the node registry
and the session state, acquires the heartbeat subscriber only after an
interface was submitted, and releases it on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict

from cyphalmon.acquisition import HeartbeatSubscriber, LineCallback
from cyphalmon.config import MonitorConfig
from cyphalmon.exceptions import AcquisitionError, DecodeError
from cyphalmon.ingestion.heartbeat import decode_heartbeat
from cyphalmon.state.registry import NodeRegistry, NodeRegistryEntry
from cyphalmon.sync.channel import SyncChannel
from cyphalmon.sync.protocol import IntentCommand, IntentMessage, build_snapshot

_logger = logging.getLogger(__name__)


class SessionEvent(StrEnum):
    SUBMIT_INTERFACE = "submit_interface"
    TOGGLE_THEME = "toggle_theme"
    VIEW_CLOSED = "view_closed"


class SessionState(BaseModel):
    """Visibility and theme of the view."""

    model_config = ConfigDict(frozen=True)

    form_visible: bool = True
    table_visible: bool = False
    theme_light: bool = False


def transition(state: SessionState, event: SessionEvent) -> SessionState:
    """Return the state following *event*.

    Submitting an interface is one-shot: once the table is shown, later
    submissions leave the state unchanged. Closing the view discards the
    state, which is the same as returning to the initial one.
    """
    if event == SessionEvent.SUBMIT_INTERFACE:
        if state.table_visible:
            return state
        return state.model_copy(update={"form_visible": False, "table_visible": True})
    if event == SessionEvent.TOGGLE_THEME:
        return state.model_copy(update={"theme_light": not state.theme_light})
    if event == SessionEvent.VIEW_CLOSED:
        return SessionState()
    raise ValueError(f"Unknown session event: {event!r}")


class _Subscriber(Protocol):
    async def start(self, interface: str) -> None: ...

    async def stop(self) -> None: ...

    async def wait(self) -> int | None: ...


SubscriberFactory = Callable[..., _Subscriber]


class MonitorSession:
    """Controller for one view session.

    Usage::

        async with MonitorSession(config, channel=channel) as session:
            await session.submit_interface("vcan0")
            await session.wait_acquisition()
    """

    def __init__(
        self,
        config: MonitorConfig | None = None,
        *,
        channel: SyncChannel | None = None,
        subscriber_factory: SubscriberFactory = HeartbeatSubscriber,
        on_state: Callable[[SessionState], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config or MonitorConfig()
        self._logger = logger or _logger
        self._registry = NodeRegistry()
        self._state = SessionState()
        self._channel = channel or SyncChannel(logger=self._logger)
        self._channel.bind_core(self.handle_intent)
        self._subscriber_factory = subscriber_factory
        self._subscriber: _Subscriber | None = None
        self._on_state = on_state
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> MonitorSession:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def registry(self) -> NodeRegistry:
        return self._registry

    @property
    def channel(self) -> SyncChannel:
        return self._channel

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def is_acquiring(self) -> bool:
        return self._subscriber is not None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _apply(self, event: SessionEvent) -> SessionState:
        previous = self._state
        self._state = transition(previous, event)
        if self._state != previous and self._on_state is not None:
            try:
                self._on_state(self._state)
            except Exception:
                self._logger.debug("Session state callback failed", exc_info=True)
        return self._state

    async def submit_interface(self, interface: str) -> bool:
        """Show the table and start acquiring heartbeats on *interface*.

        Returns ``True`` when the subscriber was started. Submissions after
        the first, or after close, are ignored.
        """
        if self._closed or self._state.table_visible:
            self._logger.debug("Ignoring interface submission interface=%s", interface)
            return False

        self._apply(SessionEvent.SUBMIT_INTERFACE)
        line_handler: LineCallback = self.ingest_line
        subscriber = self._subscriber_factory(self._config, on_line=line_handler, logger=self._logger)
        self._subscriber = subscriber
        try:
            await subscriber.start(interface)
        except AcquisitionError as exc:
            self._logger.warning("Acquisition failed interface=%s: %s", interface, exc)
            self._subscriber = None
            return False

        if self._closed:
            # The view went away while the process was spawning.
            await subscriber.stop()
            return False
        return True

    def toggle_theme(self) -> SessionState:
        return self._apply(SessionEvent.TOGGLE_THEME)

    def handle_intent(self, intent: IntentMessage) -> None:
        """Consume a view intent delivered by the sync channel."""
        if self._closed:
            return
        if intent.command == IntentCommand.TOGGLED:
            self.toggle_theme()
            return
        if intent.command == IntentCommand.INTERFACE_RECEIVED and intent.text:
            task = asyncio.get_running_loop().create_task(self.submit_interface(intent.text.strip()))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest_line(self, raw: str) -> NodeRegistryEntry | None:
        """Decode a heartbeat line, upsert it and push a full snapshot.

        Malformed lines are logged and skipped; ``None`` is returned.
        """
        if self._closed:
            return None
        if self._config.heartbeat_trace_enabled:
            self._logger.debug("Heartbeat line: %s", raw)
        try:
            record = decode_heartbeat(raw)
        except DecodeError as exc:
            self._logger.debug("Skipping heartbeat: %s", exc)
            return None

        entry = self._registry.upsert(record)
        self._channel.push_snapshot(build_snapshot(self._registry.snapshot()))
        return entry

    async def wait_acquisition(self) -> int | None:
        """Wait for the acquisition process to exit, if one is running."""
        subscriber = self._subscriber
        if subscriber is None:
            return None
        return await subscriber.wait()

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """End the session.

        The acquisition resource is released unconditionally; registry
        and session state are discarded afterwards.
        """
        if self._closed:
            return
        self._closed = True
        try:
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)
        finally:
            subscriber = self._subscriber
            self._subscriber = None
            try:
                if subscriber is not None:
                    await subscriber.stop()
            finally:
                self._registry.reset()
                self._state = transition(self._state, SessionEvent.VIEW_CLOSED)
                self._channel.close()
                self._logger.debug("Session closed")
