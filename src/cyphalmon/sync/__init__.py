"""Sync channel between the session core and a rendering surface.

Core to view: full registry snapshots. View to core: intent events.
"""

from cyphalmon.sync.channel import SyncChannel
from cyphalmon.sync.protocol import (
    IntentCommand,
    IntentMessage,
    SnapshotMessage,
    build_snapshot,
    parse_intent,
)

__all__ = [
    "IntentCommand",
    "IntentMessage",
    "SnapshotMessage",
    "SyncChannel",
    "build_snapshot",
    "parse_intent",
]
