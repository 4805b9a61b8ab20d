"""Ingestion layer.

This package turns raw heartbeat output of the acquisition process into
typed :class:`cyphalmon.models.HeartbeatRecord` objects.
"""

from cyphalmon.ingestion.heartbeat import decode_heartbeat, iter_heartbeats

__all__ = ["decode_heartbeat", "iter_heartbeats"]
