"""cyphalmon - live table of Cyphal node heartbeats."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("cyphalmon")
except PackageNotFoundError:
    __version__ = "0+local"
from cyphalmon.acquisition import HeartbeatSubscriber, TransportProfile, select_transport_profile
from cyphalmon.config import MonitorConfig
from cyphalmon.exceptions import (
    AcquisitionError,
    CyphalMonConfigError,
    CyphalMonError,
    DecodeError,
    ProtocolViolation,
)
from cyphalmon.ingestion import decode_heartbeat, iter_heartbeats
from cyphalmon.models import HealthColor, HeartbeatRecord, NodeHealth, NodeMode
from cyphalmon.session import MonitorSession, SessionEvent, SessionState, transition
from cyphalmon.state import NodeRegistry, NodeRegistryEntry
from cyphalmon.sync import IntentCommand, IntentMessage, SnapshotMessage, SyncChannel, build_snapshot, parse_intent
from cyphalmon.view import LiveView, RowState, ViewState, reduce_snapshot, reduce_theme

__all__ = [
    "__version__",
    "AcquisitionError",
    "CyphalMonConfigError",
    "CyphalMonError",
    "DecodeError",
    "HealthColor",
    "HeartbeatRecord",
    "HeartbeatSubscriber",
    "IntentCommand",
    "IntentMessage",
    "LiveView",
    "MonitorConfig",
    "MonitorSession",
    "NodeHealth",
    "NodeMode",
    "NodeRegistry",
    "NodeRegistryEntry",
    "ProtocolViolation",
    "RowState",
    "SessionEvent",
    "SessionState",
    "SnapshotMessage",
    "SyncChannel",
    "TransportProfile",
    "ViewState",
    "build_snapshot",
    "decode_heartbeat",
    "iter_heartbeats",
    "parse_intent",
    "reduce_snapshot",
    "reduce_theme",
    "select_transport_profile",
    "transition",
]
