"""State layer.

The node registry is the single source of truth for the latest known
heartbeat of every node observed during a session.
"""

from cyphalmon.state.registry import NodeRegistry, NodeRegistryEntry

__all__ = ["NodeRegistry", "NodeRegistryEntry"]
