"""Monitor configuration for cyphalmon."""

from __future__ import annotations

import dataclasses
import os
import shlex
from typing import Any

from cyphalmon.exceptions import CyphalMonConfigError

DEFAULT_ACQUISITION_COMMAND: tuple[str, ...] = (
    "yakut",
    "--format",
    "json",
    "sub",
    "--with-metadata",
    "uavcan.node.heartbeat",
)


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, cast: type[int] | type[float]) -> int | float:
    try:
        return cast(value)
    except ValueError as exc:
        raise CyphalMonConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class MonitorConfig:
    """Monitor configuration.

    Parameters
    ----------
    acquisition_command : tuple of str
        Command spawned to subscribe to heartbeats. It must print one JSON
        object per line on stdout. The transport interface is passed through
        the environment, never on the command line.
    working_directory : str or None
        Working directory for the acquisition process. ``None`` inherits the
        current directory.
    shutdown_timeout : float
        Seconds to wait after SIGTERM before the process group is killed.
    web_host : str
        Bind address of the web surface.
    web_port : int
        Port of the web surface.
    heartbeat_trace_enabled : bool
        Log every raw heartbeat line at DEBUG level.
    """

    acquisition_command: tuple[str, ...] = DEFAULT_ACQUISITION_COMMAND
    working_directory: str | None = None
    shutdown_timeout: float = 3.0
    web_host: str = "127.0.0.1"
    web_port: int = 8765
    heartbeat_trace_enabled: bool = False

    @classmethod
    def from_env(cls, **overrides: Any) -> MonitorConfig:
        """Create configuration from environment variables.

        Reads optional ``CYPHALMON_*`` variables. Explicit keyword
        arguments override environment values.

        Raises
        ------
        CyphalMonConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        command_env = env.get("CYPHALMON_ACQUISITION_COMMAND")
        if command_env is not None and "acquisition_command" not in overrides:
            command = tuple(shlex.split(command_env))
            if not command:
                raise CyphalMonConfigError("CYPHALMON_ACQUISITION_COMMAND must not be empty")
            config_kwargs["acquisition_command"] = command

        workdir_env = env.get("CYPHALMON_WORKING_DIRECTORY")
        if workdir_env:
            config_kwargs["working_directory"] = workdir_env

        timeout_env = env.get("CYPHALMON_SHUTDOWN_TIMEOUT")
        if timeout_env is not None and "shutdown_timeout" not in overrides:
            config_kwargs["shutdown_timeout"] = _env_number("CYPHALMON_SHUTDOWN_TIMEOUT", timeout_env, float)

        host_env = env.get("CYPHALMON_WEB_HOST")
        if host_env:
            config_kwargs["web_host"] = host_env

        port_env = env.get("CYPHALMON_WEB_PORT")
        if port_env is not None and "web_port" not in overrides:
            config_kwargs["web_port"] = _env_number("CYPHALMON_WEB_PORT", port_env, int)

        if "heartbeat_trace_enabled" not in overrides:
            config_kwargs["heartbeat_trace_enabled"] = _env_bool(
                env.get("CYPHALMON_HEARTBEAT_TRACE_ENABLED"),
                False,
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
