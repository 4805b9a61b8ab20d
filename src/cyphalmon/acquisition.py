"""Heartbeat acquisition process.

Runs the external subscriber (``yakut sub --with-metadata
uavcan.node.heartbeat`` by default) in its own process group, feeds its
stdout lines to a callback on the event loop and logs anything written
to stderr. The transport interface is passed through the environment.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
from collections.abc import Callable, Mapping
from enum import StrEnum

from cyphalmon.config import MonitorConfig
from cyphalmon.exceptions import AcquisitionError

LineCallback = Callable[[str], None]

_STREAM_LIMIT = 1024 * 1024


class TransportProfile(StrEnum):
    CAN = "can"
    UDP = "udp"


_PROFILE_ENV_KEYS: dict[TransportProfile, str] = {
    TransportProfile.CAN: "UAVCAN__CAN__IFACE",
    TransportProfile.UDP: "UAVCAN__UDP__IFACE",
}


def select_transport_profile(interface: str) -> TransportProfile:
    """Pick the transport for a user-supplied interface string.

    Any interface containing ``"can"`` (``can0``, ``vcan0``,
    ``socketcan:can0``) selects CAN; everything else is treated as a UDP
    address.
    """
    # TODO: accept an explicit profile from the user; an address that merely contains "can" is misrouted.
    if "can" in interface:
        return TransportProfile.CAN
    return TransportProfile.UDP


def build_acquisition_env(interface: str, base_env: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return the environment for the acquisition process."""
    env = dict(os.environ if base_env is None else base_env)
    profile = select_transport_profile(interface)
    env[_PROFILE_ENV_KEYS[profile]] = interface
    return env


class HeartbeatSubscriber:
    """Scoped owner of the acquisition subprocess.

    ``start`` spawns the process; ``stop`` releases it, including every
    process in its group. ``stop`` is idempotent and safe to call when
    the process already died, so it can sit in a ``finally`` block.
    """

    def __init__(
        self,
        config: MonitorConfig,
        *,
        on_line: LineCallback,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._on_line = on_line
        self._logger = logger or logging.getLogger(__name__)
        self._proc: asyncio.subprocess.Process | None = None
        self._tasks: list[asyncio.Task[None]] = []
        self._interface: str | None = None
        self.last_diagnostic: str | None = None

    @property
    def is_running(self) -> bool:
        return self._proc is not None and self._proc.returncode is None

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc is not None else None

    async def start(self, interface: str) -> None:
        """Spawn the subscriber for *interface*.

        Raises
        ------
        AcquisitionError
            If the process cannot be started.
        """
        await self.stop()
        profile = select_transport_profile(interface)
        command = self._config.acquisition_command
        self._logger.debug("Acquisition start requested interface=%s profile=%s", interface, profile)
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=build_acquisition_env(interface),
                cwd=self._config.working_directory,
                start_new_session=True,
                limit=_STREAM_LIMIT,
            )
        except (OSError, ValueError) as exc:
            raise AcquisitionError(
                f"Could not start acquisition command {command[0]!r}: {exc}",
                interface=interface,
            ) from exc

        self._proc = proc
        self._interface = interface
        self._tasks = [
            asyncio.create_task(self._read_stdout(proc)),
            asyncio.create_task(self._read_stderr(proc)),
        ]
        self._logger.info("Acquisition started pid=%s interface=%s profile=%s", proc.pid, interface, profile)

    async def wait(self) -> int | None:
        """Wait until the process exits and its output is drained."""
        proc = self._proc
        if proc is None:
            return None
        rc = await proc.wait()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        return rc

    async def stop(self) -> None:
        """Terminate the process group and stop reading its output."""
        proc = self._proc
        tasks = self._tasks
        self._proc = None
        self._tasks = []
        self._interface = None

        try:
            if proc is not None and proc.returncode is None:
                self._signal_group(proc, signal.SIGTERM)
                try:
                    await asyncio.wait_for(proc.wait(), self._config.shutdown_timeout)
                except TimeoutError:
                    self._logger.warning("Acquisition did not exit after SIGTERM, killing pid=%s", proc.pid)
                    self._signal_group(proc, signal.SIGKILL)
                    await proc.wait()
        finally:
            for task in tasks:
                task.cancel()
            for task in tasks:
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            if proc is not None:
                self._logger.info("Acquisition stopped pid=%s rc=%s", proc.pid, proc.returncode)

    def _signal_group(self, proc: asyncio.subprocess.Process, sig: signal.Signals) -> None:
        try:
            os.killpg(proc.pid, sig)
        except ProcessLookupError:
            return
        except PermissionError:
            # Group already gone and pid reused; fall back to the direct child.
            with contextlib.suppress(ProcessLookupError):
                proc.send_signal(sig)

    async def _read_stdout(self, proc: asyncio.subprocess.Process) -> None:
        if proc.stdout is None:
            return
        while True:
            try:
                line = await proc.stdout.readline()
            except ValueError:
                self._logger.debug("Skipping oversized acquisition output line", exc_info=True)
                continue
            if not line:
                return
            text = line.decode("utf-8", errors="replace").strip()
            if not text:
                continue
            try:
                self._on_line(text)
            except Exception:
                self._logger.debug("Heartbeat line handler failed", exc_info=True)

    async def _read_stderr(self, proc: asyncio.subprocess.Process) -> None:
        if proc.stderr is None:
            return
        while True:
            line = await proc.stderr.readline()
            if not line:
                return
            text = line.decode("utf-8", errors="replace").strip()
            if not text:
                continue
            self.last_diagnostic = text
            self._logger.warning("Acquisition diagnostic interface=%s: %s", self._interface, text)
