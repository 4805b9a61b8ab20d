from __future__ import annotations

import asyncio
import os
import sys
from collections.abc import Callable

import pytest

from cyphalmon.acquisition import (
    HeartbeatSubscriber,
    TransportProfile,
    build_acquisition_env,
    select_transport_profile,
)
from cyphalmon.config import MonitorConfig
from cyphalmon.exceptions import AcquisitionError

_HEARTBEATS = """
import json, os, sys, time
for node_id in (11, 42):
    meta = {"source_node_id": node_id, "transfer_id": 1, "priority": "nominal"}
    body = {"_meta_": meta, "uptime": 1, "health": {"value": 0}, "mode": {"value": 0}}
    print(json.dumps({"7509": body}), flush=True)
print("not json", flush=True)
print(os.environ.get("UAVCAN__CAN__IFACE", "<unset>"), flush=True)
print("transport warning", file=sys.stderr, flush=True)
time.sleep(60)
"""

_IGNORES_SIGTERM = """
import signal, time
signal.signal(signal.SIGTERM, signal.SIG_IGN)
print("ready", flush=True)
time.sleep(60)
"""

_SPAWNS_CHILD = """
import subprocess, sys, time
child = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
print(child.pid, flush=True)
time.sleep(60)
"""


async def _wait_for(predicate: Callable[[], bool], timeout: float = 10.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.05)


def _process_gone(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return True
    return False


def _process_gone_or_zombie(pid: int) -> bool:
    try:
        with open(f"/proc/{pid}/stat", encoding="ascii") as handle:
            stat = handle.read()
    except FileNotFoundError:
        return True
    # The state letter follows the parenthesised command name.
    return stat.rpartition(")")[2].split()[0] in ("Z", "X")


@pytest.mark.parametrize(
    ("interface", "profile"),
    [
        ("vcan0", TransportProfile.CAN),
        ("can0", TransportProfile.CAN),
        ("socketcan:can1", TransportProfile.CAN),
        ("192.168.1.1", TransportProfile.UDP),
        ("127.0.0.1", TransportProfile.UDP),
    ],
)
def test_select_transport_profile(interface: str, profile: TransportProfile) -> None:
    assert select_transport_profile(interface) == profile


def test_build_acquisition_env_sets_profile_variable() -> None:
    base = {"PATH": "/usr/bin"}

    can_env = build_acquisition_env("vcan0", base)
    udp_env = build_acquisition_env("192.168.1.1", base)

    assert can_env == {"PATH": "/usr/bin", "UAVCAN__CAN__IFACE": "vcan0"}
    assert udp_env == {"PATH": "/usr/bin", "UAVCAN__UDP__IFACE": "192.168.1.1"}
    assert base == {"PATH": "/usr/bin"}


@pytest.mark.asyncio
async def test_subscriber_streams_lines_and_logs_diagnostics() -> None:
    lines: list[str] = []
    config = MonitorConfig(acquisition_command=(sys.executable, "-c", _HEARTBEATS), shutdown_timeout=2.0)
    subscriber = HeartbeatSubscriber(config, on_line=lines.append)

    await subscriber.start("vcan0")
    pid = subscriber.pid
    assert pid is not None
    try:
        await _wait_for(lambda: len(lines) >= 4 and subscriber.last_diagnostic is not None)
    finally:
        await subscriber.stop()

    assert lines[2] == "not json"
    assert lines[3] == "vcan0"
    assert subscriber.last_diagnostic == "transport warning"
    assert not subscriber.is_running
    assert _process_gone(pid)


@pytest.mark.asyncio
async def test_stop_kills_a_process_that_ignores_sigterm() -> None:
    lines: list[str] = []
    config = MonitorConfig(acquisition_command=(sys.executable, "-c", _IGNORES_SIGTERM), shutdown_timeout=0.2)
    subscriber = HeartbeatSubscriber(config, on_line=lines.append)

    await subscriber.start("192.168.1.1")
    pid = subscriber.pid
    assert pid is not None
    await _wait_for(lambda: lines == ["ready"])

    await subscriber.stop()

    assert _process_gone(pid)


@pytest.mark.asyncio
async def test_start_failure_raises_acquisition_error() -> None:
    config = MonitorConfig(acquisition_command=("/nonexistent/cyphalmon-yakut",))
    subscriber = HeartbeatSubscriber(config, on_line=lambda _line: None)

    with pytest.raises(AcquisitionError) as exc_info:
        await subscriber.start("vcan0")

    assert exc_info.value.interface == "vcan0"
    assert not subscriber.is_running


@pytest.mark.asyncio
async def test_interface_rejected_by_the_os_raises_acquisition_error() -> None:
    config = MonitorConfig(acquisition_command=(sys.executable, "-c", "pass"))
    subscriber = HeartbeatSubscriber(config, on_line=lambda _line: None)

    with pytest.raises(AcquisitionError) as exc_info:
        await subscriber.start("vcan\x000")

    assert exc_info.value.interface == "vcan\x000"
    assert not subscriber.is_running
    assert subscriber.pid is None


@pytest.mark.asyncio
@pytest.mark.skipif(not os.path.isdir("/proc"), reason="needs /proc")
async def test_stop_terminates_the_whole_process_group() -> None:
    lines: list[str] = []
    config = MonitorConfig(acquisition_command=(sys.executable, "-c", _SPAWNS_CHILD), shutdown_timeout=2.0)
    subscriber = HeartbeatSubscriber(config, on_line=lines.append)

    await subscriber.start("vcan0")
    try:
        await _wait_for(lambda: len(lines) == 1)
        grandchild = int(lines[0])
        assert not _process_gone_or_zombie(grandchild)
    finally:
        await subscriber.stop()

    await _wait_for(lambda: _process_gone_or_zombie(grandchild))


@pytest.mark.asyncio
async def test_stop_is_idempotent_without_a_process() -> None:
    subscriber = HeartbeatSubscriber(MonitorConfig(), on_line=lambda _line: None)

    await subscriber.stop()
    await subscriber.stop()

    assert subscriber.pid is None
    assert await subscriber.wait() is None
