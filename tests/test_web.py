from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import pytest
from aiohttp.test_utils import TestClient, TestServer

from cyphalmon.config import MonitorConfig
from cyphalmon.web import create_app


def _line(node_id: int, health: int = 0) -> str:
    meta = {"ts_system": 100, "ts_monotonic": 50, "source_node_id": node_id, "transfer_id": 3, "priority": "fast"}
    body = {"_meta_": meta, "uptime": 9, "health": {"value": health}, "mode": {"value": 1}}
    return json.dumps({"7509": body})


class _FakeSubscriber:
    def __init__(self, config: MonitorConfig, *, on_line: Any, logger: logging.Logger | None = None) -> None:
        self.on_line = on_line
        self.interface: str | None = None
        self.stopped = 0

    async def start(self, interface: str) -> None:
        self.interface = interface

    async def stop(self) -> None:
        self.stopped += 1

    async def wait(self) -> int | None:
        return 0


class _Factory:
    def __init__(self) -> None:
        self.created: list[_FakeSubscriber] = []

    def __call__(self, config: MonitorConfig, **kwargs: Any) -> _FakeSubscriber:
        subscriber = _FakeSubscriber(config, **kwargs)
        self.created.append(subscriber)
        return subscriber


@pytest.mark.asyncio
async def test_index_serves_page() -> None:
    async with TestClient(TestServer(create_app(MonitorConfig()))) as client:
        response = await client.get("/")

        assert response.status == 200
        assert "Network Interface" in await response.text()


@pytest.mark.asyncio
async def test_websocket_session_round_trip() -> None:
    factory = _Factory()
    app = create_app(MonitorConfig(), subscriber_factory=factory)

    async with TestClient(TestServer(app)) as client:
        ws = await client.ws_connect("/ws")

        initial = await ws.receive_json(timeout=5)
        assert initial["type"] == "render"
        assert initial["formVisible"] is True
        assert initial["tableVisible"] is False
        assert initial["rows"] == []

        await ws.send_json({"command": "InterfaceReceived", "text": "vcan0"})
        submitted = await ws.receive_json(timeout=5)
        assert submitted["formVisible"] is False
        assert submitted["tableVisible"] is True

        (subscriber,) = factory.created
        assert subscriber.interface == "vcan0"

        subscriber.on_line(_line(11, health=7))
        frame = await ws.receive_json(timeout=5)
        (row,) = frame["rows"]
        assert row["key"] == 0
        assert row["source"] == 11
        assert row["priority"] == "FAST"
        assert row["health_label"] == "WARNING"
        assert row["health_color"] == "red"
        assert row["mode_label"] == "INITIALIZATION"

        await ws.send_str("garbage")
        await ws.send_json({"command": "Toggled"})
        themed = await ws.receive_json(timeout=5)
        assert themed["themeLight"] is True
        assert themed["rows"][0]["light"] is True

        await ws.close()

        for _ in range(100):
            if subscriber.stopped:
                break
            await asyncio.sleep(0.05)
        assert subscriber.stopped == 1
