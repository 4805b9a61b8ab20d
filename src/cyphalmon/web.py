"""Browser surface for a monitoring session.

``GET /`` serves a single page; ``GET /ws`` opens a websocket that
owns one :class:`cyphalmon.session.MonitorSession`. The browser sends
intent messages (``{"command": "InterfaceReceived", "text": "vcan0"}``,
``{"command": "Toggled"}``) and receives render frames built by the
view reducer. Closing the socket closes the session.
"""

from __future__ import annotations

import asyncio
import json
import logging
import weakref
from typing import Any

from aiohttp import WSCloseCode, WSMsgType, web

from cyphalmon.acquisition import HeartbeatSubscriber
from cyphalmon.config import MonitorConfig
from cyphalmon.exceptions import ProtocolViolation
from cyphalmon.session import MonitorSession, SessionState, SubscriberFactory
from cyphalmon.sync.channel import SyncChannel
from cyphalmon.sync.protocol import parse_intent
from cyphalmon.view.live import LiveView
from cyphalmon.view.reducer import ViewState

_logger = logging.getLogger(__name__)

CONFIG_KEY = web.AppKey("config", MonitorConfig)
SUBSCRIBER_FACTORY_KEY = web.AppKey("subscriber_factory", SubscriberFactory)
SOCKETS_KEY = web.AppKey("sockets", weakref.WeakSet)

_HEALTH_CSS = {"green": "#2e8b57", "amber": "#f0d83c", "orange": "orange", "red": "red"}

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<title>Cyphal Node Monitor</title>
<style>
body { font-family: sans-serif; background: #1e1e1e; color: #ddd; }
body.light { background: #fafafa; color: #222; }
table { border-collapse: collapse; margin-top: 1em; }
th, td { border: 1px solid #555; padding: 4px 8px; }
body.light th, body.light td { border-color: #bbb; }
</style>
</head>
<body>
<form id="form">
  <label for="iface">Network Interface: </label>
  <input type="text" id="iface" placeholder="Enter Network Interface">
  <input type="submit" value="Submit">
</form>
<label><input type="checkbox" id="theme"> light</label>
<table id="table" style="display: none">
  <thead><tr>
    <th>source_node_id</th><th>transfer_id</th><th>priority</th><th>uptime</th>
    <th>health</th><th>mode</th><th>vendor_specific_status_code</th>
    <th>ts_system</th><th>ts_monotonic</th>
  </tr></thead>
  <tbody id="rows"></tbody>
</table>
<script>
const colors = __COLORS__;
const ws = new WebSocket((location.protocol === "https:" ? "wss://" : "ws://") + location.host + "/ws");
document.getElementById("form").onsubmit = (ev) => {
  ev.preventDefault();
  ws.send(JSON.stringify({command: "InterfaceReceived", text: document.getElementById("iface").value}));
};
document.getElementById("theme").onchange = () => ws.send(JSON.stringify({command: "Toggled"}));
ws.onmessage = (ev) => {
  const frame = JSON.parse(ev.data);
  document.getElementById("form").style.display = frame.formVisible ? "block" : "none";
  document.getElementById("table").style.display = frame.tableVisible ? "table" : "none";
  document.body.classList.toggle("light", frame.themeLight);
  document.getElementById("theme").checked = frame.themeLight;
  const body = document.getElementById("rows");
  for (const row of frame.rows) {
    let tr = document.getElementById("row-" + row.key);
    if (!tr) {
      tr = document.createElement("tr");
      tr.id = "row-" + row.key;
      for (let i = 0; i < 9; i++) tr.appendChild(document.createElement("td"));
      body.appendChild(tr);
    }
    const cells = [row.source, row.transfer, row.priority, row.uptime, row.health_label,
                   row.mode_label, row.vendor_status, row.system_ts, row.monotonic_ts];
    cells.forEach((value, i) => { tr.children[i].textContent = value === null ? "" : value; });
    tr.children[4].style.background = colors[row.health_color];
  }
};
</script>
</body>
</html>
"""


def render_frame(view: ViewState, session: SessionState) -> dict[str, Any]:
    """Build the JSON frame sent to the browser."""
    return {
        "type": "render",
        "formVisible": session.form_visible,
        "tableVisible": session.table_visible,
        "themeLight": view.theme_light,
        "rows": [row.model_dump(mode="json") for row in view.rows],
    }


async def _index(_request: web.Request) -> web.Response:
    page = _PAGE.replace("__COLORS__", json.dumps(_HEALTH_CSS))
    return web.Response(text=page, content_type="text/html")


async def _websocket(request: web.Request) -> web.WebSocketResponse:
    app = request.app
    ws = web.WebSocketResponse(heartbeat=30.0)
    await ws.prepare(request)
    app[SOCKETS_KEY].add(ws)

    outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
    channel = SyncChannel(logger=_logger)
    session_state = SessionState()

    def send_frame(_view_state: ViewState | None = None) -> None:
        outbox.put_nowait(render_frame(view.state, session_state))

    def on_state(state: SessionState) -> None:
        nonlocal session_state
        session_state = state
        before = view.state
        view.set_theme(state.theme_light)
        if view.state is before:
            send_frame()

    view = LiveView(render=send_frame)
    channel.bind_view(view.on_snapshot)

    async def writer() -> None:
        while True:
            frame = await outbox.get()
            await ws.send_json(frame)

    writer_task = asyncio.create_task(writer())
    send_frame()

    async with MonitorSession(
        app[CONFIG_KEY],
        channel=channel,
        subscriber_factory=app[SUBSCRIBER_FACTORY_KEY],
        on_state=on_state,
        logger=_logger,
    ):
        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    try:
                        intent = parse_intent(json.loads(msg.data))
                    except (ValueError, ProtocolViolation) as exc:
                        _logger.debug("Ignoring view message: %s", exc)
                        continue
                    channel.post_intent(intent)
                elif msg.type == WSMsgType.ERROR:
                    _logger.warning("View connection error: %s", ws.exception())
        finally:
            writer_task.cancel()
            await asyncio.gather(writer_task, return_exceptions=True)

    return ws


async def _close_sockets(app: web.Application) -> None:
    # Closing a socket ends its receive loop, which closes its session.
    for ws in list(app[SOCKETS_KEY]):
        await ws.close(code=WSCloseCode.GOING_AWAY, message=b"Server shutdown")


def create_app(
    config: MonitorConfig | None = None,
    *,
    subscriber_factory: SubscriberFactory = HeartbeatSubscriber,
) -> web.Application:
    """Create the aiohttp application serving the monitor page."""
    app = web.Application()
    app[CONFIG_KEY] = config or MonitorConfig()
    app[SUBSCRIBER_FACTORY_KEY] = subscriber_factory
    app[SOCKETS_KEY] = weakref.WeakSet()
    app.router.add_get("/", _index)
    app.router.add_get("/ws", _websocket)
    app.on_shutdown.append(_close_sockets)
    return app


def run_server(config: MonitorConfig) -> None:
    """Serve the monitor until interrupted."""
    web.run_app(create_app(config), host=config.web_host, port=config.web_port)
