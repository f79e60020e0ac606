"""Network clients used by agent-cli."""

import asyncio
import itertools
import json
import os
from pathlib import Path
from typing import Any

import aiohttp
import httpx

from ..config import DEFAULT_CLI_SESSION_PATH
from ..logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_DASHBOARD_URL = "http://localhost:3000"
CONNECT_TIMEOUT = 5.0
REQUEST_TIMEOUT = 10.0


class RequestError(Exception):
    """Server answered a socket request with an error frame."""

    def __init__(self, code: str, detail: str):
        super().__init__(detail)
        self.code = code
        self.detail = detail


def dashboard_url() -> str:
    return os.getenv("DASHBOARD_URL", DEFAULT_DASHBOARD_URL).rstrip("/")


def socket_url(base_url: str) -> str:
    """Map the dashboard's http(s) URL onto its /ws endpoint."""
    if base_url.startswith("https://"):
        base_url = "wss://" + base_url[len("https://"):]
    elif base_url.startswith("http://"):
        base_url = "ws://" + base_url[len("http://"):]
    return base_url.rstrip("/") + "/ws"


def parse_params(args: list[str]) -> dict[str, Any]:
    """Turn ``--key=value`` / ``--flag`` arguments into a dict.

    Anything else is collected positionally under ``args``.
    """
    params: dict[str, Any] = {}
    positional = []
    for arg in args:
        if arg.startswith("--") and len(arg) > 2:
            key, sep, value = arg[2:].partition("=")
            params[key] = value if sep else True
        else:
            positional.append(arg)
    if positional:
        params["args"] = positional
    return params


class SessionFile:
    """Remembers which participant this terminal is logged in as."""

    def __init__(self, path: str | Path | None = None):
        if path is None:
            path = os.getenv("AGENT_CLI_SESSION") or DEFAULT_CLI_SESSION_PATH
        self.path = Path(path).expanduser()

    def load(self) -> str | None:
        try:
            value = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return value or None

    def save(self, participant_id: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(participant_id, encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class RestClient:
    """Thin httpx wrapper over the dashboard's HTTP API."""

    def __init__(self, base_url: str, timeout: float = REQUEST_TIMEOUT):
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self) -> "RestClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        response = await self._client.request(method, path, **kwargs)
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            raise RequestError(
                body.get("error", f"http_{response.status_code}"),
                str(body.get("detail", response.text)),
            )
        return response.json()

    async def init(self) -> dict:
        return await self._request("GET", "/api/init")

    async def agents(self) -> list[dict]:
        return await self._request("GET", "/api/agents")

    async def login(self, participant_id: str) -> dict:
        return await self._request("POST", f"/api/agents/{participant_id}/login")


class DashboardSocket:
    """WebSocket connection to /ws with ref-correlated requests.

    The first frame the server sends is ``init``; it is kept on ``snapshot``.
    Every other non-reply frame lands on ``events`` in arrival order.
    """

    def __init__(self, url: str):
        self.url = url
        self.snapshot: dict | None = None
        self.events: asyncio.Queue[dict | None] = asyncio.Queue()
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task | None = None
        self._pending: dict[str, asyncio.Future] = {}
        self._refs = itertools.count(1)
        self._ready: asyncio.Future | None = None

    async def __aenter__(self) -> "DashboardSocket":
        await self.connect()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def connect(self, timeout: float = CONNECT_TIMEOUT) -> None:
        self._session = aiohttp.ClientSession()
        self._ready = asyncio.get_running_loop().create_future()
        try:
            self._ws = await self._session.ws_connect(self.url, timeout=timeout)
            self._reader = asyncio.create_task(self._read())
            await asyncio.wait_for(self._ready, timeout=timeout)
        except Exception:
            await self.close()
            raise

    async def close(self) -> None:
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        if self._reader is not None:
            await asyncio.gather(self._reader, return_exceptions=True)
            self._reader = None
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def request(self, event: str, data: dict | None = None, timeout: float = REQUEST_TIMEOUT) -> Any:
        """Send one request frame and wait for its ack."""
        if self._ws is None:
            raise RuntimeError("Socket not connected")
        ref = str(next(self._refs))
        future = asyncio.get_running_loop().create_future()
        # Register before sending so the reader cannot miss a fast reply
        self._pending[ref] = future
        try:
            await self._ws.send_json({"event": event, "data": data or {}, "ref": ref})
            return await asyncio.wait_for(future, timeout=timeout)
        finally:
            self._pending.pop(ref, None)

    async def _read(self) -> None:
        try:
            async for msg in self._ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    try:
                        frame = json.loads(msg.data)
                    except json.JSONDecodeError:
                        logger.warning("Dropping malformed frame from %s", self.url)
                        continue
                    self._dispatch(frame)
                elif msg.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                    break
        finally:
            error = ConnectionError(f"Socket to {self.url} closed")
            if self._ready is not None and not self._ready.done():
                close_code = self._ws.close_code if self._ws is not None else None
                self._ready.set_exception(
                    ConnectionError(f"Socket to {self.url} closed before init (code {close_code})")
                )
            for future in self._pending.values():
                if not future.done():
                    future.set_exception(error)
            self._pending.clear()
            self.events.put_nowait(None)

    def _dispatch(self, frame: dict) -> None:
        event = frame.get("event")
        data = frame.get("data") or {}
        if event == "init":
            self.snapshot = data
            if self._ready is not None and not self._ready.done():
                self._ready.set_result(data)
            return
        if event in ("ack", "error"):
            future = self._pending.get(data.get("ref"))
            if future is not None and not future.done():
                if event == "ack":
                    future.set_result(data.get("result"))
                else:
                    future.set_exception(RequestError(data.get("error", "error"), data.get("detail", "")))
                return
            if event == "ack":
                return
        self.events.put_nowait(frame)
