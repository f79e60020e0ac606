"""agent-cli: drive the dashboard from a terminal.

Usage:
    agent-cli login friday
    agent-cli message "Hello team!"
    agent-cli dm jarvis "Can you analyze this file?"
    agent-cli status busy "Processing data export"
    agent-cli command jarvis analyze --target=data.csv
    agent-cli listen
"""

import argparse
import asyncio
import sys
from datetime import datetime

import aiohttp
import httpx

from ..client import DashboardView, PollingReconciler
from .client import (
    DashboardSocket,
    RequestError,
    RestClient,
    SessionFile,
    dashboard_url,
    parse_params,
    socket_url,
)


class CLIError(Exception):
    """Usage problem reported to the user without a traceback."""


def _clock(timestamp: str | None) -> str:
    if not timestamp:
        return "--:--:--"
    try:
        return datetime.fromisoformat(timestamp).astimezone().strftime("%H:%M:%S")
    except ValueError:
        return timestamp


def format_event(frame: dict, me: str | None = None) -> str | None:
    """Render one pushed frame for the listen view. None means skip it."""
    event = frame.get("event")
    data = frame.get("data") or {}

    if event in ("message-new", "message-direct"):
        sender = data.get("sender_id")
        recipient = data.get("recipient_id")
        content = data.get("content", "")
        if me is None:
            target = f" -> {recipient}" if recipient else ""
            return f"[MESSAGE] {sender}{target}: {content}"
        if sender == me or (recipient and recipient != me):
            return None
        if event == "message-new" and recipient:
            # Delivered again as message-direct
            return None
        prefix = "[DM]" if recipient else "[#general]"
        return f"{prefix} {sender}: {content}"
    if event == "agent-command":
        lines = [
            f"[COMMAND] {data.get('from_id')}:",
            f"  Command: {data.get('command')}",
            f"  Params: {data.get('params')}",
            f"  Time: {_clock(data.get('timestamp'))}",
        ]
        return "\n".join(lines)
    if event == "activity-new":
        return f"[ACTIVITY] {data.get('actor_id')}: {data.get('description')}"
    if event == "participant-updated":
        task = f" | {data['current_task']}" if data.get("current_task") else ""
        return f"[STATUS] {data.get('id')}: {data.get('status')}{task}"
    if event == "typing" and data.get("is_typing"):
        return f"[TYPING] {data.get('participant_id')} is typing..."
    if event == "error":
        return f"[ERROR] {data.get('error')}: {data.get('detail')}"
    return None


def format_participant(participant: dict) -> str:
    line = f"  {participant.get('avatar', '')} {participant['name']} ({participant['id']}) - {participant['status']}"
    if participant.get("current_task"):
        line += f"\n     Task: {participant['current_task']}"
    return line


class AgentCLI:
    """Subcommand implementations. Socket and REST clients are created per call."""

    def __init__(self, base_url: str, session: SessionFile, out=None):
        self.base_url = base_url
        self.session = session
        self.out = out or sys.stdout

    def echo(self, text: str) -> None:
        print(text, file=self.out, flush=True)

    def identity(self) -> str:
        participant_id = self.session.load()
        if not participant_id:
            raise CLIError("Please login first: agent-cli login <participant>")
        return participant_id

    def socket(self) -> DashboardSocket:
        return DashboardSocket(socket_url(self.base_url))

    def rest(self) -> RestClient:
        return RestClient(self.base_url)

    async def _send(self, event: str, data: dict):
        async with self.socket() as ws:
            return await ws.request(event, data)

    async def login(self, args) -> None:
        async with self.rest() as rest:
            participant = await rest.login(args.participant)
        self.session.save(participant["id"])
        self.echo(f"{participant.get('avatar', '')} Logged in as {participant['name']}")

    async def logout(self, args) -> None:
        participant_id = self.identity()
        participant = await self._send("logout", {"participant_id": participant_id})
        self.session.clear()
        self.echo(f"{participant['name']} logged out")

    async def message(self, args) -> None:
        content = " ".join(args.text)
        await self._send("message", {"sender_id": self.identity(), "content": content})
        self.echo("Message sent to #general")

    async def dm(self, args) -> None:
        content = " ".join(args.text)
        await self._send(
            "message",
            {
                "sender_id": self.identity(),
                "recipient_id": args.recipient,
                "content": content,
                "kind": "direct",
            },
        )
        self.echo(f"Message sent to DM {args.recipient}")

    async def status(self, args) -> None:
        data = {"participant_id": self.identity(), "status": args.status}
        if args.task:
            data["task"] = " ".join(args.task)
        await self._send("status", data)
        task = f" | Task: {data['task']}" if "task" in data else ""
        self.echo(f"Status updated: {args.status}{task}")

    async def task(self, args) -> None:
        description = " ".join(args.description)
        await self._send(
            "status", {"participant_id": self.identity(), "status": "busy", "task": description}
        )
        self.echo(f"Status updated: busy | Task: {description}")

    async def command(self, args) -> None:
        result = await self._send(
            "command",
            {
                "from_id": self.identity(),
                "to_id": args.agent,
                "command": args.name,
                "params": parse_params(args.params),
            },
        )
        self.echo(f"Command sent to {args.agent}: {args.name} (delivered to {result['delivered']} session(s))")

    async def call(self, args) -> None:
        owner_id = args.owner or self.identity()
        text = " ".join(args.text)
        accepted = await self._send(
            "call", {"owner_id": owner_id, "agent_id": args.agent, "command": text}
        )
        self.echo(accepted["message"])

    async def listen(self, args) -> None:
        participant_id = self.identity()
        async with self.socket() as ws:
            participant = await ws.request("login", {"participant_id": participant_id})
            self.echo(f"{participant.get('avatar', '')} {participant['name']} is listening...")
            self.echo("Press Ctrl+C to exit\n")
            while True:
                frame = await ws.events.get()
                if frame is None:
                    raise CLIError("Connection closed by server")
                line = format_event(frame, participant_id)
                if line:
                    self.echo(line)

    async def poll(self, args) -> None:
        view = DashboardView()
        reconciler = PollingReconciler(view)
        cycles = 0
        async with self.rest() as rest:
            while True:
                snapshot = await rest.init()
                if not view.initialized:
                    view.apply_init(snapshot)
                    self.echo(
                        f"Polling every {args.interval}s: {len(view.participants)} participants, "
                        f"{len(view.messages)} messages"
                    )
                else:
                    events = reconciler.reconcile(
                        snapshot["participants"], snapshot["messages"], snapshot["activities"]
                    )
                    for event, payload in events:
                        line = format_event({"event": event, "data": payload})
                        if line:
                            self.echo(line)
                cycles += 1
                if args.count and cycles >= args.count:
                    return
                await asyncio.sleep(args.interval)

    async def agents(self, args) -> None:
        async with self.rest() as rest:
            agents = await rest.agents()
        self.echo("\nAgent Status:\n")
        for agent in agents:
            self.echo(format_participant(agent))
        self.echo("")

    async def whoami(self, args) -> None:
        participant_id = self.session.load()
        self.echo(participant_id if participant_id else "No agent logged in")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="agent-cli", description="Agent dashboard command-line client")
    parser.add_argument("--url", default=None, help="Dashboard URL (default: $DASHBOARD_URL or http://localhost:3000)")
    parser.add_argument("--session-file", default=None, help="Where the logged-in identity is kept")
    sub = parser.add_subparsers(dest="action", required=True)

    p = sub.add_parser("login", help="Log in as an agent or the owner")
    p.add_argument("participant")

    sub.add_parser("logout", help="Log out")

    p = sub.add_parser("message", aliases=["msg"], help="Send a message to #general")
    p.add_argument("text", nargs="+")

    p = sub.add_parser("dm", help="Send a direct message")
    p.add_argument("recipient")
    p.add_argument("text", nargs="+")

    p = sub.add_parser("status", help="Update status (online/busy/away/offline)")
    p.add_argument("status", choices=["online", "busy", "away", "offline"])
    p.add_argument("task", nargs="*")

    p = sub.add_parser("task", help="Set current task (marks you busy)")
    p.add_argument("description", nargs="+")

    p = sub.add_parser("command", aliases=["cmd"], help="Send a command to another agent")
    p.add_argument("agent")
    p.add_argument("name")
    p.add_argument("params", nargs=argparse.REMAINDER)

    p = sub.add_parser("call", help="Owner: call an agent and get a reply in the chat")
    p.add_argument("agent")
    p.add_argument("text", nargs="+")
    p.add_argument("--owner", default=None, help="Owner id (default: logged-in identity)")

    sub.add_parser("listen", help="Print messages, commands and activity in realtime")

    p = sub.add_parser("poll", help="Follow the dashboard by polling /api/init")
    p.add_argument("--interval", type=float, default=2.0)
    p.add_argument("--count", type=int, default=0, help="Stop after N polls (0 = forever)")

    sub.add_parser("agents", help="List participants and their status")
    sub.add_parser("whoami", help="Show the logged-in identity")

    return parser


ALIASES = {"msg": "message", "cmd": "command"}


async def run(argv: list[str] | None = None, out=None) -> int:
    args = build_parser().parse_args(argv)
    cli = AgentCLI(
        (args.url or dashboard_url()).rstrip("/"),
        SessionFile(args.session_file),
        out=out,
    )
    handler = getattr(cli, ALIASES.get(args.action, args.action))
    try:
        await handler(args)
    except CLIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except RequestError as e:
        print(f"Error: {e.code}: {e.detail}", file=sys.stderr)
        return 1
    except (ConnectionError, OSError, asyncio.TimeoutError, aiohttp.ClientError, httpx.HTTPError) as e:
        print(f"Error: cannot reach {cli.base_url}: {e}", file=sys.stderr)
        return 1
    return 0


def main():
    try:
        code = asyncio.run(run())
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
