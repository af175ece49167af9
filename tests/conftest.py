"""Shared fixtures: scripted in-memory SSH connections."""

from __future__ import annotations

import asyncio
import io
from dataclasses import dataclass, field

import asyncssh
import pytest

from rcmd.config import Params


class FakeStdout:
    """Remote stdout that replays scripted lines."""

    def __init__(self, lines, read_error=None, block=False):
        self._lines = list(lines)
        self._read_error = read_error
        self._block = block

    async def readline(self) -> str:
        if self._lines:
            return self._lines.pop(0)
        if self._read_error is not None:
            raise self._read_error
        if self._block:
            await asyncio.Event().wait()
        return ""


class FakeProcess:
    def __init__(self, stdout: FakeStdout):
        self.stdout = stdout
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True


class FakeConnection:
    def __init__(self, script: "HostScript"):
        self.script = script
        self.commands: list[str] = []
        self.process_options: dict = {}
        self.process: FakeProcess | None = None
        self.closed = False

    async def create_process(self, command, **options):
        self.commands.append(command)
        self.process_options = options
        if self.script.start_error is not None:
            raise self.script.start_error
        self.process = FakeProcess(
            FakeStdout(self.script.lines, self.script.read_error, self.script.block)
        )
        return self.process

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True


@dataclass
class HostScript:
    lines: list[str] = field(default_factory=list)
    connect_error: Exception | None = None
    start_error: Exception | None = None
    read_error: Exception | None = None
    block: bool = False


class FakeSSH:
    """Connector handing out scripted connections, keyed by host."""

    def __init__(self):
        self.scripts: dict[str, HostScript] = {}
        self.calls: list[tuple[str, dict]] = []
        self.connections: list[FakeConnection] = []

    def add(self, host: str, lines=(), **kwargs) -> HostScript:
        script = HostScript(lines=list(lines), **kwargs)
        self.scripts[host] = script
        return script

    async def connect(self, host, **options):
        self.calls.append((host, options))
        script = self.scripts.get(host)
        if script is None:
            raise OSError(f"No route to host {host}")
        if script.connect_error is not None:
            raise script.connect_error
        conn = FakeConnection(script)
        self.connections.append(conn)
        return conn


class InterruptAfter(io.StringIO):
    """Output stream that sets an event after a number of writes."""

    def __init__(self, event: asyncio.Event, writes: int):
        super().__init__()
        self.event = event
        self.remaining = writes

    def write(self, s):
        result = super().write(s)
        self.remaining -= 1
        if self.remaining == 0:
            self.event.set()
        return result


@pytest.fixture
def fake_ssh():
    return FakeSSH()


@pytest.fixture(scope="session")
def private_key():
    return asyncssh.generate_private_key("ssh-ed25519")


@pytest.fixture(scope="session")
def key_bytes(private_key):
    return private_key.export_private_key()


@pytest.fixture
def make_params(key_bytes):
    def _make(hosts, command="hostname", show_host=True, timeout=30):
        return Params(
            hosts=list(hosts),
            key=key_bytes,
            user="user",
            command=command,
            timeout=timeout,
            show_host=show_host,
        )

    return _make


@pytest.fixture
def interrupt_after():
    return InterruptAfter
