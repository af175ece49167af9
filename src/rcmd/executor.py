"""SSH execution engine for rcmd."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import asyncssh

from .config import Params

logger = logging.getLogger(__name__)

SSH_PORT = 22

# ANSI foreground colors, picked by host index
COLORS = (31, 32, 33, 34, 35, 36)
LABEL_WIDTH = 16

# Opens an SSH connection: (host, **options) -> connection
Connector = Callable[..., Awaitable[Any]]


def format_label(host: str, index: int) -> str:
    """Render the colored, fixed-width host prefix for an output line."""
    color = COLORS[index % len(COLORS)]
    padding = " " * max(LABEL_WIDTH - len(host), 0)
    return f"\033[{color}m{host}:\033[39m{padding}"


def load_credential(key: bytes) -> asyncssh.SSHKey:
    """Parse private key bytes into a key usable for authentication.

    Raises:
        asyncssh.KeyImportError: If the key can't be parsed
    """
    return asyncssh.import_private_key(key)


class OutputChannel:
    """Unbounded line queue shared by all sessions, read by one consumer."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, line: str) -> None:
        # Lines sent after close are never observed
        if not self._closed:
            self._queue.put_nowait(line)

    async def get(self) -> str:
        return await self._queue.get()

    def close(self) -> None:
        self._closed = True

    def __len__(self) -> int:
        return self._queue.qsize()


@dataclass
class SessionWorker:
    """Runs the command on one host and forwards its stdout lines."""

    index: int
    host: str
    params: Params
    credential: asyncssh.SSHKey
    channel: OutputChannel
    connect: Connector = asyncssh.connect

    @property
    def label(self) -> str:
        if not self.params.show_host:
            return ""
        return format_label(self.host, self.index)

    async def run(self) -> None:
        """Connect, start the command and stream its output.

        Every failure ends this session only. Errors are logged and never
        reach the output channel.
        """
        logger.debug(f"Connecting to {self.params.user}@{self.host}:{SSH_PORT}")

        # Malformed addresses fail in getaddrinfo with UnicodeError, a ValueError
        try:
            conn = await self.connect(
                self.host,
                port=SSH_PORT,
                username=self.params.user,
                client_keys=[self.credential],
                known_hosts=None,  # Host keys are not verified
                connect_timeout=self.params.timeout,
            )
        except (OSError, ValueError, asyncssh.Error, asyncio.TimeoutError) as e:
            logger.warning(f"unable to connect to {self.host}: {e}")
            return

        logger.info(f"Connected to {self.host}")

        async with conn:
            try:
                proc = await conn.create_process(
                    self.params.command, encoding="utf-8", errors="replace"
                )
            except (OSError, asyncssh.Error) as e:
                logger.warning(f"unable to execute remote command on {self.host}: {e}")
                return

            async with proc:
                await self._forward(proc.stdout)

        logger.debug(f"Session on {self.host} closed")

    async def _forward(self, stdout: Any) -> None:
        """Read lines until end of stream, sending each on the channel."""
        label = self.label
        while True:
            try:
                line = await stdout.readline()
            except (OSError, asyncssh.Error) as e:
                logger.warning(f"read error on {self.host}: {e}")
                return

            if not line:
                return

            if not line.endswith("\n"):
                line += "\n"
            self.channel.send(f"{label}{line}")


def dispatch(
    params: Params,
    credential: asyncssh.SSHKey,
    channel: OutputChannel,
    connect: Connector = asyncssh.connect,
) -> list[asyncio.Task[None]]:
    """Start one session task per host, in host order.

    Tasks are not awaited. The caller keeps the returned references so the
    tasks stay alive for as long as the loop runs.
    """
    tasks = []
    for index, host in enumerate(params.hosts):
        worker = SessionWorker(
            index=index,
            host=host,
            params=params,
            credential=credential,
            channel=channel,
            connect=connect,
        )
        tasks.append(asyncio.create_task(worker.run(), name=f"session-{index}-{host}"))

    logger.info(f"Dispatched {len(tasks)} sessions")
    return tasks
