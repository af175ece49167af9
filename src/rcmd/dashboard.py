"""TUI dashboard for rcmd."""

from __future__ import annotations

import asyncio

import asyncssh
from rich.text import Text
from textual.app import App, ComposeResult
from textual.reactive import reactive
from textual.widgets import Footer, Header, RichLog, Static

from .config import Params
from .executor import Connector, OutputChannel, dispatch
from .multiplexer import INTERRUPT_EXIT_CODE


class StatusBar(Static):
    """Bottom status bar showing host and line counts."""

    hosts: reactive[int] = reactive(0)
    lines: reactive[int] = reactive(0)

    def render(self) -> str:
        return f"Hosts: {self.hosts} | Lines: {self.lines} | Press 'q' to quit"


class Dashboard(App):
    """Shows the merged output stream in a scrolling log."""

    CSS = """
    #output {
        height: 1fr;
        padding: 0 1;
    }

    StatusBar {
        dock: bottom;
        height: 1;
        background: $surface;
        padding: 0 1;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("ctrl+c", "quit", "Quit"),
    ]

    def __init__(
        self,
        params: Params,
        credential: asyncssh.SSHKey,
        channel: OutputChannel | None = None,
        connect: Connector = asyncssh.connect,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.params = params
        self.credential = credential
        self.channel = channel if channel is not None else OutputChannel()
        self.connect = connect
        self.lines_received = 0
        self._session_tasks: list[asyncio.Task[None]] = []

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield RichLog(id="output", wrap=True, auto_scroll=True)
        yield StatusBar(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        """Start the sessions and the output pump."""
        status_bar = self.query_one("#status-bar", StatusBar)
        status_bar.hosts = len(self.params.hosts)

        self._session_tasks = dispatch(
            self.params, self.credential, self.channel, connect=self.connect
        )
        self.run_worker(self._pump(), exclusive=True)

    async def _pump(self) -> None:
        """Move lines from the channel into the log, in arrival order."""
        output = self.query_one("#output", RichLog)
        status_bar = self.query_one("#status-bar", StatusBar)
        while True:
            line = await self.channel.get()
            output.write(Text.from_ansi(line.rstrip("\n")))
            self.lines_received += 1
            status_bar.lines = self.lines_received

    async def action_quit(self) -> None:
        """Stop reading output and leave with the interrupt status."""
        self.channel.close()
        self.exit(return_code=INTERRUPT_EXIT_CODE)
