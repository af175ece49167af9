"""Merges session output into one stream and handles operator interrupt."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from typing import TextIO

from .executor import OutputChannel

logger = logging.getLogger(__name__)

FAREWELL = "\nBye!\n"
INTERRUPT_EXIT_CODE = 1


def interrupt_event(sig: int = signal.SIGINT) -> asyncio.Event:
    """Return an event that gets set when the process receives `sig`.

    Must be called from inside the running loop.
    """
    event = asyncio.Event()
    loop = asyncio.get_running_loop()
    loop.add_signal_handler(sig, event.set)
    return event


class Multiplexer:
    """Single consumer of the output channel.

    Writes every line to the output stream as it arrives and stops only
    when interrupted.
    """

    def __init__(self, channel: OutputChannel, output: TextIO | None = None):
        self.channel = channel
        self.output = output if output is not None else sys.stdout
        self.lines_written = 0

    def write(self, line: str) -> None:
        self.output.write(line)
        self.output.flush()
        self.lines_written += 1

    async def run(self, interrupted: asyncio.Event) -> int:
        """Deliver lines until `interrupted` is set, then say goodbye.

        Each iteration handles exactly one of the two events. When a line
        and the interrupt are both ready, the interrupt wins.

        Returns:
            Process exit status
        """
        stop = asyncio.create_task(interrupted.wait())
        receive = None
        try:
            while True:
                receive = asyncio.create_task(self.channel.get())
                await asyncio.wait({receive, stop}, return_when=asyncio.FIRST_COMPLETED)

                if stop.done():
                    break

                self.write(receive.result())
        finally:
            stop.cancel()
            if receive is not None:
                receive.cancel()

        logger.debug(f"Interrupted after {self.lines_written} lines")
        self.output.write(FAREWELL)
        self.output.flush()
        self.channel.close()
        return INTERRUPT_EXIT_CODE
