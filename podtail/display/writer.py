"""Serialized colored output to stdout and stderr."""

import asyncio
import sys
from enum import Enum
from typing import Dict, Optional

from rich.color import Color
from rich.console import Console
from rich.style import Style
from rich.text import Text

from .colors import RGB


class Channel(Enum):
    """Output channels."""

    OUT = "out"
    ERR = "err"


def _default_console(stream) -> Console:
    return Console(
        file=stream,
        color_system="truecolor",
        highlight=False,
        soft_wrap=True,
    )


class OutputWriter:
    """Writes whole lines to the output channels, one writer at a time.

    Each channel has its own lock so normal and diagnostic output never
    wait on each other.
    """

    def __init__(
        self, out: Optional[Console] = None, err: Optional[Console] = None
    ):
        self._consoles: Dict[Channel, Console] = {
            Channel.OUT: out or _default_console(sys.stdout),
            Channel.ERR: err or _default_console(sys.stderr),
        }
        self._locks: Dict[Channel, asyncio.Lock] = {
            channel: asyncio.Lock() for channel in Channel
        }

    @staticmethod
    def normalize(message: str) -> str:
        """Return ``message`` with exactly one trailing newline."""
        return message.rstrip("\r\n") + "\n"

    async def print(
        self, channel: Channel, color: Optional[RGB], message: str
    ) -> None:
        """Write one message in ``color`` (terminal default if None)."""
        style = Style.null()
        if color is not None:
            style = Style(color=Color.from_rgb(*color))
        text = Text(self.normalize(message), style=style, end="")

        console = self._consoles[channel]
        async with self._locks[channel]:
            console.print(text, end="", markup=False, highlight=False, soft_wrap=True)
            console.file.flush()

    async def out(self, color: Optional[RGB], message: str) -> None:
        await self.print(Channel.OUT, color, message)

    async def err(self, color: Optional[RGB], message: str) -> None:
        await self.print(Channel.ERR, color, message)
