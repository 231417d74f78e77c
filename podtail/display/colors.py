"""Color generation and allocation for pod output.

Colors are handed out so that the pods followed at the same time get hues
as far apart as possible. Released colors are reused before any new hue is
generated.
"""

import asyncio
import colorsys
from typing import Iterable, List, NamedTuple, Set

from ..core.config import HueInterval
from ..core.logging import get_logger

logger = get_logger(__name__)


class RGB(NamedTuple):
    """A 24-bit terminal color."""

    red: int
    green: int
    blue: int

    @classmethod
    def from_hsl(cls, hue: int, saturation: int, lightness: int) -> "RGB":
        """Convert a hue in degrees and percentages to RGB."""
        red, green, blue = colorsys.hls_to_rgb(
            hue / 360.0, lightness / 100.0, saturation / 100.0
        )
        return cls(round(red * 255), round(green * 255), round(blue * 255))

    @property
    def hex(self) -> str:
        return f"#{self.red:02x}{self.green:02x}{self.blue:02x}"


class ColorGenerator:
    """Deterministic hue walker.

    The first ``cycle_len`` hues are spread evenly over the available hues.
    Each following cycle doubles the number of slots (up to the number of
    hues), so hues generated later fall in between the ones already used.
    """

    def __init__(
        self,
        hue_intervals: Iterable[HueInterval],
        saturation: int,
        lightness: int,
        cycle_len: int,
    ):
        hues: List[int] = []
        for interval in hue_intervals:
            for hue in interval.hues:
                if hue not in hues:
                    hues.append(hue)
        if not hues:
            raise ValueError("at least one hue is required")

        self.hues = hues
        self.saturation = saturation
        self.lightness = lightness
        self.hue_count = len(hues)
        self.cycle_size = max(1, min(cycle_len, self.hue_count))
        self.step = 0
        self.generated_hues: Set[int] = set()

    def _advance_cycle(self) -> None:
        self.step = 1
        self.cycle_size = min(self.cycle_size * 2, self.hue_count)

    def next_hue(self) -> int:
        """Return the next hue, or a reused one once every hue was emitted."""
        hue = self.hues[0]
        for _ in range(self.hue_count):
            if self.step >= self.cycle_size:
                self._advance_cycle()
            hue_step = self.hue_count // self.cycle_size
            index = min(self.step * hue_step, self.hue_count - 1)
            hue = self.hues[index]
            self.step += 1
            if hue not in self.generated_hues:
                self.generated_hues.add(hue)
                return hue

        logger.debug("Hues exhausted, reusing one", hue=hue, hue_count=self.hue_count)
        return hue

    def next_color(self) -> RGB:
        """Return the RGB value of the next hue."""
        return RGB.from_hsl(self.next_hue(), self.saturation, self.lightness)


class ColorAllocator:
    """Hands out colors to pods and takes them back when pods go away."""

    def __init__(self, generator: ColorGenerator):
        self._generator = generator
        self._available: List[RGB] = []
        self._used: List[RGB] = []
        self._lock = asyncio.Lock()

    @property
    def available(self) -> List[RGB]:
        return list(self._available)

    @property
    def used(self) -> List[RGB]:
        return list(self._used)

    async def get_new_color(self) -> RGB:
        """Reuse the most recently released color or generate a new one."""
        async with self._lock:
            if self._available:
                color = self._available.pop()
            else:
                color = self._generator.next_color()
            self._used.append(color)
            return color

    async def release(self, color: RGB) -> None:
        """Make ``color`` available again.

        Unknown colors are ignored. A color handed out twice (hues exhausted)
        only becomes available once its last user released it.
        """
        async with self._lock:
            if color not in self._used:
                return
            self._used.remove(color)
            if color not in self._used and color not in self._available:
                self._available.append(color)
