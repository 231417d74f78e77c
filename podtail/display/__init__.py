"""Terminal output: colors, line formatting and the output writer."""

from .colors import RGB, ColorAllocator, ColorGenerator
from .writer import Channel, OutputWriter

__all__ = [
    "RGB",
    "ColorAllocator",
    "ColorGenerator",
    "Channel",
    "OutputWriter",
]
