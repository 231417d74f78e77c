"""Print the recent lines of the pods found at startup, oldest first."""

import asyncio
from datetime import datetime, timezone
from typing import List, Sequence, Tuple

from ..core.config import StreamSettings
from ..core.logging import get_logger
from ..core.models import LogOptions
from ..core.utils import split_timestamp
from ..display.formatting import apply_filters, format_line
from ..display.writer import OutputWriter
from .registry import Pod, PodRegistry

logger = get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

HistoryEntry = Tuple[datetime, int, Pod, str]


def parse_history(
    pod: Pod, raw_lines: Sequence[str], keep_timestamps: bool, offset: int = 0
) -> List[HistoryEntry]:
    """Turn timestamped lines into sortable entries.

    A line without a timestamp inherits the one of the line before it.
    ``offset`` keeps the original order of lines with equal timestamps.
    """
    entries: List[HistoryEntry] = []
    last_timestamp = _EPOCH
    for position, raw_line in enumerate(raw_lines):
        raw_line = raw_line.rstrip("\r\n")
        if not raw_line:
            continue
        timestamp, message = split_timestamp(raw_line)
        if timestamp is None:
            timestamp = last_timestamp
        last_timestamp = timestamp
        text = raw_line if keep_timestamps else message
        entries.append((timestamp, offset + position, pod, text))
    return entries


async def print_history(
    pods: Sequence[Pod],
    registry: PodRegistry,
    writer: OutputWriter,
    settings: StreamSettings,
) -> int:
    """Fetch, merge and print the recent lines of ``pods``.

    A pod whose lines cannot be read gets an error notice; the others are
    still printed.

    Returns:
        Number of lines written.
    """
    options = LogOptions.for_history(
        settings.previous, settings.tail_lines, settings.since_seconds
    )
    results = await asyncio.gather(
        *(
            pod.namespace.source.fetch_previous_lines(pod.namespace.name, pod.name, options)
            for pod in pods
        ),
        return_exceptions=True,
    )

    layout = await registry.layout()
    entries: List[HistoryEntry] = []
    offset = 0
    for pod, result in zip(pods, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.warning("Fetching previous lines failed", pod=str(pod), error=str(result))
            await writer.err(
                pod.color,
                f"- pod {pod.label(layout.show_namespace)} previous lines unavailable, "
                f"reason: {result}",
            )
            continue
        entries.extend(parse_history(pod, result, settings.timestamps, offset))
        offset += len(result)

    entries.sort(key=lambda entry: (entry[0], entry[1]))

    written = 0
    for _, _, pod, text in entries:
        line = apply_filters(text, settings)
        if line is None:
            continue
        await writer.out(
            pod.color,
            format_line(pod.name, pod.namespace.name, line, layout.padding, layout.show_namespace),
        )
        written += 1

    logger.debug("Previous lines printed", pods=len(pods), lines=written)
    return written
