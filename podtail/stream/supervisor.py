"""Per-pod log stream supervision.

Each followed pod gets one :class:`StreamSupervisor` task that owns its
stream from the first line to the teardown. A failing stream only ends
its own pod.
"""

import asyncio
import math
from dataclasses import replace
from typing import Optional

from ..core.config import StreamSettings
from ..core.exceptions import LogStreamError, PodtailError
from ..core.logging import get_logger
from ..core.models import LogOptions
from ..display.formatting import apply_filters, format_line
from ..display.writer import OutputWriter
from .registry import Pod, PodRegistry

logger = get_logger(__name__)


class StreamSupervisor:
    """Streams one pod's logs to the output until the stream ends."""

    def __init__(
        self,
        pod: Pod,
        registry: PodRegistry,
        writer: OutputWriter,
        settings: StreamSettings,
        options: LogOptions,
        reconnect_delay: Optional[float] = None,
    ):
        """
        Args:
            pod: Pod to follow.
            registry: Registry the pod is removed from on teardown.
            writer: Output writer shared by all supervisors.
            settings: Filters and replacement applied to each line.
            options: Options of the first stream opened.
            reconnect_delay: Seconds to wait before reopening a stream that
                ended while the pod is still running. None never reopens.
        """
        self.pod = pod
        self.registry = registry
        self.writer = writer
        self.settings = settings
        self.options = options
        self.reconnect_delay = reconnect_delay
        self.lines_written = 0
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    async def run(self) -> None:
        """Follow the pod, then tear it down exactly once."""
        layout = await self.registry.layout()
        await self.writer.out(
            self.pod.color,
            f"+ pod {self.pod.label(layout.show_namespace)} starting, "
            f"following {layout.pod_count} pods",
        )

        error: Optional[PodtailError] = None
        try:
            await self._follow()
        except PodtailError as e:
            error = e
        except Exception as e:
            error = LogStreamError(f"reading logs of pod {self.pod}: {e}")
            error.__cause__ = e

        if error is not None:
            logger.warning("Log stream failed", pod=str(self.pod), error=str(error))
        await self.teardown(error)

    async def _follow(self) -> None:
        source = self.pod.namespace.source
        namespace, name = self.pod.key
        options = self.options
        while True:
            async for raw_line in source.stream_lines(namespace, name, options):
                await self.handle_line(raw_line)

            if self.reconnect_delay is None:
                return
            if not await source.is_running(namespace, name):
                return

            logger.debug("Stream closed while pod is running, reconnecting", pod=str(self.pod))
            await asyncio.sleep(self.reconnect_delay)
            # Overlap the gap so no line is lost, at the cost of duplicates
            options = replace(
                options,
                previous=False,
                tail_lines=None,
                since_seconds=math.ceil(self.reconnect_delay) + 1,
            )

    async def handle_line(self, raw_line: str) -> bool:
        """Filter, format and write one line.

        Returns:
            Whether the line was written.
        """
        line = apply_filters(raw_line.rstrip("\r\n"), self.settings)
        if line is None:
            return False

        # Padding changes as other pods come and go
        layout = await self.registry.layout()
        message = format_line(
            self.pod.name,
            self.pod.namespace.name,
            line,
            layout.padding,
            layout.show_namespace,
        )
        await self.writer.out(self.pod.color, message)
        self.lines_written += 1
        return True

    async def teardown(self, error: Optional[Exception] = None) -> None:
        """Remove the pod, free its color and print the end notice.

        Only the first call has an effect.
        """
        if self._finished:
            return
        self._finished = True

        label = self.pod.label((await self.registry.layout()).show_namespace)
        await self.registry.remove(self.pod)
        layout = await self.registry.layout()
        if error is not None:
            await self.writer.err(
                self.pod.color,
                f"- pod {label} ended, reason: {error}, "
                f"following {layout.pod_count} pods",
            )
        else:
            await self.writer.out(
                self.pod.color,
                f"- pod {label} gracefully stopped, following {layout.pod_count} pods",
            )
