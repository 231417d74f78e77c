"""Pod discovery loop.

The loop alternates between starting a supervisor for every followed pod
that has none and re-listing the namespaces. It only stops on its own
when refreshing is disabled and every stream has ended.
"""

import asyncio
from typing import Dict, Iterable, List, Optional, Set

from ..core.config import StreamSettings
from ..core.exceptions import KubernetesError
from ..core.logging import get_logger
from ..core.models import LogOptions
from ..display.colors import RGB
from ..display.writer import OutputWriter
from .registry import Pod, PodKey, PodRegistry
from .supervisor import StreamSupervisor

logger = get_logger(__name__)


class DiscoveryLoop:
    """Keeps one supervisor task running per followed pod."""

    def __init__(
        self,
        registry: PodRegistry,
        writer: OutputWriter,
        settings: StreamSettings,
        initial_keys: Optional[Iterable[PodKey]] = None,
    ):
        """
        Args:
            registry: Registry of the followed pods.
            writer: Output writer shared with the supervisors.
            settings: Validated settings.
            initial_keys: Pods found at startup. Their first stream only shows
                new lines; any other stream starts from the first line.
        """
        self.registry = registry
        self.writer = writer
        self.settings = settings
        self.debug_color = RGB(*settings.debug_color)
        self._initial_keys: Set[PodKey] = set(initial_keys or ())
        self._tasks: Dict[PodKey, asyncio.Task] = {}
        self._idle = False

    @property
    def idle(self) -> bool:
        return self._idle

    @property
    def active_keys(self) -> List[PodKey]:
        return [key for key, task in self._tasks.items() if not task.done()]

    def options_for(self, pod: Pod) -> LogOptions:
        """Options of the first stream opened for ``pod``."""
        return LogOptions(
            follow=True,
            timestamps=self.settings.timestamps,
            previous=self.settings.previous,
            tail_lines=0 if pod.key in self._initial_keys else None,
        )

    def _reap(self) -> None:
        """Drop finished tasks, re-raising what a supervisor let escape."""
        for key, task in list(self._tasks.items()):
            if not task.done():
                continue
            del self._tasks[key]
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()  # type: ignore[misc]

    async def spawn_missing(self) -> List[Pod]:
        """Start a supervisor for every followed pod without a live one.

        A pod whose previous supervisor is still tearing down is skipped
        until that supervisor has finished.
        """
        self._reap()
        spawned: List[Pod] = []
        for pod in await self.registry.snapshot():
            if pod.key in self._tasks:
                continue
            options = self.options_for(pod)
            self._initial_keys.discard(pod.key)
            supervisor = StreamSupervisor(
                pod,
                self.registry,
                self.writer,
                self.settings,
                options,
                reconnect_delay=self.settings.loop_pause,
            )
            self._tasks[pod.key] = asyncio.create_task(
                supervisor.run(), name=f"stream:{pod}"
            )
            spawned.append(pod)

        if spawned:
            logger.debug(
                "Supervisors started", pods={str(pod): pod.color.hex for pod in spawned}
            )
        return spawned

    async def refresh(self) -> List[Pod]:
        """Re-list the namespaces; a failure only skips this cycle."""
        try:
            return await self.registry.refresh()
        except KubernetesError as e:
            logger.warning("Pod refresh failed", error=str(e))
            await self.writer.err(self.debug_color, f"pod refresh failed: {e}")
            return []

    async def wait_streams(self) -> None:
        """Wait for every supervisor to finish."""
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.wait(tasks)
        self._reap()

    async def step(self) -> bool:
        """Run one iteration of the loop.

        Returns:
            False once the loop has nothing left to do.
        """
        pods = await self.registry.snapshot()
        if pods:
            self._idle = False
            await self.spawn_missing()
            if self.settings.disable_pods_refresh:
                await self.wait_streams()
                return False
        else:
            self._reap()
            if not self._idle or self.settings.verbose:
                await self.writer.err(self.debug_color, "no pod found :(")
            else:
                logger.debug("Still no pod found")
            self._idle = True
            if self.settings.disable_pods_refresh:
                return False

        await asyncio.sleep(self.settings.loop_pause)
        await self.refresh()
        return True

    async def run(self) -> None:
        """Loop until stopped from outside or nothing is left to follow."""
        while await self.step():
            pass

    async def close(self) -> None:
        """Cancel every supervisor and wait for them."""
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
