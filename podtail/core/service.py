"""Core service layer for podtail."""

from typing import List, Optional

from ..display.colors import ColorAllocator, ColorGenerator
from ..display.writer import OutputWriter
from ..stream.discovery import DiscoveryLoop
from ..stream.history import print_history
from ..stream.registry import Namespace, PodRegistry, count_matching
from .config import StreamSettings
from .logging import get_logger
from .models import PodSource

logger = get_logger(__name__)


def derive_cycle_len(pod_count: int) -> int:
    """Color cycle length sized after the first pod count, with some slack."""
    return max(1, pod_count + pod_count // 2)


class TailService:
    """Wires the engine together and runs it until it stops or is cancelled."""

    def __init__(
        self,
        settings: StreamSettings,
        source: PodSource,
        writer: Optional[OutputWriter] = None,
        default_namespace: str = "default",
    ):
        self.settings = settings
        self.source = source
        self.writer = writer or OutputWriter()
        self.default_namespace = default_namespace
        self.registry: Optional[PodRegistry] = None
        self.loop: Optional[DiscoveryLoop] = None

    def build_namespaces(self) -> List[Namespace]:
        """One namespace per distinct configured name, in order."""
        names = self.settings.namespaces or (self.default_namespace,)
        return [Namespace(name, self.source) for name in dict.fromkeys(names)]

    async def build_allocator(self, namespaces: List[Namespace]) -> ColorAllocator:
        """Color allocator whose first cycle fits the current pod count."""
        cycle_len = self.settings.color_cycle_len
        if not cycle_len:
            cycle_len = derive_cycle_len(
                await count_matching(namespaces, self.settings.pod_search)
            )
        generator = ColorGenerator(
            self.settings.hue_intervals,
            self.settings.color_saturation,
            self.settings.color_lightness,
            cycle_len,
        )
        logger.debug(
            "Color generator ready", cycle_len=generator.cycle_size, hues=generator.hue_count
        )
        return ColorAllocator(generator)

    async def start(self) -> DiscoveryLoop:
        """Discover the initial pods and print their history if requested.

        Raises:
            KubernetesError: If the namespaces cannot be listed at startup.
        """
        namespaces = self.build_namespaces()
        allocator = await self.build_allocator(namespaces)
        self.registry = await PodRegistry.create(
            namespaces, self.settings.pod_search, allocator
        )

        initial = await self.registry.snapshot()
        logger.info(
            "Following pods",
            namespaces=[namespace.name for namespace in namespaces],
            count=len(initial),
        )
        if self.settings.wants_history and initial:
            await print_history(initial, self.registry, self.writer, self.settings)

        self.loop = DiscoveryLoop(
            self.registry,
            self.writer,
            self.settings,
            initial_keys=[pod.key for pod in initial],
        )
        return self.loop

    async def run(self) -> None:
        """Follow pods until cancelled, or until every stream ended when
        refreshing is disabled."""
        loop = await self.start()
        try:
            await loop.run()
        finally:
            await loop.close()
