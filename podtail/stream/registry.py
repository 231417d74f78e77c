"""Registry of the pods currently followed."""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

from ..core.exceptions import InconsistentStateError, KubernetesError
from ..core.logging import get_logger
from ..core.models import PodDescriptor, PodSource
from ..display.colors import RGB, ColorAllocator
from ..display.formatting import pod_label

logger = get_logger(__name__)

PodKey = Tuple[str, str]


@dataclass(frozen=True)
class Namespace:
    """A namespace and the source used to list and read its pods."""

    name: str
    source: PodSource = field(compare=False, repr=False)

    async def list_pods(self) -> List[PodDescriptor]:
        return await self.source.list_pods(self.name)


@dataclass(eq=False)
class Pod:
    """A followed pod.

    Two pods are the same pod when namespace and name match, whatever
    their color or phase.
    """

    name: str
    namespace: Namespace
    color: RGB
    phase: Optional[str] = None

    @property
    def key(self) -> PodKey:
        return (self.namespace.name, self.name)

    def label(self, show_namespace: bool) -> str:
        return pod_label(self.name, self.namespace.name, show_namespace)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Pod):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return f"{self.namespace.name}/{self.name}"


@dataclass(frozen=True)
class Layout:
    """Alignment values read together under the registry lock."""

    padding: int
    show_namespace: bool
    pod_count: int


async def list_matching(
    namespace: Namespace, matcher: Pattern[str]
) -> List[PodDescriptor]:
    """List the running pods of ``namespace`` whose name matches."""
    try:
        descriptors = await namespace.list_pods()
    except KubernetesError:
        raise
    except Exception as e:
        raise KubernetesError(
            f"listing pods in namespace '{namespace.name}': {e}"
        ) from e
    return [
        descriptor
        for descriptor in descriptors
        if descriptor.is_running and matcher.search(descriptor.name)
    ]


async def count_matching(
    namespaces: Iterable[Namespace], matcher: Pattern[str]
) -> int:
    """Number of pods the first listing would follow."""
    total = 0
    for namespace in namespaces:
        total += len(await list_matching(namespace, matcher))
    return total


class PodRegistry:
    """The set of followed pods, grouped by namespace.

    ``padding`` and ``show_namespace`` are recomputed on every membership
    change while the lock is held, so a reader never sees values that
    disagree with the members.
    """

    def __init__(
        self,
        namespaces: Iterable[Namespace],
        matcher: Pattern[str],
        colors: ColorAllocator,
    ):
        self.namespaces: List[Namespace] = list(namespaces)
        self.matcher = matcher
        self.colors = colors
        self._pods: Dict[str, Dict[str, Pod]] = {
            namespace.name: {} for namespace in self.namespaces
        }
        self._padding = 0
        self._show_namespace = False
        self._lock = asyncio.Lock()

    @classmethod
    async def create(
        cls,
        namespaces: Iterable[Namespace],
        matcher: Pattern[str],
        colors: ColorAllocator,
    ) -> "PodRegistry":
        """Build a registry holding every matching running pod.

        Raises:
            KubernetesError: If a namespace cannot be listed.
        """
        registry = cls(namespaces, matcher, colors)
        await registry.refresh()
        return registry

    def _recompute(self) -> None:
        active_namespaces = [name for name, pods in self._pods.items() if pods]
        self._show_namespace = len(active_namespaces) > 1
        padding = 0
        for namespace_name in active_namespaces:
            for pod in self._pods[namespace_name].values():
                padding = max(padding, len(pod.label(self._show_namespace)))
        self._padding = padding

    async def refresh(self) -> List[Pod]:
        """Add the matching running pods not followed yet.

        Pods are never removed here: a pod leaves the registry when its
        stream ends.

        Returns:
            The pods added by this call.

        Raises:
            KubernetesError: If a namespace cannot be listed. Pods found in
                the namespaces listed before the failure are kept.
        """
        added: List[Pod] = []
        for namespace in self.namespaces:
            descriptors = await list_matching(namespace, self.matcher)
            async with self._lock:
                bucket = self._pods[namespace.name]
                for descriptor in descriptors:
                    if descriptor.name in bucket:
                        continue
                    pod = Pod(
                        name=descriptor.name,
                        namespace=namespace,
                        color=await self.colors.get_new_color(),
                        phase=descriptor.phase,
                    )
                    bucket[pod.name] = pod
                    added.append(pod)
                if added:
                    self._recompute()

        if added:
            logger.debug("Pods added", pods=[str(pod) for pod in added])
        return added

    async def remove(self, pod: Pod) -> bool:
        """Forget ``pod`` and give its color back.

        Removing a pod that is not followed does nothing.

        Returns:
            Whether the pod was followed.

        Raises:
            InconsistentStateError: If the pod's namespace is unknown.
        """
        async with self._lock:
            bucket = self._pods.get(pod.namespace.name)
            if bucket is None:
                raise InconsistentStateError(
                    f"pod {pod} belongs to namespace '{pod.namespace.name}' "
                    "which is not followed"
                )
            current = bucket.get(pod.name)
            if current is None:
                return False
            del bucket[pod.name]
            self._recompute()
            await self.colors.release(current.color)
        logger.debug("Pod removed", pod=str(pod))
        return True

    async def layout(self) -> Layout:
        """Current alignment values."""
        async with self._lock:
            return Layout(self._padding, self._show_namespace, self._count())

    def _count(self) -> int:
        return sum(len(pods) for pods in self._pods.values())

    async def snapshot(self) -> List[Pod]:
        """Followed pods, namespace by namespace."""
        async with self._lock:
            return [pod for pods in self._pods.values() for pod in pods.values()]

    async def contains(self, pod: Pod) -> bool:
        async with self._lock:
            return pod.name in self._pods.get(pod.namespace.name, {})

    @property
    def padding(self) -> int:
        return self._padding

    @property
    def show_namespace(self) -> bool:
        return self._show_namespace

    def __len__(self) -> int:
        return self._count()
