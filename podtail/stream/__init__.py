"""Pod discovery and per-pod log stream supervision."""

from .discovery import DiscoveryLoop
from .registry import Namespace, Pod, PodRegistry
from .supervisor import StreamSupervisor

__all__ = [
    "DiscoveryLoop",
    "Namespace",
    "Pod",
    "PodRegistry",
    "StreamSupervisor",
]
