"""Core module initialization."""

from .config import Config, StreamSettings
from .exceptions import (ConfigurationError, InconsistentStateError,
                         KubernetesConnectionError, KubernetesError,
                         LogStreamError, PodNotFoundError, PodtailError)

__all__ = [
    "Config",
    "StreamSettings",
    "PodtailError",
    "ConfigurationError",
    "KubernetesError",
    "KubernetesConnectionError",
    "PodNotFoundError",
    "LogStreamError",
    "InconsistentStateError",
]
