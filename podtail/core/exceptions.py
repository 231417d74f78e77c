"""Custom exceptions for podtail."""


class PodtailError(Exception):
    """Base exception for podtail."""

    pass


class ConfigurationError(PodtailError):
    """Raised when the settings cannot be validated."""

    pass


class KubernetesError(PodtailError):
    """Raised when there's a Kubernetes API error."""

    pass


class KubernetesConnectionError(KubernetesError):
    """Raised when there's a connection error to Kubernetes cluster."""

    pass


class PodNotFoundError(KubernetesError):
    """Raised when a requested pod or namespace is not found."""

    pass


class LogStreamError(PodtailError):
    """Raised when a pod log stream fails or yields unreadable data."""

    pass


class InconsistentStateError(PodtailError):
    """Raised when internal bookkeeping no longer matches itself.

    This always denotes a bug and is never recovered from.
    """

    pass
