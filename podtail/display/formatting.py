"""Line filtering and prefix alignment."""

from typing import Optional

from ..core.config import StreamSettings


def apply_filters(line: str, settings: StreamSettings) -> Optional[str]:
    """Return the line to print, or None if it must be dropped.

    The inverse filter wins over the filter; the replacement is applied
    to the lines that survive both.
    """
    if settings.inv_filter is not None and settings.inv_filter.search(line):
        return None
    if settings.filter is not None and not settings.filter.search(line):
        return None
    if settings.replace_pattern is not None:
        line = settings.replace_pattern.sub(settings.replace_value or "", line)
    return line


def pod_label(name: str, namespace: str, show_namespace: bool) -> str:
    """Name of a pod as displayed, ``namespace/name`` when namespaces vary."""
    if show_namespace:
        return f"{namespace}/{name}"
    return name


def format_line(
    name: str, namespace: str, line: str, padding: int, show_namespace: bool
) -> str:
    """Prefix ``line`` with the pod label, left aligned on ``padding``."""
    label = pod_label(name, namespace, show_namespace)
    return f"{label.ljust(padding)}: {line}"
