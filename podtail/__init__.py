"""podtail.

Follow the logs of many Kubernetes pods at once, one color per pod.
"""

__version__ = "0.1.0"
__description__ = "Multiplex the logs of many Kubernetes pods into one colored stream"

from .core.config import Config
from .core.exceptions import PodtailError

__all__ = [
    "Config",
    "PodtailError",
    "__version__",
    "__description__",
]
