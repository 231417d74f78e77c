"""
Kubernetes client for pod listing and log streaming.

The official client is synchronous: every call runs in a worker thread so
the event loop keeps serving the other pod streams while one waits. Each
followed stream gets a reader thread of its own; one-shot calls share the
default executor.
"""

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

import kubernetes  # type: ignore[import-untyped]
from kubernetes.client import (  # type: ignore[import-untyped]
    ApiClient,
    ApiException,
    CoreV1Api,
    V1Pod,
    V1PodList,
)
from kubernetes.config import ConfigException  # type: ignore[import-untyped]
from kubernetes.watch.watch import iter_resp_lines  # type: ignore[import-untyped]

from ..core.exceptions import (
    KubernetesConnectionError,
    KubernetesError,
    LogStreamError,
    PodNotFoundError,
)
from ..core.models import PodDescriptor, LogOptions

logger = logging.getLogger(__name__)

SERVICE_ACCOUNT_NAMESPACE = Path(
    "/var/run/secrets/kubernetes.io/serviceaccount/namespace"
)
DEFAULT_NAMESPACE = "default"


class PodInfo(PodDescriptor):
    """Descriptor built from a Kubernetes V1Pod object."""

    @classmethod
    def from_pod(cls, pod: V1Pod) -> "PodInfo":
        """Initialize from a Kubernetes V1Pod object."""
        phase = pod.status.phase if pod.status else None
        return cls(
            name=pod.metadata.name or "NO_NAME",
            namespace=pod.metadata.namespace,
            phase=phase,
        )


def _wrap_api_error(e: ApiException, context: str) -> KubernetesError:
    if e.status == 404:
        return PodNotFoundError(f"{context}: not found")
    return KubernetesConnectionError(f"{context}: {e.status} {e.reason}")


class KubernetesClient:
    """Pod source backed by the Kubernetes Core V1 API."""

    def __init__(self, api_client: Optional[ApiClient] = None):
        """
        Initialize the Kubernetes client.

        Args:
            api_client: Optional configured API client. If None, the
                configuration is loaded on first use.
        """
        self._api_client = api_client
        self._core_v1_api: Optional[CoreV1Api] = None

    @classmethod
    def from_kubeconfig(cls, kubeconfig: Optional[str] = None) -> "KubernetesClient":
        """Build a client from a kubeconfig file, or infer the configuration.

        Without a file, the in-cluster service account is tried first, then
        the default kubeconfig.

        Raises:
            KubernetesConnectionError: If no configuration can be loaded.
        """
        try:
            if kubeconfig:
                api_client = kubernetes.config.new_client_from_config(
                    config_file=kubeconfig
                )
            else:
                try:
                    kubernetes.config.load_incluster_config()
                except ConfigException:
                    kubernetes.config.load_kube_config()
                api_client = ApiClient()
        except (ConfigException, OSError) as e:
            where = kubeconfig or "inferred configuration"
            raise KubernetesConnectionError(
                f"loading kubernetes configuration from {where}: {e}"
            ) from e
        return cls(api_client)

    @staticmethod
    def default_namespace(kubeconfig: Optional[str] = None) -> str:
        """Namespace of the current context, as kubectl would pick it."""
        if not kubeconfig and SERVICE_ACCOUNT_NAMESPACE.is_file():
            namespace = SERVICE_ACCOUNT_NAMESPACE.read_text(encoding="utf-8").strip()
            if namespace:
                return namespace
        try:
            _, active = kubernetes.config.list_kube_config_contexts(
                config_file=kubeconfig
            )
        except (ConfigException, OSError) as e:
            logger.debug(f"No kubeconfig context, using '{DEFAULT_NAMESPACE}': {e}")
            return DEFAULT_NAMESPACE
        return (active or {}).get("context", {}).get("namespace") or DEFAULT_NAMESPACE

    def _get_api(self) -> CoreV1Api:
        """Get or create the Kubernetes Core V1 API client."""
        if self._core_v1_api is None:
            if self._api_client is None:
                self._api_client = KubernetesClient.from_kubeconfig()._api_client
            self._core_v1_api = CoreV1Api(api_client=self._api_client)
        return self._core_v1_api

    async def list_pods(self, namespace: str) -> List[PodDescriptor]:
        """
        List pods in a namespace.

        Raises:
            PodNotFoundError: If the namespace does not exist.
            KubernetesConnectionError: If unable to connect to cluster.
        """
        context = f"listing pods in namespace '{namespace}'"
        try:
            api = self._get_api()
            response: V1PodList = await asyncio.to_thread(
                api.list_namespaced_pod, namespace=namespace
            )
        except ApiException as e:
            logger.error(f"Failed {context}: {e}")
            raise _wrap_api_error(e, context) from e
        except KubernetesError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error {context}: {e}")
            raise KubernetesConnectionError(f"{context}: {e}") from e

        pods = [PodInfo.from_pod(pod) for pod in response.items]
        logger.debug(f"Found {len(pods)} pods in namespace '{namespace}'")
        return pods

    async def is_running(self, namespace: str, name: str) -> bool:
        """
        Check if a pod is in the Running phase.

        A pod that no longer exists is not running.
        """
        context = f"reading status of pod '{namespace}/{name}'"
        try:
            api = self._get_api()
            pod: V1Pod = await asyncio.to_thread(
                api.read_namespaced_pod_status, name=name, namespace=namespace
            )
        except ApiException as e:
            if e.status == 404:
                return False
            raise _wrap_api_error(e, context) from e
        except KubernetesError:
            raise
        except Exception as e:
            raise KubernetesConnectionError(f"{context}: {e}") from e
        return PodInfo.from_pod(pod).is_running

    @staticmethod
    def _log_params(options: LogOptions) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "follow": options.follow,
            "timestamps": options.timestamps,
            "previous": options.previous,
        }
        if options.tail_lines is not None:
            params["tail_lines"] = options.tail_lines
        if options.since_seconds:
            params["since_seconds"] = options.since_seconds
        return params

    async def stream_lines(
        self, namespace: str, name: str, options: LogOptions
    ) -> AsyncIterator[str]:
        """
        Stream the log lines of a pod.

        Yields:
            Decoded log lines, without their line terminator.

        Raises:
            LogStreamError: If the stream cannot be opened or breaks.
        """
        stream_id = f"{namespace}/{name}"
        loop = asyncio.get_running_loop()
        # An idle pod blocks its reader indefinitely: never use the shared pool
        reader = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"log-{stream_id}")
        try:
            try:
                api = self._get_api()
                response = await loop.run_in_executor(
                    reader,
                    functools.partial(
                        api.read_namespaced_pod_log,
                        name=name,
                        namespace=namespace,
                        _preload_content=False,
                        **self._log_params(options),
                    ),
                )
            except ApiException as e:
                raise LogStreamError(
                    f"opening log stream of pod '{stream_id}': {e.status} {e.reason}"
                ) from e
            except Exception as e:
                raise LogStreamError(
                    f"opening log stream of pod '{stream_id}': {e}"
                ) from e
        except BaseException:
            reader.shutdown(wait=False)
            raise

        logger.debug(f"Log stream opened for {stream_id}")
        lines = iter_resp_lines(response)
        try:
            while True:
                try:
                    line = await loop.run_in_executor(reader, next, lines, None)
                except Exception as e:
                    raise LogStreamError(
                        f"reading log stream of pod '{stream_id}': {e}"
                    ) from e
                if line is None:
                    break
                yield line
        finally:
            response.close()
            response.release_conn()
            reader.shutdown(wait=False, cancel_futures=True)
            logger.debug(f"Log stream closed for {stream_id}")

    async def fetch_previous_lines(
        self, namespace: str, name: str, options: LogOptions
    ) -> List[str]:
        """
        Get a bounded set of log lines in one call.

        Raises:
            LogStreamError: If the logs cannot be read.
        """
        context = f"getting logs of pod '{namespace}/{name}'"
        try:
            api = self._get_api()
            raw_logs: str = await asyncio.to_thread(
                api.read_namespaced_pod_log,
                name=name,
                namespace=namespace,
                **self._log_params(options),
            )
        except ApiException as e:
            raise LogStreamError(f"{context}: {e.status} {e.reason}") from e
        except Exception as e:
            raise LogStreamError(f"{context}: {e}") from e

        return [line for line in (raw_logs or "").split("\n") if line]
