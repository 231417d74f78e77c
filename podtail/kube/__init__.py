"""Kubernetes integration."""

from .kubernetes_client import KubernetesClient, PodInfo

__all__ = ["KubernetesClient", "PodInfo"]
