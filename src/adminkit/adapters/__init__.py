"""Adapter implementations for external services."""

from adminkit.adapters.k8s_adapter import KubernetesAdapter

__all__ = [
    "KubernetesAdapter",
]
