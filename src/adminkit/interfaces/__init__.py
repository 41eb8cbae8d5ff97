"""Interface definitions for adminkit cluster access."""

from adminkit.interfaces.cluster_provider import (
    BindingInfo,
    ClusterInfo,
    ClusterProvider,
    ClusterRoleBindingSpec,
    ClusterRoleSpec,
    NamespaceSpec,
    PermissionRule,
    PolicyRuleSpec,
    ResourceKind,
    ResourceSpec,
    ServiceAccountSpec,
)

__all__ = [
    "BindingInfo",
    "ClusterInfo",
    "ClusterProvider",
    "ClusterRoleBindingSpec",
    "ClusterRoleSpec",
    "NamespaceSpec",
    "PermissionRule",
    "PolicyRuleSpec",
    "ResourceKind",
    "ResourceSpec",
    "ServiceAccountSpec",
]
