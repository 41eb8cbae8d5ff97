"""Cluster provider interface for RBAC provisioning operations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum


class ResourceKind(str, Enum):
    """Kinds of cluster objects the provisioner reconciles."""

    NAMESPACE = "Namespace"
    SERVICE_ACCOUNT = "ServiceAccount"
    CLUSTER_ROLE = "ClusterRole"
    CLUSTER_ROLE_BINDING = "ClusterRoleBinding"

    @property
    def namespaced(self) -> bool:
        return self is ResourceKind.SERVICE_ACCOUNT


@dataclass(frozen=True)
class PolicyRuleSpec:
    """A single RBAC rule."""

    verbs: list[str]
    api_groups: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)
    non_resource_urls: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class NamespaceSpec:
    """Desired namespace."""

    name: str
    kind: ResourceKind = field(default=ResourceKind.NAMESPACE, init=False)


@dataclass(frozen=True)
class ServiceAccountSpec:
    """Desired service account."""

    name: str
    namespace: str
    kind: ResourceKind = field(default=ResourceKind.SERVICE_ACCOUNT, init=False)


@dataclass(frozen=True)
class ClusterRoleSpec:
    """Desired cluster role."""

    name: str
    rules: list[PolicyRuleSpec]
    kind: ResourceKind = field(default=ResourceKind.CLUSTER_ROLE, init=False)


@dataclass(frozen=True)
class ClusterRoleBindingSpec:
    """Desired binding of a cluster role to a service account."""

    name: str
    role_name: str
    service_account: str
    namespace: str
    kind: ResourceKind = field(default=ResourceKind.CLUSTER_ROLE_BINDING, init=False)


ResourceSpec = NamespaceSpec | ServiceAccountSpec | ClusterRoleSpec | ClusterRoleBindingSpec


@dataclass(frozen=True)
class ClusterInfo:
    """Connection details of the active cluster context."""

    context_name: str
    cluster_name: str
    server_url: str
    ca_data: str


@dataclass(frozen=True)
class BindingInfo:
    """Role reference and service account subjects of an existing binding."""

    name: str
    role_name: str
    # (namespace, name) of each ServiceAccount subject
    service_accounts: list[tuple[str, str]] = field(default_factory=list)

    def binds(self, role_name: str, service_account: str, namespace: str) -> bool:
        return (
            self.role_name == role_name
            and (namespace, service_account) in self.service_accounts
        )


@dataclass
class PermissionRule:
    """Normalized rule from a self rules review."""

    verbs: list[str]
    api_groups: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)
    resource_names: list[str] = field(default_factory=list)
    non_resource_urls: list[str] = field(default_factory=list)

    def describe(self) -> str:
        """Render the rule in a ``kubectl auth can-i --list`` like form."""
        verbs = ",".join(self.verbs)
        if self.non_resource_urls:
            return f"{','.join(self.non_resource_urls)} [{verbs}]"

        targets = []
        for resource in self.resources or ["*"]:
            groups = self.api_groups or [""]
            for group in groups:
                targets.append(f"{resource}.{group}" if group else resource)
        names = f" {','.join(self.resource_names)}" if self.resource_names else ""
        return f"{','.join(targets)}{names} [{verbs}]"


class ClusterProvider(ABC):
    """Abstract interface for the cluster operations adminkit needs.

    Implementations must be synchronous; every call blocks until the API
    server answers. Errors surface as ClusterProviderError, with
    ResourceExistsError reserved for create conflicts.
    """

    @abstractmethod
    def exists(self, kind: ResourceKind, name: str, namespace: str | None = None) -> bool:
        """Check whether an object exists.

        Args:
            kind: Object kind
            name: Object name
            namespace: Namespace for namespaced kinds

        Returns:
            True if the object exists

        Raises:
            ClusterProviderError: If the lookup fails for a reason other than not-found
        """

    @abstractmethod
    def create(self, spec: ResourceSpec) -> None:
        """Create an object.

        Args:
            spec: Desired object

        Raises:
            ResourceExistsError: If the object already exists
            ClusterProviderError: If creation fails
        """

    @abstractmethod
    def get_binding(self, name: str) -> BindingInfo | None:
        """Read a cluster role binding.

        Returns:
            The binding, or None if it does not exist

        Raises:
            ClusterProviderError: If the lookup fails for a reason other than not-found
        """

    @abstractmethod
    def issue_token(
        self, service_account: str, namespace: str, duration: timedelta | None = None
    ) -> str:
        """Issue a bearer token through the TokenRequest API.

        Args:
            service_account: Service account name
            namespace: Service account namespace
            duration: Requested lifetime; None lets the API server choose

        Returns:
            Bearer token

        Raises:
            ClusterProviderError: If the request fails
        """

    @abstractmethod
    def get_cluster_info(self) -> ClusterInfo:
        """Resolve endpoint and CA data for the active context.

        Raises:
            ClusterProviderError: If endpoint or CA data cannot be resolved
        """

    @abstractmethod
    def get_server_minor_version(self) -> int | None:
        """Get the API server minor version, or None when it cannot be determined."""

    @abstractmethod
    def is_reachable(self) -> bool:
        """Check whether the API server answers."""

    @abstractmethod
    def get_service_account_secrets(self, name: str, namespace: str) -> list[str]:
        """List secret names linked to a service account."""

    @abstractmethod
    def read_secret_token(self, name: str, namespace: str) -> str | None:
        """Read the decoded token of a service-account-token secret.

        Returns:
            Token text, or None if the secret is not a token secret or has no token yet
        """

    @abstractmethod
    def can_i(
        self,
        verb: str,
        resource: str,
        namespace: str | None = None,
        group: str = "",
    ) -> bool:
        """Ask the API server whether the caller may perform an action."""

    @abstractmethod
    def list_permissions(self, namespace: str) -> list[PermissionRule]:
        """List the caller's effective rules in a namespace."""

    @abstractmethod
    def list_nodes(self) -> list[str]:
        """List node names."""

    @abstractmethod
    def list_cluster_roles(self) -> list[str]:
        """List cluster role names."""

    @abstractmethod
    def list_service_accounts(self, namespace: str) -> list[str]:
        """List service account names in a namespace."""

    @abstractmethod
    def current_context(self) -> str | None:
        """Name of the kubeconfig context in use."""
