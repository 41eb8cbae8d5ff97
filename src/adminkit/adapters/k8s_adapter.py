"""Kubernetes adapter implementing ClusterProvider interface."""

import base64
import re
from datetime import timedelta

from kubernetes.client.models import V1PolicyRule

from adminkit.clients.kubernetes_client import KubernetesClient
from adminkit.core.exceptions import KubernetesError
from adminkit.interfaces.cluster_provider import (
    BindingInfo,
    ClusterInfo,
    ClusterProvider,
    ClusterRoleBindingSpec,
    ClusterRoleSpec,
    NamespaceSpec,
    PermissionRule,
    ResourceKind,
    ResourceSpec,
    ServiceAccountSpec,
)
from adminkit.interfaces.exceptions import ClusterProviderError, ResourceExistsError
from adminkit.utils.logging import get_logger

logger = get_logger(__name__)

SERVICE_ACCOUNT_TOKEN_TYPE = "kubernetes.io/service-account-token"

_LEADING_DIGITS = re.compile(r"^(\d+)")


def parse_minor_version(minor: str | None) -> int | None:
    """Parse a server minor version such as ``27`` or ``27+``.

    Returns:
        The numeric minor version, or None if the text holds no leading digits
    """
    match = _LEADING_DIGITS.match((minor or "").strip())
    return int(match.group(1)) if match else None


class KubernetesAdapter(ClusterProvider):
    """Adapter wrapping KubernetesClient to implement ClusterProvider interface.

    This adapter translates resource specs into kubernetes client models and
    normalizes responses, hiding kubernetes Python client details.
    """

    def __init__(self, kubeconfig_path: str | None = None, context: str | None = None):
        """Initialize Kubernetes adapter.

        Args:
            kubeconfig_path: Path to kubeconfig file (optional)
            context: Kubernetes context to use (optional)
        """
        try:
            self.client = KubernetesClient(kubeconfig_path=kubeconfig_path, context=context)
            logger.debug("k8s_adapter_initialized", context=context)
        except Exception as e:
            raise ClusterProviderError(f"Failed to initialize K8s adapter: {e}") from e

    def exists(self, kind: ResourceKind, name: str, namespace: str | None = None) -> bool:
        try:
            if kind is ResourceKind.NAMESPACE:
                return self.client.namespace_exists(name)
            if kind is ResourceKind.SERVICE_ACCOUNT:
                if not namespace:
                    raise ClusterProviderError("Service account lookup requires a namespace")
                return self.client.service_account_exists(name, namespace)
            if kind is ResourceKind.CLUSTER_ROLE:
                return self.client.cluster_role_exists(name)
            if kind is ResourceKind.CLUSTER_ROLE_BINDING:
                return self.client.cluster_role_binding_exists(name)
        except KubernetesError as e:
            raise ClusterProviderError(f"Failed to check {kind.value} {name}: {e}") from e

        raise ClusterProviderError(f"Unsupported resource kind: {kind}")

    def create(self, spec: ResourceSpec) -> None:
        try:
            if isinstance(spec, NamespaceSpec):
                self.client.create_namespace(spec.name)
            elif isinstance(spec, ServiceAccountSpec):
                self.client.create_service_account(spec.name, spec.namespace)
            elif isinstance(spec, ClusterRoleSpec):
                rules = [
                    V1PolicyRule(
                        verbs=rule.verbs,
                        api_groups=rule.api_groups or None,
                        resources=rule.resources or None,
                        non_resource_ur_ls=rule.non_resource_urls or None,
                    )
                    for rule in spec.rules
                ]
                self.client.create_cluster_role(spec.name, rules)
            elif isinstance(spec, ClusterRoleBindingSpec):
                self.client.create_cluster_role_binding(
                    spec.name, spec.role_name, spec.service_account, spec.namespace
                )
            else:
                raise ClusterProviderError(f"Unsupported resource spec: {spec!r}")
        except KubernetesError as e:
            if e.status == 409:
                raise ResourceExistsError(f"{spec.kind.value} {spec.name} already exists") from e
            raise ClusterProviderError(
                f"Failed to create {spec.kind.value} {spec.name}: {e}"
            ) from e

    def get_binding(self, name: str) -> BindingInfo | None:
        try:
            binding = self.client.get_cluster_role_binding(name)
        except KubernetesError as e:
            raise ClusterProviderError(f"Failed to read ClusterRoleBinding {name}: {e}") from e
        if binding is None:
            return None

        return BindingInfo(
            name=name,
            role_name=binding.role_ref.name if binding.role_ref else "",
            service_accounts=[
                (subject.namespace or "", subject.name)
                for subject in binding.subjects or []
                if subject.kind == "ServiceAccount"
            ],
        )

    def issue_token(
        self, service_account: str, namespace: str, duration: timedelta | None = None
    ) -> str:
        expiration = int(duration.total_seconds()) if duration is not None else None
        try:
            token = self.client.create_token(service_account, namespace, expiration)
        except KubernetesError as e:
            raise ClusterProviderError(str(e)) from e
        if not token:
            raise ClusterProviderError(
                f"Token request for {namespace}/{service_account} returned no token"
            )
        return token

    def get_cluster_info(self) -> ClusterInfo:
        server = self.client.server_url
        try:
            ca_data = self.client.get_ca_data()
        except KubernetesError as e:
            raise ClusterProviderError(str(e)) from e

        if not server:
            raise ClusterProviderError(
                f"No API server endpoint for context {self.client.context_name}"
            )
        if not ca_data:
            raise ClusterProviderError(
                f"No certificate authority data for context {self.client.context_name}"
            )

        return ClusterInfo(
            context_name=self.client.context_name,
            cluster_name=self.client.cluster_name,
            server_url=server,
            ca_data=ca_data,
        )

    def get_server_minor_version(self) -> int | None:
        try:
            version = self.client.get_version()
        except KubernetesError as e:
            logger.warning("server_version_unavailable", error=str(e))
            return None

        minor = parse_minor_version(version.minor)
        if minor is None:
            logger.warning("server_minor_version_unparseable", minor=version.minor)
        return minor

    def is_reachable(self) -> bool:
        try:
            self.client.get_version()
            return True
        except KubernetesError:
            return False

    def get_service_account_secrets(self, name: str, namespace: str) -> list[str]:
        try:
            service_account = self.client.get_service_account(name, namespace)
        except KubernetesError as e:
            raise ClusterProviderError(str(e)) from e
        return [ref.name for ref in service_account.secrets or [] if ref.name]

    def read_secret_token(self, name: str, namespace: str) -> str | None:
        try:
            secret = self.client.get_secret(name, namespace)
        except KubernetesError as e:
            raise ClusterProviderError(str(e)) from e

        if secret.type != SERVICE_ACCOUNT_TOKEN_TYPE:
            return None
        encoded = (secret.data or {}).get("token")
        if not encoded:
            return None
        return base64.b64decode(encoded).decode("utf-8")

    def can_i(
        self,
        verb: str,
        resource: str,
        namespace: str | None = None,
        group: str = "",
    ) -> bool:
        try:
            return self.client.self_subject_access_review(verb, resource, namespace, group)
        except KubernetesError as e:
            raise ClusterProviderError(str(e)) from e

    def list_permissions(self, namespace: str) -> list[PermissionRule]:
        try:
            status = self.client.self_subject_rules_review(namespace)
        except KubernetesError as e:
            raise ClusterProviderError(str(e)) from e

        rules = [
            PermissionRule(
                verbs=list(rule.verbs or []),
                api_groups=list(rule.api_groups or []),
                resources=list(rule.resources or []),
                resource_names=list(rule.resource_names or []),
            )
            for rule in status.resource_rules or []
        ]
        rules.extend(
            PermissionRule(
                verbs=list(rule.verbs or []),
                non_resource_urls=list(rule.non_resource_ur_ls or []),
            )
            for rule in status.non_resource_rules or []
        )
        if status.incomplete:
            logger.info("rules_review_incomplete", namespace=namespace)
        return rules

    def list_nodes(self) -> list[str]:
        try:
            return self.client.list_nodes()
        except KubernetesError as e:
            raise ClusterProviderError(str(e)) from e

    def list_cluster_roles(self) -> list[str]:
        try:
            return self.client.list_cluster_roles()
        except KubernetesError as e:
            raise ClusterProviderError(str(e)) from e

    def list_service_accounts(self, namespace: str) -> list[str]:
        try:
            return self.client.list_service_accounts(namespace)
        except KubernetesError as e:
            raise ClusterProviderError(str(e)) from e

    def current_context(self) -> str | None:
        return self.client.context_name
