"""Kubernetes client for RBAC provisioning operations."""

import base64
from pathlib import Path

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.client.models import (
    V1ClusterRole,
    V1ClusterRoleBinding,
    V1Namespace,
    V1ObjectMeta,
    V1PolicyRule,
    V1Secret,
    V1ServiceAccount,
    V1SubjectRulesReviewStatus,
    VersionInfo,
)

from adminkit.core.exceptions import KubernetesError
from adminkit.utils.logging import get_logger

logger = get_logger(__name__)

IN_CLUSTER = "in-cluster"
RBAC_API_GROUP = "rbac.authorization.k8s.io"


class KubernetesClient:
    """Kubernetes client wrapper.

    Each instance owns its own ApiClient, so several clients built from
    different kubeconfig files can coexist in one process.
    """

    def __init__(self, kubeconfig_path: str | None = None, context: str | None = None):
        """Initialize Kubernetes client.

        Args:
            kubeconfig_path: Path to kubeconfig file (optional)
            context: Kubernetes context to use (optional)
        """
        self.kubeconfig_path = kubeconfig_path
        try:
            try:
                self.api_client = config.new_client_from_config(
                    config_file=kubeconfig_path, context=context
                )
                self.context_name, self.cluster_name = self._resolve_context(
                    kubeconfig_path, context
                )
            except config.ConfigException:
                if kubeconfig_path:
                    raise
                # No usable kubeconfig; fall back to the pod's service account
                configuration = client.Configuration()
                config.load_incluster_config(client_configuration=configuration)
                self.api_client = client.ApiClient(configuration)
                self.context_name, self.cluster_name = IN_CLUSTER, IN_CLUSTER

            self.core_v1 = client.CoreV1Api(self.api_client)
            self.rbac_v1 = client.RbacAuthorizationV1Api(self.api_client)
            self.authorization_v1 = client.AuthorizationV1Api(self.api_client)
            self.version_api = client.VersionApi(self.api_client)

            logger.debug(
                "k8s_client_initialized",
                kubeconfig=kubeconfig_path,
                context=self.context_name,
            )

        except Exception as e:
            logger.error("k8s_client_initialization_failed", error=str(e))
            raise KubernetesError("Failed to initialize Kubernetes client") from e

    @staticmethod
    def _resolve_context(kubeconfig_path: str | None, context: str | None) -> tuple[str, str]:
        """Find the context and cluster names the client was built from."""
        contexts, active = config.list_kube_config_contexts(config_file=kubeconfig_path)
        selected = active
        if context:
            selected = next((c for c in contexts if c.get("name") == context), None)
        if not selected:
            raise config.ConfigException(f"Context {context or '<current>'} not found")
        return selected["name"], selected.get("context", {}).get("cluster", selected["name"])

    # ------------------------------------------------------------------
    # Connection details
    # ------------------------------------------------------------------

    @property
    def server_url(self) -> str | None:
        """API server endpoint of the active context."""
        return self.api_client.configuration.host or None

    def get_ca_data(self) -> str | None:
        """Base64 CA bundle of the active context.

        Returns:
            Base64 text, or None when the context carries no CA

        Raises:
            KubernetesError: If the CA file cannot be read
        """
        ca_path = self.api_client.configuration.ssl_ca_cert
        if not ca_path:
            return None
        try:
            ca_bytes = Path(ca_path).read_bytes()
        except OSError as e:
            logger.error("read_ca_failed", path=ca_path, error=str(e))
            raise KubernetesError(f"Failed to read CA certificate {ca_path}: {e}") from e
        return base64.b64encode(ca_bytes).decode("ascii")

    def get_version(self) -> VersionInfo:
        """Get the API server version.

        Raises:
            KubernetesError: If the version endpoint cannot be queried
        """
        try:
            version = self.version_api.get_code()
            logger.debug("server_version_retrieved", major=version.major, minor=version.minor)
            return version
        except ApiException as e:
            logger.error("get_version_failed", status=e.status, reason=e.reason)
            raise KubernetesError(f"Failed to get server version: {e.reason}", e.status) from e
        except Exception as e:
            # Connection errors surface from urllib3, not as ApiException
            logger.error("get_version_failed", error=str(e))
            raise KubernetesError(f"Failed to reach API server: {e}") from e

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _exists(self, kind: str, read, *args: str) -> bool:
        try:
            read(*args)
            return True
        except ApiException as e:
            if e.status == 404:
                return False
            logger.error("read_failed", kind=kind, name=args[0], status=e.status, reason=e.reason)
            raise KubernetesError(f"Failed to read {kind} {args[0]}: {e.reason}", e.status) from e
        except Exception as e:
            logger.error("read_failed", kind=kind, name=args[0], error=str(e))
            raise KubernetesError(f"Failed to read {kind} {args[0]}: {e}") from e

    def namespace_exists(self, name: str) -> bool:
        return self._exists("namespace", self.core_v1.read_namespace, name)

    def service_account_exists(self, name: str, namespace: str) -> bool:
        return self._exists(
            "serviceaccount", self.core_v1.read_namespaced_service_account, name, namespace
        )

    def cluster_role_exists(self, name: str) -> bool:
        return self._exists("clusterrole", self.rbac_v1.read_cluster_role, name)

    def cluster_role_binding_exists(self, name: str) -> bool:
        return self._exists("clusterrolebinding", self.rbac_v1.read_cluster_role_binding, name)

    def get_cluster_role_binding(self, name: str) -> V1ClusterRoleBinding | None:
        """Get a cluster role binding, or None if it does not exist.

        Raises:
            KubernetesError: If the binding cannot be read
        """
        try:
            return self.rbac_v1.read_cluster_role_binding(name=name)
        except ApiException as e:
            if e.status == 404:
                return None
            logger.error("get_cluster_role_binding_failed", name=name, status=e.status)
            raise KubernetesError(
                f"Failed to get cluster role binding {name}: {e.reason}", e.status
            ) from e
        except Exception as e:
            logger.error("get_cluster_role_binding_failed", name=name, error=str(e))
            raise KubernetesError(f"Failed to get cluster role binding {name}: {e}") from e

    def get_service_account(self, name: str, namespace: str) -> V1ServiceAccount:
        """Get a service account.

        Raises:
            KubernetesError: If the service account cannot be retrieved
        """
        try:
            return self.core_v1.read_namespaced_service_account(name=name, namespace=namespace)
        except ApiException as e:
            logger.error(
                "get_service_account_failed",
                name=name,
                namespace=namespace,
                status=e.status,
            )
            raise KubernetesError(
                f"Failed to get service account {namespace}/{name}: {e.reason}", e.status
            ) from e
        except Exception as e:
            logger.error("get_service_account_failed", name=name, namespace=namespace, error=str(e))
            raise KubernetesError(f"Failed to get service account {namespace}/{name}: {e}") from e

    def get_secret(self, name: str, namespace: str) -> V1Secret:
        """Get a secret.

        Raises:
            KubernetesError: If the secret cannot be retrieved
        """
        try:
            return self.core_v1.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as e:
            logger.error("get_secret_failed", name=name, namespace=namespace, status=e.status)
            raise KubernetesError(
                f"Failed to get secret {namespace}/{name}: {e.reason}", e.status
            ) from e
        except Exception as e:
            logger.error("get_secret_failed", name=name, namespace=namespace, error=str(e))
            raise KubernetesError(f"Failed to get secret {namespace}/{name}: {e}") from e

    def list_nodes(self, limit: int | None = None) -> list[str]:
        """List node names.

        Raises:
            KubernetesError: If nodes cannot be listed
        """
        try:
            response = self.core_v1.list_node(limit=limit)
            names = [node.metadata.name for node in response.items]
            logger.debug("nodes_retrieved", count=len(names))
            return names
        except ApiException as e:
            logger.warning("list_nodes_failed", status=e.status, reason=e.reason)
            raise KubernetesError(f"Failed to list nodes: {e.reason}", e.status) from e
        except Exception as e:
            logger.warning("list_nodes_failed", error=str(e))
            raise KubernetesError(f"Failed to list nodes: {e}") from e

    def list_cluster_roles(self) -> list[str]:
        """List cluster role names.

        Raises:
            KubernetesError: If cluster roles cannot be listed
        """
        try:
            response = self.rbac_v1.list_cluster_role()
            return [role.metadata.name for role in response.items]
        except ApiException as e:
            logger.error("list_cluster_roles_failed", status=e.status, reason=e.reason)
            raise KubernetesError(f"Failed to list cluster roles: {e.reason}", e.status) from e
        except Exception as e:
            logger.error("list_cluster_roles_failed", error=str(e))
            raise KubernetesError(f"Failed to list cluster roles: {e}") from e

    def list_service_accounts(self, namespace: str) -> list[str]:
        """List service account names in a namespace.

        Raises:
            KubernetesError: If service accounts cannot be listed
        """
        try:
            response = self.core_v1.list_namespaced_service_account(namespace=namespace)
            return [sa.metadata.name for sa in response.items]
        except ApiException as e:
            logger.error(
                "list_service_accounts_failed",
                namespace=namespace,
                status=e.status,
                reason=e.reason,
            )
            raise KubernetesError(
                f"Failed to list service accounts in {namespace}: {e.reason}", e.status
            ) from e
        except Exception as e:
            logger.error("list_service_accounts_failed", namespace=namespace, error=str(e))
            raise KubernetesError(f"Failed to list service accounts in {namespace}: {e}") from e

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _create(self, kind: str, name: str, create, **kwargs) -> None:
        try:
            create(**kwargs)
            logger.info(f"{kind}_created", name=name, namespace=kwargs.get("namespace"))
        except ApiException as e:
            level = logger.info if e.status == 409 else logger.error
            level(f"create_{kind}_failed", name=name, status=e.status, reason=e.reason)
            raise KubernetesError(f"Failed to create {kind} {name}: {e.reason}", e.status) from e
        except Exception as e:
            logger.error(f"create_{kind}_failed", name=name, error=str(e))
            raise KubernetesError(f"Failed to create {kind} {name}: {e}") from e

    def create_namespace(self, name: str) -> None:
        body = V1Namespace(metadata=V1ObjectMeta(name=name))
        self._create("namespace", name, self.core_v1.create_namespace, body=body)

    def create_service_account(self, name: str, namespace: str) -> None:
        body = V1ServiceAccount(metadata=V1ObjectMeta(name=name, namespace=namespace))
        self._create(
            "service_account",
            name,
            self.core_v1.create_namespaced_service_account,
            namespace=namespace,
            body=body,
        )

    def create_cluster_role(self, name: str, rules: list[V1PolicyRule]) -> None:
        body = V1ClusterRole(metadata=V1ObjectMeta(name=name), rules=rules)
        self._create("cluster_role", name, self.rbac_v1.create_cluster_role, body=body)

    def create_cluster_role_binding(
        self, name: str, role_name: str, service_account: str, namespace: str
    ) -> None:
        body = V1ClusterRoleBinding(
            metadata=V1ObjectMeta(name=name),
            role_ref=client.V1RoleRef(
                api_group=RBAC_API_GROUP, kind="ClusterRole", name=role_name
            ),
            subjects=[
                client.RbacV1Subject(
                    kind="ServiceAccount", name=service_account, namespace=namespace
                )
            ],
        )
        self._create(
            "cluster_role_binding", name, self.rbac_v1.create_cluster_role_binding, body=body
        )

    def create_token(
        self, service_account: str, namespace: str, expiration_seconds: int | None = None
    ) -> str:
        """Request a bound token for a service account.

        Args:
            service_account: Service account name
            namespace: Namespace
            expiration_seconds: Requested lifetime; None lets the API server choose

        Returns:
            Bearer token

        Raises:
            KubernetesError: If the token request fails
        """
        body = client.AuthenticationV1TokenRequest(
            spec=client.V1TokenRequestSpec(audiences=[], expiration_seconds=expiration_seconds)
        )
        try:
            response = self.core_v1.create_namespaced_service_account_token(
                name=service_account, namespace=namespace, body=body
            )
        except ApiException as e:
            logger.warning(
                "token_request_failed",
                service_account=service_account,
                namespace=namespace,
                expiration_seconds=expiration_seconds,
                status=e.status,
                reason=e.reason,
            )
            raise KubernetesError(
                f"Failed to create token for {namespace}/{service_account}: {e.reason}", e.status
            ) from e
        except Exception as e:
            logger.warning(
                "token_request_failed",
                service_account=service_account,
                namespace=namespace,
                error=str(e),
            )
            raise KubernetesError(
                f"Failed to create token for {namespace}/{service_account}: {e}"
            ) from e

        logger.info(
            "token_issued",
            service_account=service_account,
            namespace=namespace,
            expiration_seconds=expiration_seconds,
        )
        return response.status.token

    # ------------------------------------------------------------------
    # Self reviews
    # ------------------------------------------------------------------

    def self_subject_access_review(
        self,
        verb: str,
        resource: str,
        namespace: str | None = None,
        group: str = "",
    ) -> bool:
        """Check whether the caller may perform an action.

        Raises:
            KubernetesError: If the review cannot be submitted
        """
        body = client.V1SelfSubjectAccessReview(
            spec=client.V1SelfSubjectAccessReviewSpec(
                resource_attributes=client.V1ResourceAttributes(
                    verb=verb, resource=resource, group=group, namespace=namespace
                )
            )
        )
        try:
            response = self.authorization_v1.create_self_subject_access_review(body=body)
        except ApiException as e:
            logger.error("access_review_failed", verb=verb, resource=resource, status=e.status)
            raise KubernetesError(f"Failed to review access: {e.reason}", e.status) from e
        except Exception as e:
            logger.error("access_review_failed", verb=verb, resource=resource, error=str(e))
            raise KubernetesError(f"Failed to review access: {e}") from e

        allowed = bool(response.status.allowed)
        logger.debug(
            "access_review", verb=verb, resource=resource, namespace=namespace, allowed=allowed
        )
        return allowed

    def self_subject_rules_review(self, namespace: str) -> V1SubjectRulesReviewStatus:
        """List the caller's rules in a namespace.

        Raises:
            KubernetesError: If the review cannot be submitted
        """
        body = client.V1SelfSubjectRulesReview(
            spec=client.V1SelfSubjectRulesReviewSpec(namespace=namespace)
        )
        try:
            response = self.authorization_v1.create_self_subject_rules_review(body=body)
        except ApiException as e:
            logger.error("rules_review_failed", namespace=namespace, status=e.status)
            raise KubernetesError(f"Failed to review rules: {e.reason}", e.status) from e
        except Exception as e:
            logger.error("rules_review_failed", namespace=namespace, error=str(e))
            raise KubernetesError(f"Failed to review rules: {e}") from e
        return response.status
