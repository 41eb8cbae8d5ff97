"""Read-only RBAC diagnostics for the current kubeconfig context."""

from adminkit.core.exceptions import PreconditionFailedError
from adminkit.core.models import DiagnosticReport
from adminkit.interfaces.cluster_provider import ClusterProvider, PermissionRule
from adminkit.interfaces.exceptions import ClusterProviderError
from adminkit.utils.logging import get_logger

logger = get_logger(__name__)

ADMIN_ROLE_MARKERS = ("admin", "aks-", "azure-")
WELL_KNOWN_ROLES = ("cluster-admin", "admin", "edit", "view")
PRIVILEGED_VERBS = {"*", "create", "delete", "update"}
MAX_PRIVILEGED_RULES = 20
SYSTEM_NAMESPACE = "kube-system"
RULES_NAMESPACE = "default"

AKS_HINTS = [
    "If using Azure AD integration, you might need to use:\n"
    "  az aks get-credentials --resource-group <rg> --name <cluster> --admin",
    "Common AKS admin roles:\n"
    "  - Azure Kubernetes Service Cluster Admin Role\n"
    "  - Azure Kubernetes Service Cluster User Role\n"
    "  - Azure Kubernetes Service RBAC Admin\n"
    "  - Azure Kubernetes Service RBAC Cluster Admin",
]


def is_admin_like(role_name: str) -> bool:
    return any(marker in role_name for marker in ADMIN_ROLE_MARKERS)


def is_privileged(rule: PermissionRule) -> bool:
    return bool(PRIVILEGED_VERBS.intersection(rule.verbs))


class RBACInspector:
    """Collects a DiagnosticReport; never mutates the cluster."""

    def __init__(self, provider: ClusterProvider):
        self.provider = provider

    def inspect(self) -> DiagnosticReport:
        """Inspect the caller's RBAC situation.

        Individual lookups that fail are logged and left empty in the report.

        Raises:
            PreconditionFailedError: If the cluster is unreachable
        """
        report = DiagnosticReport(context_name=self.provider.current_context())

        report.reachable = self.provider.is_reachable()
        if not report.reachable:
            raise PreconditionFailedError("Not connected to a Kubernetes cluster")

        try:
            roles = sorted(self.provider.list_cluster_roles())
            report.admin_roles = [name for name in roles if is_admin_like(name)]
            report.well_known_roles = [name for name in WELL_KNOWN_ROLES if name in roles]
            report.system_role_count = sum(1 for name in roles if name.startswith("system:"))
        except ClusterProviderError as e:
            logger.warning("list_cluster_roles_failed", error=str(e))

        try:
            report.has_wildcard_access = self.provider.can_i("*", "*")
        except ClusterProviderError as e:
            logger.warning("wildcard_access_check_failed", error=str(e))

        try:
            rules = self.provider.list_permissions(RULES_NAMESPACE)
            report.privileged_rules = [
                rule.describe() for rule in rules if is_privileged(rule)
            ][:MAX_PRIVILEGED_RULES]
        except ClusterProviderError as e:
            logger.warning("list_permissions_failed", error=str(e))

        try:
            report.service_accounts = sorted(self.provider.list_service_accounts(SYSTEM_NAMESPACE))
        except ClusterProviderError as e:
            logger.warning("list_service_accounts_failed", error=str(e))

        logger.info(
            "diagnostics_collected",
            context=report.context_name,
            admin_roles=len(report.admin_roles),
            wildcard=report.has_wildcard_access,
        )
        return report
