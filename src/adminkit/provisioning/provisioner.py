"""Identity provisioning: namespace, service account and cluster role binding."""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from adminkit.core.exceptions import PreconditionFailedError
from adminkit.core.models import (
    ProvisioningConfig,
    ProvisioningResult,
    ResourceAction,
    ResourceOutcome,
)
from adminkit.interfaces.cluster_provider import (
    ClusterProvider,
    ClusterRoleBindingSpec,
    ClusterRoleSpec,
    NamespaceSpec,
    PolicyRuleSpec,
    ResourceKind,
    ResourceSpec,
    ServiceAccountSpec,
)
from adminkit.interfaces.exceptions import ResourceExistsError
from adminkit.utils.logging import get_logger

logger = get_logger(__name__)

SUPERUSER_ROLE = "cluster-admin"

WILDCARD_RULES = [
    PolicyRuleSpec(verbs=["*"], api_groups=["*"], resources=["*"]),
    PolicyRuleSpec(verbs=["*"], non_resource_urls=["*"]),
]


class RepairAction(str, Enum):
    """Operator choices when the superuser role is missing."""

    CREATE_ROLE = "create-role"
    USE_ALTERNATE = "use-alternate"
    ABORT = "abort"


@dataclass(frozen=True)
class RepairDecision:
    """A repair choice, with the alternate role name for USE_ALTERNATE."""

    action: RepairAction
    role_name: str | None = None

    @classmethod
    def create_role(cls) -> "RepairDecision":
        return cls(RepairAction.CREATE_ROLE)

    @classmethod
    def use_alternate(cls, role_name: str) -> "RepairDecision":
        return cls(RepairAction.USE_ALTERNATE, role_name)

    @classmethod
    def abort(cls) -> "RepairDecision":
        return cls(RepairAction.ABORT)


# Called with the missing role name; returns the operator's choice.
DecisionProvider = Callable[[str], RepairDecision]


def abort_on_missing_role(role_name: str) -> RepairDecision:
    """Decision provider for non-interactive runs."""
    return RepairDecision.abort()


def binding_name_for(identity_name: str, role_name: str) -> str:
    """Name of the cluster role binding for an (identity, role) pair."""
    return f"{identity_name}-{role_name}-binding"


class IdentityProvisioner:
    """Reconciles the (namespace, service account, binding) triple.

    Every step is "ensure present": existing objects are reported and left
    untouched, so running twice with the same config is a no-op the second
    time. Check-then-create is best effort; a create that loses a race is
    treated as already existing.
    """

    def __init__(
        self,
        provider: ClusterProvider,
        decide: DecisionProvider = abort_on_missing_role,
    ):
        """Initialize provisioner.

        Args:
            provider: Cluster access
            decide: Repair decision provider used when the superuser role is missing
        """
        self.provider = provider
        self.decide = decide

    def provision(self, config: ProvisioningConfig) -> ProvisioningResult:
        """Ensure the identity and its binding exist.

        Args:
            config: Resolved provisioning config

        Returns:
            Per-resource outcomes plus the effective role and binding name

        Raises:
            PreconditionFailedError: If required state is missing and cannot be created
        """
        if config.skip_create:
            return self._verify_existing(config)

        outcomes = [
            self._ensure(NamespaceSpec(name=config.namespace)),
            self._ensure(ServiceAccountSpec(name=config.identity_name, namespace=config.namespace)),
        ]

        role_name, role_outcome = self._resolve_role(config.privilege_role)
        if role_outcome is not None:
            outcomes.append(role_outcome)

        binding_name = binding_name_for(config.identity_name, role_name)
        binding = ClusterRoleBindingSpec(
            name=binding_name,
            role_name=role_name,
            service_account=config.identity_name,
            namespace=config.namespace,
        )
        binding_outcome = self._ensure(binding)
        if binding_outcome.action is ResourceAction.EXISTING:
            self._check_binding(binding)
        outcomes.append(binding_outcome)

        logger.info(
            "identity_provisioned",
            namespace=config.namespace,
            service_account=config.identity_name,
            role=role_name,
            binding=binding_name,
        )
        return ProvisioningResult(role_name=role_name, binding_name=binding_name, outcomes=outcomes)

    def _verify_existing(self, config: ProvisioningConfig) -> ProvisioningResult:
        if not self.provider.exists(
            ResourceKind.SERVICE_ACCOUNT, config.identity_name, config.namespace
        ):
            logger.error(
                "service_account_missing",
                name=config.identity_name,
                namespace=config.namespace,
            )
            raise PreconditionFailedError(
                f"Service account {config.identity_name} does not exist in namespace "
                f"{config.namespace} (--skip-create was given)"
            )

        logger.info(
            "service_account_verified",
            name=config.identity_name,
            namespace=config.namespace,
        )
        binding_name = binding_name_for(config.identity_name, config.privilege_role)
        return ProvisioningResult(
            role_name=config.privilege_role,
            binding_name=binding_name,
            outcomes=[
                ResourceOutcome(
                    kind=ResourceKind.SERVICE_ACCOUNT.value,
                    name=config.identity_name,
                    namespace=config.namespace,
                    action=ResourceAction.VERIFIED,
                )
            ],
        )

    def _ensure(self, spec: ResourceSpec) -> ResourceOutcome:
        namespace = getattr(spec, "namespace", None) if spec.kind.namespaced else None
        outcome = ResourceOutcome(
            kind=spec.kind.value,
            name=spec.name,
            namespace=namespace,
            action=ResourceAction.EXISTING,
        )

        if self.provider.exists(spec.kind, spec.name, namespace):
            logger.info(
                "resource_exists", kind=spec.kind.value, name=spec.name, namespace=namespace
            )
            return outcome

        try:
            self.provider.create(spec)
        except ResourceExistsError:
            logger.info(
                "resource_created_concurrently",
                kind=spec.kind.value,
                name=spec.name,
                namespace=namespace,
            )
            return outcome

        logger.info("resource_created", kind=spec.kind.value, name=spec.name, namespace=namespace)
        return outcome.model_copy(update={"action": ResourceAction.CREATED})

    def _check_binding(self, spec: ClusterRoleBindingSpec) -> None:
        """Make sure an existing binding grants the role to this service account.

        Binding names are derived from the (identity, role) pair and can
        collide, e.g. ("a-b", "view") and ("a", "b-view").

        Raises:
            PreconditionFailedError: If the binding belongs to another pair
        """
        existing = self.provider.get_binding(spec.name)
        if existing is not None and existing.binds(
            spec.role_name, spec.service_account, spec.namespace
        ):
            return

        if existing is None:
            logger.error("binding_missing", name=spec.name)
            raise PreconditionFailedError(
                f"ClusterRoleBinding {spec.name} disappeared while provisioning"
            )
        logger.error(
            "binding_conflict",
            name=spec.name,
            expected_role=spec.role_name,
            expected_subject=f"{spec.namespace}/{spec.service_account}",
            actual_role=existing.role_name,
            actual_subjects=[f"{ns}/{sa}" for ns, sa in existing.service_accounts],
        )
        raise PreconditionFailedError(
            f"ClusterRoleBinding {spec.name} already exists but binds role "
            f"{existing.role_name} to a different subject or role; delete it or choose "
            f"another service account name"
        )

    def _resolve_role(self, role_name: str) -> tuple[str, ResourceOutcome | None]:
        """Find the role to bind, running the repair branch if needed.

        Returns:
            Effective role name, and an outcome when the role had to be created
        """
        if self.provider.exists(ResourceKind.CLUSTER_ROLE, role_name):
            return role_name, None

        logger.warning("cluster_role_missing", role=role_name)
        if role_name != SUPERUSER_ROLE:
            raise PreconditionFailedError(f"Cluster role {role_name} does not exist")

        decision = self.decide(role_name)
        logger.info("repair_decision", action=decision.action.value, role=decision.role_name)

        if decision.action is RepairAction.CREATE_ROLE:
            outcome = self._ensure(ClusterRoleSpec(name=role_name, rules=WILDCARD_RULES))
            return role_name, outcome

        if decision.action is RepairAction.USE_ALTERNATE and decision.role_name:
            alternate = decision.role_name.strip()
            if alternate and self.provider.exists(ResourceKind.CLUSTER_ROLE, alternate):
                return alternate, None
            if alternate:
                raise PreconditionFailedError(f"Cluster role {alternate} does not exist")

        raise PreconditionFailedError(
            f"Cluster role {role_name} does not exist; provisioning aborted"
        )
