"""End-to-end provisioning workflow: provision, mint, export, verify."""

from dataclasses import dataclass
from pathlib import Path

from adminkit.core.config import AdminKitConfig
from adminkit.core.exceptions import PreconditionFailedError
from adminkit.core.models import (
    Credential,
    ProvisioningConfig,
    ProvisioningResult,
    VerificationResult,
)
from adminkit.interfaces.cluster_provider import ClusterInfo, ClusterProvider
from adminkit.provisioning.exporter import build_bundle, write_bundle
from adminkit.provisioning.minter import CredentialMinter
from adminkit.provisioning.provisioner import (
    DecisionProvider,
    IdentityProvisioner,
    abort_on_missing_role,
)
from adminkit.provisioning.verifier import BundleVerifier
from adminkit.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class WorkflowResult:
    """Everything a provisioning run produced."""

    provisioning: ProvisioningResult
    cluster_info: ClusterInfo
    credential: Credential
    bundle_path: Path
    verification: VerificationResult | None = None


class ProvisioningWorkflow:
    """Runs the stages strictly in order.

    Resources created before a fatal error are left in place.
    """

    def __init__(
        self,
        provider: ClusterProvider,
        decide: DecisionProvider = abort_on_missing_role,
        verifier: BundleVerifier | None = None,
        settings: AdminKitConfig | None = None,
    ):
        """Initialize workflow.

        Args:
            provider: Cluster access for the source context
            decide: Repair decision provider for a missing superuser role
            verifier: Bundle verifier; None skips verification
            settings: adminkit configuration
        """
        self.provider = provider
        self.settings = settings or AdminKitConfig()
        self.provisioner = IdentityProvisioner(provider, decide)
        self.minter = CredentialMinter(provider, self.settings.token)
        self.verifier = verifier

    def run(self, config: ProvisioningConfig) -> WorkflowResult:
        """Run the workflow.

        Raises:
            PreconditionFailedError: If the cluster is unreachable or required state is missing
            ResourceUnavailableError: If no token can be obtained
        """
        if not self.provider.is_reachable():
            raise PreconditionFailedError(
                f"Not connected to a Kubernetes cluster (context {self.provider.current_context()})"
            )

        logger.info(
            "provisioning_started",
            context=self.provider.current_context(),
            namespace=config.namespace,
            service_account=config.identity_name,
            role=config.privilege_role,
            skip_create=config.skip_create,
        )

        provisioning = self.provisioner.provision(config)
        cluster_info, credential = self.minter.mint(config)

        bundle = build_bundle(cluster_info, config, credential)
        bundle_path = write_bundle(bundle, config.output_path)

        result = WorkflowResult(
            provisioning=provisioning,
            cluster_info=cluster_info,
            credential=credential,
            bundle_path=bundle_path,
        )

        if self.verifier is not None:
            result.verification = self.verifier.verify(bundle_path, config)

        logger.info("provisioning_completed", bundle=str(bundle_path))
        return result
