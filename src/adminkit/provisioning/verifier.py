"""Live verification of an exported kubeconfig bundle."""

from collections.abc import Callable
from pathlib import Path

from adminkit.core.models import ProvisioningConfig, VerificationResult
from adminkit.interfaces.cluster_provider import ClusterProvider
from adminkit.interfaces.exceptions import ClusterProviderError
from adminkit.utils.logging import get_logger

logger = get_logger(__name__)

# Builds a provider from (kubeconfig path, context name)
ProviderFactory = Callable[[str, str], ClusterProvider]


class BundleVerifier:
    """Checks that an exported bundle authenticates against the cluster.

    Verification is diagnostic only. Nothing here raises; failures are
    reported in the returned VerificationResult.
    """

    def __init__(self, provider_factory: ProviderFactory, list_permissions: bool = True):
        """Initialize verifier.

        Args:
            provider_factory: Creates a provider that uses only the given kubeconfig
            list_permissions: Whether to enumerate granted rules after a successful connection
        """
        self.provider_factory = provider_factory
        self.list_permissions = list_permissions

    def verify(self, path: str | Path, config: ProvisioningConfig) -> VerificationResult:
        """Verify a bundle.

        Args:
            path: Written kubeconfig
            config: Provisioning config (context label and namespace)

        Returns:
            Verification outcome
        """
        try:
            provider = self.provider_factory(str(path), config.context_label)
        except ClusterProviderError as e:
            logger.warning("bundle_unloadable", path=str(path), error=str(e))
            return VerificationResult(connected=False, error=str(e))

        try:
            nodes = provider.list_nodes()
        except ClusterProviderError as e:
            logger.warning("bundle_connection_check_failed", error=str(e))
            return VerificationResult(
                connected=False,
                error=str(e),
                probe_allowed=self._probe(provider, config.namespace),
            )

        result = VerificationResult(connected=True, node_count=len(nodes))
        if self.list_permissions:
            try:
                rules = provider.list_permissions(config.namespace)
                result.permissions = [rule.describe() for rule in rules]
            except ClusterProviderError as e:
                logger.info("permission_listing_failed", error=str(e))

        logger.info("bundle_verified", node_count=result.node_count)
        return result

    @staticmethod
    def _probe(provider: ClusterProvider, namespace: str) -> bool | None:
        """Narrow check: can the identity list pods in its namespace?"""
        try:
            allowed = provider.can_i("list", "pods", namespace=namespace)
        except ClusterProviderError as e:
            logger.warning("permission_probe_failed", namespace=namespace, error=str(e))
            return None
        logger.info("permission_probe", namespace=namespace, allowed=allowed)
        return allowed
