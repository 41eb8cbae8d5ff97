"""Credential minting for the provisioned service account."""

from abc import ABC, abstractmethod

from adminkit.core.config import TokenConfig
from adminkit.core.exceptions import PreconditionFailedError, ResourceUnavailableError
from adminkit.core.models import Credential, ProvisioningConfig
from adminkit.interfaces.cluster_provider import ClusterInfo, ClusterProvider
from adminkit.interfaces.exceptions import ClusterProviderError
from adminkit.utils.logging import get_logger
from adminkit.utils.retry import poll_until

logger = get_logger(__name__)


def supports_token_api(minor_version: int | None, threshold: int) -> bool:
    """Decide whether to issue tokens through the TokenRequest API.

    An unknown version counts as capable: issuing directly is attempted
    rather than searching for a legacy secret that may never exist.
    """
    return minor_version is None or minor_version >= threshold


class TokenStrategy(ABC):
    """A way of obtaining a bearer token for a service account."""

    name: str

    @abstractmethod
    def mint(self, provider: ClusterProvider, config: ProvisioningConfig) -> Credential:
        """Obtain a credential.

        Raises:
            ResourceUnavailableError: If no token can be obtained
        """


class TokenRequestStrategy(TokenStrategy):
    """Issue a bound token, retrying once without a duration if the first request fails."""

    name = "token-request"

    def mint(self, provider: ClusterProvider, config: ProvisioningConfig) -> Credential:
        try:
            token = provider.issue_token(
                config.identity_name, config.namespace, config.token_duration
            )
            return Credential(
                token=token, source=self.name, expiration_seconds=config.token_seconds
            )
        except ClusterProviderError as e:
            logger.warning(
                "token_with_duration_failed",
                service_account=config.identity_name,
                duration_seconds=config.token_seconds,
                error=str(e),
            )

        try:
            token = provider.issue_token(config.identity_name, config.namespace, None)
        except ClusterProviderError as e:
            logger.error(
                "token_request_failed",
                service_account=config.identity_name,
                namespace=config.namespace,
                error=str(e),
            )
            raise ResourceUnavailableError(
                f"Could not issue a token for {config.namespace}/{config.identity_name}: {e}"
            ) from e

        return Credential(token=token, source=self.name, expiration_seconds=None)


class LegacySecretStrategy(TokenStrategy):
    """Read the token controller's secret, falling back to a token request."""

    name = "legacy-secret"

    def __init__(
        self,
        poll_attempts: int = 5,
        poll_interval: float = 1.0,
        fallback: TokenStrategy | None = None,
    ):
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval
        self.fallback = fallback or TokenRequestStrategy()

    def mint(self, provider: ClusterProvider, config: ProvisioningConfig) -> Credential:
        try:
            # The token controller links the secret shortly after the account is created
            secret_names = poll_until(
                lambda: provider.get_service_account_secrets(
                    config.identity_name, config.namespace
                ),
                attempts=self.poll_attempts,
                interval=self.poll_interval,
                description="service_account_secret",
            )
            for secret_name in secret_names:
                token = provider.read_secret_token(secret_name, config.namespace)
                if token:
                    logger.info(
                        "legacy_token_found",
                        service_account=config.identity_name,
                        secret=secret_name,
                    )
                    return Credential(token=token, source=self.name)
        except ClusterProviderError as e:
            logger.warning(
                "legacy_secret_lookup_failed",
                service_account=config.identity_name,
                error=str(e),
            )

        logger.info("legacy_secret_not_found", service_account=config.identity_name)
        return self.fallback.mint(provider, config)


class CredentialMinter:
    """Resolves cluster connection details and a token for the identity."""

    def __init__(self, provider: ClusterProvider, settings: TokenConfig | None = None):
        self.provider = provider
        self.settings = settings or TokenConfig()

    def select_strategy(self) -> TokenStrategy:
        """Pick the token strategy for the connected cluster's version."""
        minor = self.provider.get_server_minor_version()
        capable = supports_token_api(minor, self.settings.token_api_min_minor)
        logger.info(
            "token_strategy_selected",
            minor_version=minor,
            threshold=self.settings.token_api_min_minor,
            token_api=capable,
        )
        if capable:
            return TokenRequestStrategy()
        return LegacySecretStrategy(
            poll_attempts=self.settings.legacy_secret_poll_attempts,
            poll_interval=self.settings.legacy_secret_poll_interval_seconds,
        )

    def resolve_cluster_info(self) -> ClusterInfo:
        """Resolve endpoint and CA data of the active context.

        Raises:
            PreconditionFailedError: If either cannot be resolved
        """
        try:
            return self.provider.get_cluster_info()
        except ClusterProviderError as e:
            logger.error("cluster_info_unavailable", error=str(e))
            raise PreconditionFailedError(f"Cannot resolve cluster connection details: {e}") from e

    def mint(self, config: ProvisioningConfig) -> tuple[ClusterInfo, Credential]:
        """Produce the cluster details and a credential for the configured identity.

        Raises:
            PreconditionFailedError: If cluster details cannot be resolved
            ResourceUnavailableError: If no token can be obtained
        """
        cluster_info = self.resolve_cluster_info()
        credential = self.select_strategy().mint(self.provider, config)
        logger.info(
            "credential_minted",
            service_account=config.identity_name,
            source=credential.source,
            expiration_seconds=credential.expiration_seconds,
        )
        return cluster_info, credential
