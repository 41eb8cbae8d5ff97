"""Pytest configuration and shared fixtures."""

import logging
from datetime import timedelta
from typing import Any

import pytest
import structlog

from adminkit.core.models import ProvisioningConfig
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

SAMPLE_CA_DATA = "LS0tLS1CRUdJTiBDRVJUSUZJQ0FURS0tLS0tCg=="
SAMPLE_SERVER = "https://test-cluster.example.com:443"


class FakeClusterProvider(ClusterProvider):
    """In-memory ClusterProvider that records every mutation."""

    def __init__(self) -> None:
        self.namespaces: set[str] = {"default", "kube-system"}
        self.service_accounts: set[tuple[str, str]] = set()
        self.cluster_roles: set[str] = {"cluster-admin", "admin", "edit", "view"}
        self.bindings: dict[str, ClusterRoleBindingSpec] = {}
        self.created: list[ResourceSpec] = []

        self.reachable = True
        self.context = "test-context"
        self.minor_version: int | None = 28
        self.cluster_info: ClusterInfo | None = ClusterInfo(
            context_name="test-context",
            cluster_name="test-cluster",
            server_url=SAMPLE_SERVER,
            ca_data=SAMPLE_CA_DATA,
        )

        self.token = "issued-token"
        # Each entry fails one issue_token call, in order
        self.token_failures: list[Exception] = []
        self.token_requests: list[timedelta | None] = []

        self.secrets: dict[tuple[str, str], list[str]] = {}
        self.secret_tokens: dict[str, str] = {}

        self.allowed: dict[tuple[str, str], bool] = {}
        self.permissions: list[PermissionRule] = []
        self.nodes: list[str] = ["node-1", "node-2"]
        # Simulate a create that loses the race against another writer
        self.conflict_on_create: set[str] = set()
        self.errors: dict[str, Exception] = {}

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.errors:
            raise self.errors[operation]

    def exists(self, kind: ResourceKind, name: str, namespace: str | None = None) -> bool:
        self._maybe_fail("exists")
        if kind is ResourceKind.NAMESPACE:
            return name in self.namespaces
        if kind is ResourceKind.SERVICE_ACCOUNT:
            return (namespace, name) in self.service_accounts
        if kind is ResourceKind.CLUSTER_ROLE:
            return name in self.cluster_roles
        return name in self.bindings

    def create(self, spec: ResourceSpec) -> None:
        self._maybe_fail("create")
        if spec.name in self.conflict_on_create:
            # The other writer created the same object first
            self._store(spec)
            raise ResourceExistsError(f"{spec.kind.value} {spec.name} already exists")
        self.created.append(spec)
        self._store(spec)

    def _store(self, spec: ResourceSpec) -> None:
        if isinstance(spec, NamespaceSpec):
            self.namespaces.add(spec.name)
        elif isinstance(spec, ServiceAccountSpec):
            self.service_accounts.add((spec.namespace, spec.name))
        elif isinstance(spec, ClusterRoleSpec):
            self.cluster_roles.add(spec.name)
        elif isinstance(spec, ClusterRoleBindingSpec):
            self.bindings[spec.name] = spec

    def get_binding(self, name: str) -> BindingInfo | None:
        self._maybe_fail("get_binding")
        spec = self.bindings.get(name)
        if spec is None:
            return None
        return BindingInfo(
            name=name,
            role_name=spec.role_name,
            service_accounts=[(spec.namespace, spec.service_account)],
        )

    def issue_token(
        self, service_account: str, namespace: str, duration: timedelta | None = None
    ) -> str:
        self.token_requests.append(duration)
        if self.token_failures:
            raise self.token_failures.pop(0)
        return self.token

    def get_cluster_info(self) -> ClusterInfo:
        if self.cluster_info is None:
            raise ClusterProviderError("No certificate authority data for context test-context")
        return self.cluster_info

    def get_server_minor_version(self) -> int | None:
        return self.minor_version

    def is_reachable(self) -> bool:
        return self.reachable

    def get_service_account_secrets(self, name: str, namespace: str) -> list[str]:
        self._maybe_fail("get_service_account_secrets")
        return list(self.secrets.get((namespace, name), []))

    def read_secret_token(self, name: str, namespace: str) -> str | None:
        return self.secret_tokens.get(name)

    def can_i(
        self,
        verb: str,
        resource: str,
        namespace: str | None = None,
        group: str = "",
    ) -> bool:
        self._maybe_fail("can_i")
        return self.allowed.get((verb, resource), False)

    def list_permissions(self, namespace: str) -> list[PermissionRule]:
        self._maybe_fail("list_permissions")
        return list(self.permissions)

    def list_nodes(self) -> list[str]:
        self._maybe_fail("list_nodes")
        return list(self.nodes)

    def list_cluster_roles(self) -> list[str]:
        self._maybe_fail("list_cluster_roles")
        return list(self.cluster_roles)

    def list_service_accounts(self, namespace: str) -> list[str]:
        self._maybe_fail("list_service_accounts")
        return [name for ns, name in self.service_accounts if ns == namespace]

    def current_context(self) -> str | None:
        return self.context


@pytest.fixture(autouse=True)
def reset_logging():
    """Keep logging configuration from leaking between tests."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    # Handlers added by logging.basicConfig may point at closed CliRunner streams
    for handler in list(logging.root.handlers):
        if type(handler) is logging.StreamHandler:
            logging.root.removeHandler(handler)


@pytest.fixture
def fake_provider() -> FakeClusterProvider:
    """Provide an in-memory cluster with the built-in roles present."""
    return FakeClusterProvider()


@pytest.fixture
def sample_config(tmp_path) -> ProvisioningConfig:
    """Provide a provisioning config writing into a temporary directory."""
    return ProvisioningConfig(
        namespace="demo",
        identity_name="ci-bot",
        privilege_role="view",
        context_label="ci-context",
        output_path=str(tmp_path / "ci-bot.yaml"),
        token_duration=timedelta(hours=1),
    )


@pytest.fixture
def sample_cluster_info() -> ClusterInfo:
    """Provide sample cluster connection details."""
    return ClusterInfo(
        context_name="test-context",
        cluster_name="test-cluster",
        server_url=SAMPLE_SERVER,
        ca_data=SAMPLE_CA_DATA,
    )


# ==============================================================================
# Pytest Markers
# ==============================================================================


def pytest_configure(config: Any) -> None:
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
