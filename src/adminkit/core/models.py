"""Core data models for adminkit."""

from datetime import timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from adminkit.utils.duration import parse_duration

DEFAULT_NAMESPACE = "kube-system"
DEFAULT_SERVICE_ACCOUNT = "admin-user"
DEFAULT_CLUSTER_ROLE = "cluster-admin"
DEFAULT_CONTEXT_NAME = "admin-context"
DEFAULT_OUTPUT = "admin-kubeconfig.yaml"
DEFAULT_DURATION = "8760h"


class ProvisioningConfig(BaseModel):
    """Resolved options for one provisioning run."""

    model_config = ConfigDict(frozen=True)

    namespace: str = DEFAULT_NAMESPACE
    identity_name: str = DEFAULT_SERVICE_ACCOUNT
    privilege_role: str = DEFAULT_CLUSTER_ROLE
    context_label: str = DEFAULT_CONTEXT_NAME
    output_path: str = DEFAULT_OUTPUT
    token_duration: timedelta = Field(default_factory=lambda: parse_duration(DEFAULT_DURATION))
    skip_create: bool = False

    @field_validator(
        "namespace", "identity_name", "privilege_role", "context_label", "output_path"
    )
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("token_duration", mode="before")
    @classmethod
    def _parse_duration(cls, value: object) -> object:
        if isinstance(value, str):
            return parse_duration(value)
        return value

    @field_validator("token_duration")
    @classmethod
    def _positive_duration(cls, value: timedelta) -> timedelta:
        if value.total_seconds() < 1:
            raise ValueError("must be a positive duration of at least one second")
        return value

    @property
    def token_seconds(self) -> int:
        """Token lifetime in whole seconds."""
        return int(self.token_duration.total_seconds())


class ResourceAction(str, Enum):
    """What the provisioner did with a resource."""

    CREATED = "created"
    EXISTING = "existing"
    VERIFIED = "verified"


class ResourceOutcome(BaseModel):
    """Outcome for a single reconciled resource."""

    kind: str
    name: str
    namespace: str | None = None
    action: ResourceAction


class ProvisioningResult(BaseModel):
    """Result of reconciling the (namespace, identity, binding) triple."""

    role_name: str
    binding_name: str
    outcomes: list[ResourceOutcome] = Field(default_factory=list)

    def created(self) -> list[ResourceOutcome]:
        """Outcomes for resources created during this run."""
        return [o for o in self.outcomes if o.action == ResourceAction.CREATED]


class Credential(BaseModel):
    """Bearer credential for the provisioned identity."""

    model_config = ConfigDict(frozen=True)

    token: str = Field(repr=False)
    source: str
    expiration_seconds: int | None = None


class VerificationResult(BaseModel):
    """Outcome of checking an exported bundle against the live cluster."""

    connected: bool
    node_count: int | None = None
    permissions: list[str] | None = None
    probe_allowed: bool | None = None
    error: str | None = None


class DiagnosticReport(BaseModel):
    """Read-only snapshot of the caller's RBAC situation."""

    context_name: str | None = None
    reachable: bool = False
    admin_roles: list[str] = Field(default_factory=list)
    well_known_roles: list[str] = Field(default_factory=list)
    system_role_count: int = 0
    has_wildcard_access: bool = False
    privileged_rules: list[str] = Field(default_factory=list)
    service_accounts: list[str] = Field(default_factory=list)
