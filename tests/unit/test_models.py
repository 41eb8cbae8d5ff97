"""Tests for core data models."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from adminkit.core.models import (
    Credential,
    ProvisioningConfig,
    ProvisioningResult,
    ResourceAction,
    ResourceOutcome,
    VerificationResult,
)
from adminkit.interfaces.cluster_provider import PermissionRule, ResourceKind


def test_provisioning_config_defaults():
    """Test ProvisioningConfig default values."""
    config = ProvisioningConfig()

    assert config.namespace == "kube-system"
    assert config.identity_name == "admin-user"
    assert config.privilege_role == "cluster-admin"
    assert config.context_label == "admin-context"
    assert config.output_path == "admin-kubeconfig.yaml"
    assert config.token_duration == timedelta(hours=8760)
    assert config.token_seconds == 31536000
    assert config.skip_create is False


def test_provisioning_config_parses_duration_text():
    """Test durations may be given as text."""
    config = ProvisioningConfig(token_duration="1h30m")

    assert config.token_seconds == 5400


@pytest.mark.parametrize("duration", [timedelta(0), timedelta(milliseconds=500), "0s"])
def test_provisioning_config_rejects_short_duration(duration):
    """Test durations under one second are rejected."""
    with pytest.raises(ValidationError):
        ProvisioningConfig(token_duration=duration)


@pytest.mark.parametrize(
    "field", ["namespace", "identity_name", "privilege_role", "context_label", "output_path"]
)
def test_provisioning_config_rejects_empty_names(field):
    """Test every name field must be non-empty."""
    with pytest.raises(ValidationError, match="must not be empty"):
        ProvisioningConfig(**{field: "  "})


def test_provisioning_config_is_frozen():
    """Test configs cannot be mutated after resolution."""
    config = ProvisioningConfig()

    with pytest.raises(ValidationError):
        config.namespace = "other"


def test_provisioning_result_created():
    """Test created() filters to newly created resources."""
    result = ProvisioningResult(
        role_name="view",
        binding_name="ci-bot-view-binding",
        outcomes=[
            ResourceOutcome(kind="Namespace", name="demo", action=ResourceAction.EXISTING),
            ResourceOutcome(
                kind="ServiceAccount",
                name="ci-bot",
                namespace="demo",
                action=ResourceAction.CREATED,
            ),
        ],
    )

    assert [o.name for o in result.created()] == ["ci-bot"]


def test_credential_hides_token_in_repr():
    """Test the bearer token never appears in repr."""
    credential = Credential(token="super-secret", source="token-request")

    assert "super-secret" not in repr(credential)
    assert credential.expiration_seconds is None


def test_verification_result_defaults():
    """Test VerificationResult optional fields default to None."""
    result = VerificationResult(connected=False, error="unauthorized")

    assert result.node_count is None
    assert result.permissions is None
    assert result.probe_allowed is None


def test_resource_kind_namespaced():
    """Test only service accounts are namespaced."""
    assert ResourceKind.SERVICE_ACCOUNT.namespaced is True
    assert ResourceKind.NAMESPACE.namespaced is False
    assert ResourceKind.CLUSTER_ROLE.namespaced is False
    assert ResourceKind.CLUSTER_ROLE_BINDING.namespaced is False


@pytest.mark.parametrize(
    ("rule", "expected"),
    [
        (PermissionRule(verbs=["get", "list"], resources=["pods"]), "pods [get,list]"),
        (
            PermissionRule(verbs=["*"], api_groups=["apps"], resources=["deployments"]),
            "deployments.apps [*]",
        ),
        (PermissionRule(verbs=["get"], non_resource_urls=["/healthz"]), "/healthz [get]"),
        (
            PermissionRule(verbs=["get"], resources=["configmaps"], resource_names=["cfg"]),
            "configmaps cfg [get]",
        ),
        (PermissionRule(verbs=["*"], api_groups=["*"]), "*.* [*]"),
    ],
)
def test_permission_rule_describe(rule, expected):
    """Test rules render in a can-i --list like form."""
    assert rule.describe() == expected
