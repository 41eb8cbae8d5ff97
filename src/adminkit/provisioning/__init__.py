"""Provisioning workflow stages."""

from adminkit.provisioning.provisioner import (
    IdentityProvisioner,
    RepairAction,
    RepairDecision,
    binding_name_for,
)
from adminkit.provisioning.resolver import resolve_config
from adminkit.provisioning.workflow import ProvisioningWorkflow, WorkflowResult

__all__ = [
    "IdentityProvisioner",
    "ProvisioningWorkflow",
    "RepairAction",
    "RepairDecision",
    "WorkflowResult",
    "binding_name_for",
    "resolve_config",
]
