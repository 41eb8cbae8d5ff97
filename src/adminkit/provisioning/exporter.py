"""Kubeconfig bundle export."""

import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from adminkit.core.models import Credential, ProvisioningConfig
from adminkit.interfaces.cluster_provider import ClusterInfo
from adminkit.utils.logging import get_logger

logger = get_logger(__name__)

BUNDLE_MODE = 0o600


def build_bundle(
    cluster_info: ClusterInfo, config: ProvisioningConfig, credential: Credential
) -> dict[str, Any]:
    """Build a standalone kubeconfig for the provisioned identity.

    Args:
        cluster_info: Endpoint and CA of the source cluster
        config: Provisioning config (context label, namespace, identity)
        credential: Bearer token

    Returns:
        Kubeconfig document
    """
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [
            {
                "name": cluster_info.cluster_name,
                "cluster": {
                    "server": cluster_info.server_url,
                    "certificate-authority-data": cluster_info.ca_data,
                },
            }
        ],
        "contexts": [
            {
                "name": config.context_label,
                "context": {
                    "cluster": cluster_info.cluster_name,
                    "namespace": config.namespace,
                    "user": config.identity_name,
                },
            }
        ],
        "current-context": config.context_label,
        "users": [
            {
                "name": config.identity_name,
                "user": {"token": credential.token},
            }
        ],
        "preferences": {},
    }


def write_bundle(bundle: dict[str, Any], path: str | Path) -> Path:
    """Write a kubeconfig atomically with owner-only permissions.

    The document is written to a temporary file in the target directory and
    moved into place, so readers never observe a partial file.

    Args:
        bundle: Kubeconfig document
        path: Destination path

    Returns:
        Absolute path of the written file

    Raises:
        OSError: If the file cannot be written
    """
    target = Path(path).expanduser().resolve()
    target.parent.mkdir(parents=True, exist_ok=True)

    # mkstemp creates the file with mode 0600
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
    try:
        with os.fdopen(fd, "w") as f:
            yaml.safe_dump(bundle, f, default_flow_style=False, sort_keys=False)
        os.chmod(tmp_name, BUNDLE_MODE)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    os.chmod(target, BUNDLE_MODE)
    logger.info("bundle_written", path=str(target), context=bundle.get("current-context"))
    return target
