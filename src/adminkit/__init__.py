"""adminkit.

Bootstrap administrative access to managed Kubernetes clusters: provision a
service account, bind it to a cluster role, and export a standalone kubeconfig.
"""

__version__ = "0.1.0"
__author__ = "Platform Engineering Team"
__license__ = "Apache-2.0"
