"""Integration tests for adminkit.

These tests talk to a real Kubernetes cluster and require a kubeconfig
(KUBECONFIG or ~/.kube/config). They only perform read-only calls.

Tests are marked with @pytest.mark.integration and can be run with:
    pytest tests/integration/ -m integration

To skip integration tests:
    pytest -m "not integration"
"""
