"""Unit tests for adminkit CLI commands.

This module tests the provision and diagnose commands. Tests focus on option
parsing, exit codes and output, with the cluster replaced by an in-memory
provider.
"""

import stat
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner
from rich.console import Console

from adminkit import __version__
from adminkit.cli.main import cli
from adminkit.core.models import VerificationResult
from adminkit.interfaces.cluster_provider import PermissionRule
from adminkit.interfaces.exceptions import ClusterProviderError


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch) -> Path:
    """Keep a developer's ~/.adminkit/config.yaml out of the tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def wide_console():
    """Print without wrapping so long paths stay on one line."""
    with patch("adminkit.cli.main.console", Console(width=200)):
        yield


@pytest.fixture
def use_provider(fake_provider):
    """Route every provider the CLI creates to the in-memory cluster."""
    with patch("adminkit.cli.main.AdminKitContext.provider", return_value=fake_provider):
        yield fake_provider


class TestGroup:
    """Tests for the top-level group."""

    @pytest.mark.parametrize("flag", ["--help", "-h"])
    def test_help(self, cli_runner: CliRunner, flag: str) -> None:
        """Test help lists the commands."""
        result = cli_runner.invoke(cli, [flag])

        assert result.exit_code == 0
        assert "provision" in result.output
        assert "diagnose" in result.output

    def test_version(self, cli_runner: CliRunner) -> None:
        """Test --version prints the package version."""
        result = cli_runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_unknown_command(self, cli_runner: CliRunner) -> None:
        """Test an unknown command exits with status 1."""
        result = cli_runner.invoke(cli, ["bogus"])

        assert result.exit_code == 1

    def test_missing_config_file(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """Test an explicit config file that does not exist is an error."""
        result = cli_runner.invoke(
            cli, ["--config", str(tmp_path / "missing.yaml"), "diagnose"]
        )

        assert result.exit_code == 1
        assert "Configuration file not found" in result.output


class TestProvisionOptions:
    """Tests for provision option handling."""

    @pytest.mark.parametrize("flag", ["--help", "-h"])
    def test_help(self, cli_runner: CliRunner, flag: str) -> None:
        """Test help lists the provisioning flags."""
        result = cli_runner.invoke(cli, ["provision", flag])

        assert result.exit_code == 0
        for option in ("--namespace", "--service-account", "--duration", "--skip-create"):
            assert option in result.output

    def test_unknown_flag(self, cli_runner: CliRunner, use_provider) -> None:
        """Test an unknown flag exits with status 1 before touching the cluster."""
        result = cli_runner.invoke(cli, ["provision", "--bogus"])

        assert result.exit_code == 1
        assert "No such option" in result.output
        assert use_provider.created == []

    def test_invalid_duration(self, cli_runner: CliRunner, use_provider) -> None:
        """Test an unparseable duration exits with status 1."""
        result = cli_runner.invoke(cli, ["provision", "--duration", "forever"])

        assert result.exit_code == 1
        assert use_provider.created == []

    def test_zero_duration(self, cli_runner: CliRunner, use_provider) -> None:
        """Test a zero duration exits with status 1."""
        result = cli_runner.invoke(cli, ["provision", "-d", "0s"])

        assert result.exit_code == 1
        assert "--duration" in result.output

    def test_empty_namespace(self, cli_runner: CliRunner, use_provider) -> None:
        """Test an empty name exits with status 1."""
        result = cli_runner.invoke(cli, ["provision", "-n", ""])

        assert result.exit_code == 1
        assert "--namespace" in result.output


class TestProvision:
    """Tests for the provision command."""

    def test_provision(self, cli_runner: CliRunner, use_provider, tmp_path: Path) -> None:
        """Test a full run writes an owner-only kubeconfig."""
        output = tmp_path / "ci-bot.yaml"

        result = cli_runner.invoke(
            cli,
            [
                "provision",
                "-n",
                "demo",
                "-s",
                "ci-bot",
                "-r",
                "view",
                "-c",
                "ci-context",
                "-o",
                str(output),
                "-d",
                "1h",
                "--no-verify",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "ci-bot-view-binding" in result.output
        assert f"export KUBECONFIG={output.resolve()}" in result.output
        assert "Verification" not in result.output

        assert ("demo", "ci-bot") in use_provider.service_accounts
        assert stat.S_IMODE(output.stat().st_mode) == 0o600
        bundle = yaml.safe_load(output.read_text())
        assert bundle["current-context"] == "ci-context"
        assert bundle["contexts"][0]["context"]["namespace"] == "demo"
        assert bundle["users"][0]["user"]["token"] == "issued-token"

    def test_provision_twice(self, cli_runner: CliRunner, use_provider, tmp_path: Path) -> None:
        """Test a second run reports existing resources."""
        args = ["provision", "-o", str(tmp_path / "admin.yaml"), "--no-verify"]
        cli_runner.invoke(cli, args)
        created = len(use_provider.created)

        result = cli_runner.invoke(cli, args)

        assert result.exit_code == 0, result.output
        assert len(use_provider.created) == created
        assert "already exists" in result.output

    def test_skip_create_missing_account(
        self, cli_runner: CliRunner, use_provider, tmp_path: Path
    ) -> None:
        """Test skip-create with a missing account fails without writing a bundle."""
        output = tmp_path / "admin.yaml"

        result = cli_runner.invoke(cli, ["provision", "--skip-create", "-o", str(output)])

        assert result.exit_code == 1
        assert "does not exist" in result.output
        assert use_provider.created == []
        assert not output.exists()

    def test_unreachable_cluster(
        self, cli_runner: CliRunner, use_provider, tmp_path: Path
    ) -> None:
        """Test an unreachable cluster exits with status 1."""
        use_provider.reachable = False

        result = cli_runner.invoke(cli, ["provision", "-o", str(tmp_path / "admin.yaml")])

        assert result.exit_code == 1
        assert "Not connected" in result.output

    def test_repair_create_role(
        self, cli_runner: CliRunner, use_provider, tmp_path: Path
    ) -> None:
        """Test answering 1 creates the missing superuser role."""
        use_provider.cluster_roles.discard("cluster-admin")

        result = cli_runner.invoke(
            cli, ["provision", "-o", str(tmp_path / "admin.yaml"), "--no-verify"], input="1\n"
        )

        assert result.exit_code == 0, result.output
        assert "cluster-admin" in use_provider.cluster_roles
        assert "admin-user-cluster-admin-binding" in use_provider.bindings

    def test_repair_use_alternate(
        self, cli_runner: CliRunner, use_provider, tmp_path: Path
    ) -> None:
        """Test answering 2 binds the named alternate role."""
        use_provider.cluster_roles.discard("cluster-admin")

        result = cli_runner.invoke(
            cli,
            ["provision", "-o", str(tmp_path / "admin.yaml"), "--no-verify"],
            input="2\nedit\n",
        )

        assert result.exit_code == 0, result.output
        assert "admin-user-edit-binding" in use_provider.bindings

    def test_repair_abort(self, cli_runner: CliRunner, use_provider, tmp_path: Path) -> None:
        """Test answering 3 aborts with status 1."""
        use_provider.cluster_roles.discard("cluster-admin")
        output = tmp_path / "admin.yaml"

        result = cli_runner.invoke(cli, ["provision", "-o", str(output)], input="3\n")

        assert result.exit_code == 1
        assert "aborted" in result.output
        assert use_provider.bindings == {}
        assert not output.exists()

    def test_token_failure(self, cli_runner: CliRunner, use_provider, tmp_path: Path) -> None:
        """Test exhausting token strategies exits with status 1."""
        use_provider.token_failures = [
            ClusterProviderError("duration too long"),
            ClusterProviderError("forbidden"),
        ]

        result = cli_runner.invoke(cli, ["provision", "-o", str(tmp_path / "admin.yaml")])

        assert result.exit_code == 1
        assert "Could not issue a token" in result.output

    def test_verification(self, cli_runner: CliRunner, use_provider, tmp_path: Path) -> None:
        """Test the written bundle is verified with a fresh provider."""
        use_provider.permissions = [PermissionRule(verbs=["*"], api_groups=["*"], resources=["*"])]
        output = tmp_path / "admin.yaml"

        with patch(
            "adminkit.adapters.k8s_adapter.KubernetesAdapter", return_value=use_provider
        ) as mock_adapter:
            result = cli_runner.invoke(cli, ["provision", "-o", str(output)])

        assert result.exit_code == 0, result.output
        mock_adapter.assert_called_once_with(str(output.resolve()), "admin-context")
        assert "Connected with the new kubeconfig (2 node(s))" in result.output
        assert "*.* [*]" in result.output

    def test_verification_failure_is_not_fatal(
        self, cli_runner: CliRunner, use_provider, tmp_path: Path
    ) -> None:
        """Test a failed verification still exits with status 0."""
        failed = VerificationResult(connected=False, error="Unauthorized", probe_allowed=False)

        with patch(
            "adminkit.provisioning.verifier.BundleVerifier.verify", return_value=failed
        ):
            result = cli_runner.invoke(cli, ["provision", "-o", str(tmp_path / "admin.yaml")])

        assert result.exit_code == 0, result.output
        assert "Could not list nodes" in result.output
        assert "Cannot list pods" in result.output

    def test_verification_disabled_in_config(
        self, cli_runner: CliRunner, use_provider, tmp_path: Path
    ) -> None:
        """Test verification can be switched off in the config file."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("verification:\n  enabled: false\n")

        with patch("adminkit.provisioning.verifier.BundleVerifier.verify") as mock_verify:
            result = cli_runner.invoke(
                cli,
                ["--config", str(config_file), "provision", "-o", str(tmp_path / "admin.yaml")],
            )

        assert result.exit_code == 0, result.output
        mock_verify.assert_not_called()


class TestDiagnose:
    """Tests for the diagnose command."""

    def test_diagnose(self, cli_runner: CliRunner, use_provider) -> None:
        """Test the report sections are printed."""
        use_provider.allowed[("*", "*")] = True
        use_provider.permissions = [PermissionRule(verbs=["create"], resources=["pods"])]

        result = cli_runner.invoke(cli, ["diagnose"])

        assert result.exit_code == 0, result.output
        assert "RBAC Diagnostic" in result.output
        assert "Current context: test-context" in result.output
        assert "cluster-admin" in result.output
        assert "You have cluster-admin access" in result.output
        assert "pods [create]" in result.output
        assert "az aks get-credentials" in result.output
        assert use_provider.created == []

    def test_diagnose_without_admin(self, cli_runner: CliRunner, use_provider) -> None:
        """Test missing wildcard access is reported."""
        result = cli_runner.invoke(cli, ["diagnose"])

        assert result.exit_code == 0, result.output
        assert "You do NOT have cluster-admin access" in result.output
        assert "No create/update/delete permissions found" in result.output

    def test_diagnose_unreachable(self, cli_runner: CliRunner, use_provider) -> None:
        """Test an unreachable cluster exits with status 1."""
        use_provider.reachable = False

        result = cli_runner.invoke(cli, ["diagnose"])

        assert result.exit_code == 1
        assert "Not connected" in result.output
