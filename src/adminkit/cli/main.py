"""Main CLI entry point for adminkit."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from adminkit import __version__
from adminkit.core.exceptions import (
    AdminKitError,
    InvalidArgumentError,
    PreconditionFailedError,
)
from adminkit.interfaces.exceptions import ClusterProviderError, InterfaceError
from adminkit.provisioning.resolver import (
    CONTEXT_SETTINGS,
    StrictGroup,
    config_from_options,
    provisioning_options,
)
from adminkit.utils.duration import format_duration
from adminkit.utils.logging import bind_run_context, get_logger, log_error, setup_logging

if TYPE_CHECKING:
    from adminkit.core.config import AdminKitConfig
    from adminkit.core.models import DiagnosticReport, VerificationResult
    from adminkit.interfaces.cluster_provider import ClusterProvider
    from adminkit.provisioning.workflow import WorkflowResult

console = Console()
logger = get_logger(__name__)

ACTION_STYLES = {
    "created": "[green]✓ created[/green]",
    "existing": "[cyan]• already exists[/cyan]",
    "verified": "[cyan]✓ verified[/cyan]",
}


class AdminKitContext:
    """Shared context for CLI commands with lazy initialization."""

    def __init__(self, config_path: str | None = None):
        """Initialize context with config path.

        Args:
            config_path: Explicit configuration file, or None for the default location
        """
        self.config_path = config_path
        self._config: AdminKitConfig | None = None

    @property
    def config(self) -> AdminKitConfig:
        """Get or load config lazily."""
        if self._config is None:
            from adminkit.core.config import AdminKitConfig

            self._config = AdminKitConfig.load(self.config_path)
        return self._config

    def provider(
        self, kubeconfig: str | None = None, context: str | None = None
    ) -> ClusterProvider:
        """Create a cluster provider for a kubeconfig and context.

        Raises:
            PreconditionFailedError: If no usable cluster configuration is found
        """
        from adminkit.adapters.k8s_adapter import KubernetesAdapter

        try:
            return KubernetesAdapter(kubeconfig_path=kubeconfig, context=context)
        except ClusterProviderError as e:
            raise PreconditionFailedError(
                f"No usable Kubernetes configuration ({kubeconfig or 'default kubeconfig'}): {e}"
            ) from e


def _fail(ctx: click.Context, error: Exception, operation: str) -> None:
    console.print(f"[red]Error: {escape(str(error))}[/red]")
    log_error(logger, error, operation=operation)
    ctx.exit(1)


@click.group(cls=StrictGroup, context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to configuration file (default: ~/.adminkit/config.yaml if present)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override the configured log level",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "console"]),
    default=None,
    help="Override the configured log format",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: str | None,
    log_level: str | None,
    log_format: str | None,
) -> None:
    """adminkit - bootstrap administrative access to Kubernetes clusters."""
    ctx.obj = AdminKitContext(config_path=config_path)

    try:
        logging_config = ctx.obj.config.logging
    except AdminKitError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        ctx.exit(1)

    setup_logging(
        level=log_level or logging_config.level,
        format=log_format or logging_config.format,
        output=logging_config.output,
    )


@cli.command()
@provisioning_options
@click.option(
    "--kubeconfig", default=None, help="Kubeconfig to provision from (default: client default)"
)
@click.option(
    "--context", "source_context", default=None, help="Kubeconfig context to provision from"
)
@click.option(
    "--no-verify", is_flag=True, default=False, help="Skip verifying the exported kubeconfig"
)
@click.pass_context
def provision(
    ctx: click.Context,
    kubeconfig: str | None,
    source_context: str | None,
    no_verify: bool,
    **options: Any,
) -> None:
    """Create an admin service account and export a kubeconfig for it."""
    from adminkit.adapters.k8s_adapter import KubernetesAdapter
    from adminkit.cli.prompts import prompt_repair_decision
    from adminkit.provisioning.verifier import BundleVerifier
    from adminkit.provisioning.workflow import ProvisioningWorkflow

    try:
        config = config_from_options(**options)
    except InvalidArgumentError as e:
        error = click.UsageError(str(e), ctx)
        error.exit_code = 1
        raise error from e

    bind_run_context(namespace=config.namespace, service_account=config.identity_name)
    adminkit_ctx: AdminKitContext = ctx.obj
    settings = adminkit_ctx.config

    console.print("[bold blue]adminkit provision[/bold blue]")
    console.print(f"Namespace:       {config.namespace}")
    console.print(f"Service account: {config.identity_name}")
    console.print(f"Cluster role:    {config.privilege_role}")
    console.print(f"Context name:    {config.context_label}")
    console.print(f"Output:          {config.output_path}")
    console.print(f"Token duration:  {format_duration(config.token_duration)}")
    if config.skip_create:
        console.print("[yellow]Skipping creation; the service account must already exist[/yellow]")
    console.print()

    verifier = None
    if settings.verification.enabled and not no_verify:
        verifier = BundleVerifier(
            provider_factory=KubernetesAdapter,
            list_permissions=settings.verification.list_permissions,
        )

    try:
        provider = adminkit_ctx.provider(kubeconfig, source_context)
        console.print(f"Current context: {provider.current_context()}\n")
        workflow = ProvisioningWorkflow(
            provider,
            decide=lambda role: prompt_repair_decision(role, console),
            verifier=verifier,
            settings=settings,
        )
        result = workflow.run(config)
    except (AdminKitError, InterfaceError) as e:
        _fail(ctx, e, "provision")
        return
    except OSError as e:
        _fail(ctx, e, "write_bundle")
        return

    _print_workflow_result(result)


def _print_workflow_result(result: WorkflowResult) -> None:
    console.print("\n[bold]Resources[/bold]")
    for outcome in result.provisioning.outcomes:
        location = f" (namespace {outcome.namespace})" if outcome.namespace else ""
        console.print(
            f"  {outcome.kind} {outcome.name}{location}: {ACTION_STYLES[outcome.action.value]}"
        )
    console.print(f"  Binding name: {result.provisioning.binding_name}")

    console.print("\n[bold]Credential[/bold]")
    cluster = result.cluster_info
    console.print(f"  Cluster: {cluster.cluster_name} ({cluster.server_url})")
    console.print(f"  Token source: {result.credential.source}")
    if result.credential.expiration_seconds is None:
        console.print("  [yellow]Token lifetime chosen by the API server[/yellow]")

    console.print(f"\n[green]✓ Kubeconfig written to {result.bundle_path}[/green]")

    if result.verification is not None:
        _print_verification(result.verification)

    console.print("\n[bold]Usage[/bold]")
    console.print(f"  export KUBECONFIG={result.bundle_path}")
    console.print(f"  kubectl --kubeconfig={result.bundle_path} get pods")


def _print_verification(verification: VerificationResult) -> None:
    console.print("\n[bold]Verification[/bold]")
    if verification.connected:
        console.print(
            "  [green]✓ Connected with the new kubeconfig "
            f"({verification.node_count} node(s))[/green]"
        )
        if verification.permissions:
            console.print("  Granted permissions:")
            for rule in verification.permissions:
                console.print(f"    {rule}", markup=False, highlight=False)
        return

    error = escape(verification.error or "")
    console.print(f"  [yellow]⚠ Could not list nodes with the new kubeconfig: {error}[/yellow]")
    if verification.probe_allowed is True:
        console.print("  [green]✓ Can list pods in the configured namespace[/green]")
    elif verification.probe_allowed is False:
        console.print("  [red]✗ Cannot list pods in the configured namespace[/red]")
    else:
        console.print("  [yellow]Permission probe could not be run[/yellow]")


@cli.command()
@click.option("--kubeconfig", default=None, help="Kubeconfig to inspect (default: client default)")
@click.option("--context", "source_context", default=None, help="Kubeconfig context to inspect")
@click.pass_context
def diagnose(ctx: click.Context, kubeconfig: str | None, source_context: str | None) -> None:
    """Diagnose RBAC configuration of the current cluster."""
    from adminkit.diagnostics.inspector import RBACInspector

    console.print("[bold magenta]=== RBAC Diagnostic ===[/bold magenta]\n")

    try:
        provider = ctx.obj.provider(kubeconfig, source_context)
        console.print(f"Current context: {provider.current_context()}\n")
        report = RBACInspector(provider).inspect()
    except (AdminKitError, InterfaceError) as e:
        _fail(ctx, e, "diagnose")
        return

    _print_report(report)


def _print_report(report: DiagnosticReport) -> None:
    from adminkit.diagnostics.inspector import AKS_HINTS

    roles = Table(title="Admin-related cluster roles", show_header=False)
    roles.add_column("Name", style="cyan")
    for name in report.admin_roles:
        roles.add_row(name)
    if report.admin_roles:
        console.print(roles)
    else:
        console.print("[yellow]No admin-related cluster roles found[/yellow]")

    console.print("\n[bold]Well-known cluster roles[/bold]")
    console.print(f"  Present: {', '.join(report.well_known_roles) or 'none'}")
    console.print(f"  system: roles: {report.system_role_count}")

    console.print("\n[bold]Current user permissions[/bold]")
    if report.has_wildcard_access:
        console.print("  [green]✓ You have cluster-admin access[/green]")
    else:
        console.print("  [red]✗ You do NOT have cluster-admin access[/red]")

    console.print("\n[bold]What you CAN do[/bold]")
    for rule in report.privileged_rules:
        console.print(f"  {rule}", markup=False, highlight=False)
    if not report.privileged_rules:
        console.print("  [yellow]No create/update/delete permissions found[/yellow]")

    accounts = Table(title="Service accounts in kube-system", show_header=False)
    accounts.add_column("Name")
    for name in report.service_accounts:
        accounts.add_row(name)
    console.print()
    console.print(accounts)

    console.print("\n[bold]For AKS-specific scenarios[/bold]")
    for number, hint in enumerate(AKS_HINTS, start=1):
        console.print(f"{number}. {hint}", highlight=False)


if __name__ == "__main__":
    cli()
