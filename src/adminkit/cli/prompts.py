"""Interactive prompts used by the CLI."""

from rich.console import Console
from rich.prompt import Prompt

from adminkit.provisioning.provisioner import RepairDecision


def prompt_repair_decision(role_name: str, console: Console | None = None) -> RepairDecision:
    """Ask the operator how to proceed when the superuser role is missing.

    End of input (e.g. a closed, non-interactive stdin) counts as abort.
    """
    console = console or Console()
    console.print(f"\n[yellow]ClusterRole '{role_name}' not found in this cluster.[/yellow]")
    console.print("  1) Create a ClusterRole with full permissions on all resources")
    console.print("  2) Use a different existing ClusterRole")
    console.print("  3) Abort")

    try:
        choice = Prompt.ask(
            "Select an option", choices=["1", "2", "3"], default="3", console=console
        )
        if choice == "1":
            return RepairDecision.create_role()
        if choice == "2":
            name = Prompt.ask("ClusterRole name", console=console)
            return RepairDecision.use_alternate(name)
    except EOFError:
        console.print()

    return RepairDecision.abort()
