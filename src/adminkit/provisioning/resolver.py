"""Command-line option resolution for the provisioning workflow."""

from collections.abc import Callable, Sequence
from datetime import timedelta
from typing import Any

import click
from pydantic import ValidationError

from adminkit.core.exceptions import InvalidArgumentError
from adminkit.core.models import (
    DEFAULT_CLUSTER_ROLE,
    DEFAULT_CONTEXT_NAME,
    DEFAULT_DURATION,
    DEFAULT_NAMESPACE,
    DEFAULT_OUTPUT,
    DEFAULT_SERVICE_ACCOUNT,
    ProvisioningConfig,
)
from adminkit.utils.duration import parse_duration

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

# ProvisioningConfig field -> flag, for error messages
FIELD_FLAGS = {
    "namespace": "--namespace",
    "identity_name": "--service-account",
    "privilege_role": "--cluster-role",
    "context_label": "--context-name",
    "output_path": "--output",
    "token_duration": "--duration",
    "skip_create": "--skip-create",
}

F = Callable[..., Any]


class DurationParamType(click.ParamType):
    """Click type for kubectl-style durations."""

    name = "duration"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None):
        if isinstance(value, timedelta):
            return value
        try:
            duration = parse_duration(str(value))
        except ValueError as e:
            self.fail(str(e), param, ctx)
        # Token lifetimes are whole seconds
        if duration < timedelta(seconds=1):
            self.fail(f"{value!r} is shorter than one second", param, ctx)
        return duration


DURATION = DurationParamType()


class StrictCommand(click.Command):
    """Command whose usage errors exit with status 1 instead of click's 2."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = 1
            raise


class StrictGroup(click.Group):
    """Group whose usage errors exit with status 1 instead of click's 2."""

    command_class = StrictCommand

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = 1
            raise

    def resolve_command(self, ctx: click.Context, args: list[str]):
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError as e:
            e.exit_code = 1
            raise


def provisioning_options(func: F) -> F:
    """Attach the provisioning options to a click command."""
    options = [
        click.option(
            "-n",
            "--namespace",
            default=DEFAULT_NAMESPACE,
            show_default=True,
            help="Target namespace",
        ),
        click.option(
            "-s",
            "--service-account",
            default=DEFAULT_SERVICE_ACCOUNT,
            show_default=True,
            help="Service account name",
        ),
        click.option(
            "-r",
            "--cluster-role",
            default=DEFAULT_CLUSTER_ROLE,
            show_default=True,
            help="Cluster role to bind",
        ),
        click.option(
            "-c",
            "--context-name",
            default=DEFAULT_CONTEXT_NAME,
            show_default=True,
            help="Context name in the exported kubeconfig",
        ),
        click.option(
            "-o",
            "--output",
            default=DEFAULT_OUTPUT,
            show_default=True,
            help="Output kubeconfig file",
        ),
        click.option(
            "-d",
            "--duration",
            "token_duration",
            type=DURATION,
            default=DEFAULT_DURATION,
            show_default=True,
            help="Token lifetime (e.g. 8760h, 24h, 1h30m)",
        ),
        click.option(
            "--skip-create",
            is_flag=True,
            default=False,
            help="Assume the service account and binding already exist",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def config_from_options(
    namespace: str,
    service_account: str,
    cluster_role: str,
    context_name: str,
    output: str,
    token_duration: timedelta,
    skip_create: bool,
    **_: Any,
) -> ProvisioningConfig:
    """Build a ProvisioningConfig from parsed option values.

    Raises:
        InvalidArgumentError: If a value violates the config invariants
    """
    try:
        return ProvisioningConfig(
            namespace=namespace,
            identity_name=service_account,
            privilege_role=cluster_role,
            context_label=context_name,
            output_path=output,
            token_duration=token_duration,
            skip_create=skip_create,
        )
    except ValidationError as e:
        error = e.errors()[0]
        field = str(error["loc"][0]) if error["loc"] else ""
        flag = FIELD_FLAGS.get(field, field)
        raise InvalidArgumentError(f"Invalid value for {flag}: {error['msg']}") from e


@click.command("provision", cls=StrictCommand, context_settings=CONTEXT_SETTINGS)
@provisioning_options
def _options_command(**_: Any) -> None:
    """Provision a service account and export an admin kubeconfig."""


def resolve_config(tokens: Sequence[str]) -> ProvisioningConfig | None:
    """Resolve command-line tokens into a ProvisioningConfig.

    Args:
        tokens: Option tokens, without the program name

    Returns:
        Resolved config, or None when help was requested (usage has been printed)

    Raises:
        InvalidArgumentError: If an option is unknown or a value is invalid
    """
    try:
        ctx = _options_command.make_context("provision", list(tokens))
    except click.exceptions.Exit as e:
        if e.exit_code == 0:
            return None
        raise
    except click.UsageError as e:
        raise InvalidArgumentError(e.format_message()) from e

    with ctx:
        return config_from_options(**ctx.params)
