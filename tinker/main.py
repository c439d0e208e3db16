#!/usr/bin/env python3
"""
Tinker - Main Entry Point

This is the thin command-line layer that:
1. Loads configuration
2. Builds the orchestrator
3. Runs one lifecycle operation and prints its outcome

All lifecycle logic is in the modules, following black box principles.
"""

import asyncio
import functools
import os
import sys
from dataclasses import dataclass
from typing import Dict, List

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tinker.config import (
    ClusterConfig,
    ConfigProvider,
    EnvConfigProvider,
    YamlConfigProvider,
    default_kube_config,
)
from tinker.errors import PARTIAL_FAILURE_EXIT_CODE, CheckFailedError, TinkerError
from tinker.logging_config import configure_logging
from tinker.modules.api import CheckReport, OperationReport
from tinker.modules.orchestrator import ColdCycle, LifecycleOrchestrator, OrchestratorFactory

# Rich console for progress output
console = Console()

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@dataclass
class CommandContext:
    """Options shared by every subcommand."""
    version: str
    cluster: ClusterConfig
    provider: ConfigProvider

    def orchestrator(self) -> LifecycleOrchestrator:
        return OrchestratorFactory.build(self.cluster, self.provider.get_exec_config())

    def cycle(self) -> ColdCycle:
        return ColdCycle(
            self.orchestrator(),
            self.provider.get_cycle_timing(),
            progress=lambda line: console.print(line),
        )


def common_options(func):
    """Attach the cluster options to a subcommand and hand it a CommandContext."""

    @click.option("--version", "-v", "version", default="5.2", show_default=True,
                  help="Backup set to write or restore")
    @click.option("--kube-config", "-c", "kube_config", default=default_kube_config(),
                  show_default=True, help="Kube config file path")
    @click.option("--namespace", "-n", "namespace", required=True, help="Namespace of the TiDB cluster")
    @click.option("--context", "kube_context", default=None, help="Kube config context to use")
    @click.option("--config", "config_file", default=None,
                  type=click.Path(exists=True, dir_okay=False), help="YAML settings file")
    @click.option("--log-level", "log_level", default=lambda: os.getenv("TINKER_LOG_LEVEL", "INFO"),
                  type=click.Choice(LOG_LEVELS, case_sensitive=False), help="Logging level")
    @functools.wraps(func)
    def wrapper(version, kube_config, namespace, kube_context, config_file, log_level, **kwargs):
        configure_logging(log_level)
        try:
            provider = YamlConfigProvider(config_file) if config_file else EnvConfigProvider()
            # Surface bad settings before any cluster call
            provider.get_exec_config()
            provider.get_cycle_timing()
        except (OSError, ValueError) as e:
            raise click.UsageError(f"Invalid configuration: {e}")
        ctx = CommandContext(
            version=version,
            cluster=ClusterConfig(namespace=namespace, kube_config=kube_config, context=kube_context),
            provider=provider,
        )
        try:
            return func(ctx, **kwargs)
        except TinkerError as e:
            console.print(f"[red]{type(e).__name__}: {escape(str(e))}[/red]")
            sys.exit(e.exit_code)

    return wrapper


@click.group()
def cli():
    """Data backup and recovery for TiDB clusters on Kubernetes."""


@cli.command()
@common_options
def stop(ctx: CommandContext):
    """Stop every component and keep the pods in debug mode."""
    asyncio.run(ctx.orchestrator().stop())
    console.print("[green]stop success[/green]")


@cli.command()
@common_options
def start(ctx: CommandContext):
    """Start every component and wait until it is up."""
    report = asyncio.run(ctx.cycle().start_and_wait())
    print_check_report(report)


@cli.command()
@common_options
def check(ctx: CommandContext):
    """Check that every component is up."""
    report = asyncio.run(ctx.orchestrator().check())
    print_check_report(report)
    if not report.ok:
        raise CheckFailedError(f"check failed for roles: {', '.join(report.failed_roles)}")
    console.print("[green]check success[/green]")


@cli.command(name="list")
@common_options
def list_versions(ctx: CommandContext):
    """List the backup versions available on each pod."""
    inventory = asyncio.run(ctx.orchestrator().list_versions())
    print_inventory(inventory)


@cli.command()
@common_options
def back(ctx: CommandContext):
    """Stop the cluster, back up its data into --version and start it again."""
    report = asyncio.run(ctx.cycle().run_backup(ctx.version))
    finish_operation(report)


@cli.command()
@common_options
def restore(ctx: CommandContext):
    """Stop the cluster, restore its data from --version and start it again."""
    report = asyncio.run(ctx.cycle().run_restore(ctx.version))
    finish_operation(report)


def print_check_report(report: CheckReport) -> None:
    table = Table(title="Component status")
    table.add_column("Role")
    table.add_column("Pod")
    table.add_column("Tokens", justify="right")
    table.add_column("Status")
    for status in report.statuses:
        verdict = "[green]ok[/green]" if status.ok else f"[red]{escape(status.reason or 'unexpected state')}[/red]"
        tokens = "-" if status.token_count is None else str(status.token_count)
        table.add_row(status.role, status.pod, tokens, verdict)
    console.print(table)


def print_inventory(inventory: Dict[str, List[str]]) -> None:
    table = Table(title="Backup versions")
    table.add_column("Pod")
    table.add_column("Versions")
    for pod, versions in sorted(inventory.items()):
        table.add_row(pod, ", ".join(versions) or "-")
    console.print(table)


def finish_operation(report: OperationReport) -> None:
    """Print the outcome of a backup or restore; exit 2 if some pods failed."""
    if not report.is_partial:
        console.print(
            f"[green]{report.operation.value} {report.version} succeeded on "
            f"{len(report.outcomes)} pods[/green]"
        )
        return

    console.print(
        f"[yellow]{report.operation.value} {report.version} failed on "
        f"{len(report.failed)} of {len(report.outcomes)} pods:[/yellow]"
    )
    for outcome in report.failed:
        console.print(f"  - {outcome.pod} ({outcome.role}): {escape(outcome.error or '')}")
    sys.exit(PARTIAL_FAILURE_EXIT_CODE)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
