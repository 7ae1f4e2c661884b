"""CLI main entry point."""

import json
import random
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from . import __version__
from .agent import ComposeAgent
from .config import REGIONS, Settings, load_settings
from .errors import E2EError, SpecError
from .newrelic import NerdGraphClient, QueryClient
from .runtime import (
    CommandRunner,
    EntitiesTester,
    MetricsTester,
    NRQLTester,
    Runner,
    command_logger,
)
from .shared.logging import configure_logging
from .spec import Definition, load_definition, parse_metrics_file

error_console = Console(stderr=True, soft_wrap=True)


def build_runner(
    settings: Settings,
    definition: Definition,
    client: QueryClient,
    rng: random.Random | None = None,
) -> Runner:
    """Wire testers, agent and command runner for a definition."""
    spec_parent_dir = settings.spec_parent_dir

    testers = [
        EntitiesTester(client, settings.account_id),
        MetricsTester(client, settings.account_id, spec_parent_dir),
        NRQLTester(client, settings.account_id),
    ]

    agent = None
    if settings.agent_enabled:
        agent = ComposeAgent(
            spec_parent_dir,
            settings.license_key,
            custom_test_key=definition.custom_test_key,
            extensions=definition.agent,
        )

    return Runner(
        definition,
        testers,
        agent=agent,
        commands=CommandRunner(command_logger(definition.plain_logs)),
        spec_parent_dir=spec_parent_dir,
        retry_attempts=settings.retry_attempts,
        retry_seconds=settings.retry_seconds,
        commit_sha=settings.commit_sha,
        rng=rng,
    )


def definition_problems(definition: Definition, spec_parent_dir: Path) -> list[str]:
    """Problems with the files a definition refers to."""
    problems = []
    for scenario in definition.scenarios:
        for integration in scenario.integrations:
            for binary in (integration.binary_path, integration.exporter_binary_path):
                if binary and not (spec_parent_dir / binary).is_file():
                    problems.append(f"{integration.name}: binary not found: {binary}")
        for assertion in scenario.tests.metrics:
            source = spec_parent_dir / assertion.source
            try:
                parse_metrics_file(source.read_bytes())
            except OSError as e:
                problems.append(f"metrics source file: {e}")
            except SpecError as e:
                problems.append(f"metrics source file {assertion.source}: {e}")
    return problems


@click.group()
@click.option("-c", "--config", type=click.Path(), help="Config file path")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
@click.option("--json-logs", is_flag=True, help="Log as JSON")
@click.pass_context
def cli(ctx: click.Context, config: str, verbose: bool, json_logs: bool) -> None:
    """End-to-end tests for New Relic infrastructure integrations."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["json_logs"] = json_logs


@cli.command()
@click.option("--spec-path", type=click.Path(), help="Spec file path")
@click.option("--license-key", help="License key the agent reports with")
@click.option("--api-key", help="User API key for queries")
@click.option("--account-id", type=int, help="Account queried")
@click.option("--agent-enabled/--no-agent", default=None, help="Run the agent container")
@click.option("--retry-attempts", type=int, help="Attempts per tester")
@click.option("--retry-seconds", type=int, help="Seconds between attempts")
@click.option("--commit-sha", help="Commit the scenario tags derive from")
@click.option("--region", type=click.Choice(REGIONS, case_sensitive=False), help="Account region")
@click.pass_context
def run(
    ctx: click.Context,
    spec_path: str | None,
    license_key: str | None,
    api_key: str | None,
    account_id: int | None,
    agent_enabled: bool | None,
    retry_attempts: int | None,
    retry_seconds: int | None,
    commit_sha: str | None,
    region: str | None,
) -> None:
    """Run every scenario of a spec file."""
    try:
        settings = load_settings(
            ctx.obj["config_path"],
            overrides={
                "spec_path": spec_path,
                "license_key": license_key,
                "api_key": api_key,
                "account_id": account_id,
                "agent_enabled": agent_enabled,
                "retry_attempts": retry_attempts,
                "retry_seconds": retry_seconds,
                "commit_sha": commit_sha,
                "region": region,
                "verbose": True if ctx.obj["verbose"] else None,
            },
        )
        configure_logging(
            "debug" if settings.verbose else "info", json_output=ctx.obj["json_logs"]
        )
        settings.validate()
        definition = load_definition(settings.spec_path)

        with NerdGraphClient(settings.api_key, region=settings.region) as client:
            build_runner(settings, definition, client, rng=random.Random()).run()
    except E2EError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    error_console.print("[green]✓[/green] All scenarios passed")


@cli.command()
@click.argument("spec_path", type=click.Path(exists=True, dir_okay=False))
def validate(spec_path: str) -> None:
    """Validate a spec file without running it."""
    click.echo(f"Validating: {spec_path}\n")

    try:
        definition = load_definition(spec_path)
    except E2EError as e:
        click.echo("ERRORS:")
        click.echo(f"  ✗ {e}")
        sys.exit(1)

    errors = definition_problems(definition, Path(spec_path).resolve().parent)
    if errors:
        click.echo("ERRORS:")
        for error in errors:
            click.echo(f"  ✗ {error}")
        click.echo(f"\nValidation failed with {len(errors)} errors")
        sys.exit(1)

    click.echo(f"✓ Validation passed ({len(definition.scenarios)} scenarios)")


@cli.command()
def version() -> None:
    """Show version information."""
    click.echo(f"nri-e2e version {__version__}")


@cli.group()
def config() -> None:
    """Inspect settings."""
    pass


@config.command("show")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--show-secrets", is_flag=True, help="Do not mask keys")
@click.pass_context
def config_show(ctx: click.Context, json_output: bool, show_secrets: bool) -> None:
    """Show resolved settings and where each value comes from."""
    try:
        settings = load_settings(ctx.obj["config_path"])
    except E2EError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    data = settings.to_dict(reveal_secrets=show_secrets)
    if json_output:
        click.echo(json.dumps(data, indent=2))
        return

    for key, value in data.items():
        click.echo(f"{key}: {value}  ({settings.get_source(key)})")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
