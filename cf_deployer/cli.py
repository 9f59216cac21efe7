"""
Command line interface for the Cloud Foundry deployer.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from cf_deployer.cloudfoundry import (
    CloudFoundryAppDeployer,
    CloudFoundryAppNameGenerator,
    CloudFoundryConnectionProperties,
    CloudFoundryDeployerProperties,
    load_properties,
)
from cf_deployer.exceptions import DeployerError
from cf_deployer.spi.models import AppDefinition, AppDeploymentRequest, DeploymentState

logger = logging.getLogger(__name__)
console = Console()

app = typer.Typer(
    name="cf-deployer",
    help="Deploy apps to Cloud Foundry",
    rich_markup_mode="rich",
)

STATE_STYLES = {
    DeploymentState.DEPLOYED: "green",
    DeploymentState.DEPLOYING: "yellow",
    DeploymentState.PARTIAL: "yellow",
    DeploymentState.FAILED: "red",
}


@app.callback()
def main(
    ctx: typer.Context,
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level"),
    random_prefix: bool = typer.Option(
        False,
        "--random-prefix",
        help="Add random words to the app name prefix (ids differ on every run)",
    ),
):
    """
    Manage app deployments on Cloud Foundry.

    Connection settings come from CF_URL, CF_ORG, CF_SPACE, CF_USERNAME and
    CF_PASSWORD or from a YAML file passed with --config.

    Deployment ids use the configured prefix as is, so repeated runs address
    the same app. Pass --random-prefix to opt into the randomized prefix.
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.obj = {"random_prefix": random_prefix}


def parse_pairs(values: Optional[List[str]]) -> dict[str, str]:
    """Parse repeated ``key=value`` options into a dict."""
    pairs = {}
    for value in values or []:
        key, sep, val = value.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {value!r}")
        pairs[key.strip()] = val.strip()
    return pairs


def _load_properties(
    config_file: Optional[Path], random_prefix: bool
) -> tuple[CloudFoundryDeployerProperties, CloudFoundryConnectionProperties]:
    properties, connection = load_properties(config_file)
    # Each CLI run builds a fresh generator, so only a fixed prefix is stable
    properties = properties.model_copy(
        update={"enable_random_app_name_prefix": random_prefix}
    )
    return properties, connection


def _create_deployer(
    config_file: Optional[Path], random_prefix: bool = False
) -> CloudFoundryAppDeployer:
    properties, connection = _load_properties(config_file, random_prefix)
    return CloudFoundryAppDeployer.create(properties, connection)


@app.command("deploy")
def deploy(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="App name"),
    artifact: Path = typer.Argument(..., help="Jar, zip or directory to push"),
    group: Optional[str] = typer.Option(None, "--group", "-g", help="App group"),
    app_property: Optional[List[str]] = typer.Option(
        None, "--property", "-p", help="App property as key=value"
    ),
    deployment_property: Optional[List[str]] = typer.Option(
        None, "--deployment-property", "-d", help="Deployment property as key=value"
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML configuration file"
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Give up after this many seconds"
    ),
):
    """
    Push, configure, bind and start an app.
    """
    deployment_properties = parse_pairs(deployment_property)
    if group:
        deployment_properties[CloudFoundryAppDeployer.GROUP_PROPERTY_KEY] = group

    try:
        request = AppDeploymentRequest(
            definition=AppDefinition(name=name, properties=parse_pairs(app_property)),
            resource=artifact,
            deployment_properties=deployment_properties,
        )
        deployer = _create_deployer(config_file, ctx.obj["random_prefix"])
        with console.status(f"[blue]Deploying {name}...[/blue]"):
            deployment_id = deployer.deploy(request, timeout=timeout)
    except DeployerError as e:
        console.print(f"[red]❌ Deployment failed: {e}[/red]")
        raise typer.Exit(1)
    except asyncio.TimeoutError:
        console.print(f"[red]❌ Deployment timed out after {timeout}s[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Deployed [cyan]{deployment_id}[/cyan]")


@app.command("undeploy")
def undeploy(
    deployment_id: str = typer.Argument(..., help="Deployment id"),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML configuration file"
    ),
):
    """
    Delete a deployed app and its routes.
    """
    try:
        deployer = _create_deployer(config_file)
        deployer.undeploy(deployment_id)
    except DeployerError as e:
        console.print(f"[red]❌ Undeploy failed: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Undeployed [cyan]{deployment_id}[/cyan]")


@app.command("status")
def status(
    deployment_id: str = typer.Argument(..., help="Deployment id"),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML configuration file"
    ),
):
    """
    Show the status of a deployment and its instances.
    """
    try:
        deployer = _create_deployer(config_file)
        app_status = deployer.status(deployment_id)
    except DeployerError as e:
        console.print(f"[red]❌ Status failed: {e}[/red]")
        raise typer.Exit(1)

    style = STATE_STYLES.get(app_status.state, "dim")
    console.print(
        f"[bold]{deployment_id}[/bold]: [{style}]{app_status.state.value}[/{style}]"
    )

    if app_status.instances:
        table = Table(title="Instances")
        table.add_column("Instance", style="cyan")
        table.add_column("State")
        table.add_column("Attributes", style="dim")
        for instance in app_status.instances.values():
            instance_style = STATE_STYLES.get(instance.state, "dim")
            table.add_row(
                instance.id,
                f"[{instance_style}]{instance.state.value}[/{instance_style}]",
                ", ".join(f"{k}={v}" for k, v in instance.attributes.items()),
            )
        console.print(table)


@app.command("name")
def show_name(
    ctx: typer.Context,
    app_name: str = typer.Argument(..., help="App name"),
    group: Optional[str] = typer.Option(None, "--group", "-g", help="App group"),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML configuration file"
    ),
):
    """
    Print the deployment id an app would get.
    """
    try:
        properties, _ = _load_properties(config_file, ctx.obj["random_prefix"])
        generator = CloudFoundryAppNameGenerator(properties)
    except DeployerError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    console.print(generator.generate(app_name, group))


if __name__ == "__main__":
    app()
