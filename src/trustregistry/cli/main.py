"""
Trust Registry CLI

Entry point wiring the command groups together:
- did: mint, inspect and validate address-controlled DIDs
- account: generate signing accounts
- config: inspect deployment configuration
"""

import logging
import sys

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from trustregistry import __version__
from trustregistry.cli.did_commands import _output_json, _output_yaml, account, did
from trustregistry.config import RegistryConfig

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="trustregistry")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def app(verbose: bool) -> None:
    """Trust Registry - Identity, Reputation and Validation registries for agents."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@app.group()
def config() -> None:
    """Inspect deployment configuration."""


@config.command("show")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["json", "yaml"]),
    default="yaml",
    help="Output format (json or yaml).",
)
def show_config(path: str, fmt: str) -> None:
    """Load and print the configuration at PATH."""
    try:
        cfg = RegistryConfig.from_yaml(path)
    except ValidationError as exc:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(exc))}")
        sys.exit(1)
    data = cfg.model_dump(mode="json")
    if fmt == "json":
        _output_json(data)
    else:
        _output_yaml(data)


@config.command("init")
@click.argument("path", type=click.Path(dir_okay=False))
@click.option(
    "--policy",
    type=click.Choice(["open", "require_domain", "require_did", "require_identifier", "fee"]),
    default="open",
    help="Registration policy.",
)
@click.option("--fee", type=int, default=0, help="Fee burned per registration (policy=fee).")
def init_config(path: str, policy: str, fee: int) -> None:
    """Write a default configuration to PATH."""
    try:
        cfg = RegistryConfig(policy={"kind": policy, "fee": fee})
    except ValidationError as exc:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(exc))}")
        sys.exit(1)
    cfg.to_yaml(path)
    console.print(f"[green]✓[/green] Wrote configuration to {path}")


app.add_command(did)
app.add_command(account)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
