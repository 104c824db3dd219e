"""
DID and Account CLI Commands

Commands:
    - trustregistry did make <address>
    - trustregistry did inspect <did>
    - trustregistry did validate <did> <address>
    - trustregistry account new
"""

from __future__ import annotations

import json
import sys
from typing import Any

import click
import yaml
from rich import box
from rich.console import Console
from rich.table import Table

from trustregistry.constants import (
    DEFAULT_DID_METHOD,
    DID_ADDRESS_START,
    DID_PADDING_START,
    DID_PAYLOAD_LENGTH,
)
from trustregistry.exceptions import InvalidAddress
from trustregistry.identity.did import DIDDecodeError, DIDValidator, build_did, decode_payload, split_did
from trustregistry.identity.signing import Account

console = Console()


def _output_json(data: object) -> None:
    """Print data as JSON to stdout."""
    click.echo(json.dumps(data, indent=2, default=str))


def _output_yaml(data: object) -> None:
    """Print data as YAML to stdout."""
    click.echo(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))


def inspect_did(did: str) -> dict[str, Any]:
    """Describe the structure of a DID without judging its binding."""
    parts = split_did(did)
    info: dict[str, Any] = {
        "did": did,
        "method": parts[0] if parts else None,
        "decoded": False,
        "payload_length": None,
        "padding_ok": False,
        "address": None,
        "error": None,
    }
    try:
        payload = decode_payload(did)
    except DIDDecodeError as exc:
        info["error"] = str(exc)
        return info

    info["decoded"] = True
    info["payload_length"] = len(payload)
    info["padding_ok"] = (
        len(payload) == DID_PAYLOAD_LENGTH
        and not any(payload[DID_PADDING_START:DID_ADDRESS_START])
    )
    address, ok = DIDValidator.extract_address(did)
    if ok:
        info["address"] = address
    return info


@click.group()
def did() -> None:
    """Mint and inspect address-controlled DIDs."""


@did.command("make")
@click.argument("address")
@click.option("--method", default=DEFAULT_DID_METHOD, show_default=True, help="DID method prefix.")
def make_did(address: str, method: str) -> None:
    """Mint a DID embedding ADDRESS."""
    try:
        click.echo(build_did(address, method=method))
    except (InvalidAddress, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)


@did.command("inspect")
@click.argument("did_text", metavar="DID")
@click.option(
    "--format", "fmt",
    type=click.Choice(["table", "json", "yaml"]),
    default="table",
    help="Output format (table, json, or yaml).",
)
def inspect_command(did_text: str, fmt: str) -> None:
    """Show the decoded layout of DID."""
    info = inspect_did(did_text)
    if fmt == "json":
        _output_json(info)
        return
    if fmt == "yaml":
        _output_yaml(info)
        return

    table = Table(box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in info.items():
        table.add_row(key, "-" if value is None else str(value))
    console.print(table)


@did.command("validate")
@click.argument("did_text", metavar="DID")
@click.argument("address")
def validate_command(did_text: str, address: str) -> None:
    """Exit 0 if DID embeds ADDRESS, 1 otherwise."""
    if DIDValidator.validate(did_text, address):
        console.print(f"[green]✓[/green] DID is bound to {address.lower()}")
        return
    console.print(f"[red]✗[/red] DID is not bound to {address}")
    sys.exit(1)


@click.group()
def account() -> None:
    """Manage signing accounts."""


@account.command("new")
@click.option("--json", "json_flag", is_flag=True, help="Output as JSON.")
@click.option("--method", default=DEFAULT_DID_METHOD, show_default=True, help="DID method prefix.")
def new_account(json_flag: bool, method: str) -> None:
    """Generate an Ed25519 account and its DID."""
    acct = Account.generate()
    try:
        account_did = build_did(acct.address, method=method)
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)
    data = {
        "address": acct.address,
        "did": account_did,
        "public_key": acct.public_key.hex(),
        "private_key": acct.private_bytes().hex(),
    }
    if json_flag:
        _output_json(data)
        return
    for key, value in data.items():
        console.print(f"[cyan]{key}[/cyan]: {value}")
