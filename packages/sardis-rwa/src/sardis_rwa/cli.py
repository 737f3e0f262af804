"""
Sardis RWA CLI.

Usage:
    sardis-rwa [OPTIONS] COMMAND [ARGS]...
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .codec import encode_registration
from .config import load_settings
from .exceptions import ConfigurationError, EncodingError, InvalidRequestError, RegistrationFailedError
from .logging_utils import configure_logging
from .networks import list_networks
from .trigger import parse_registration_payload
from .workflow import WorkflowRunner

console = Console()


@click.group()
@click.version_option(package_name="sardis-rwa", message="%(prog)s %(version)s")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON")
@click.pass_context
def cli(ctx, verbose: bool, json_logs: bool):
    """Sardis RWA - luxury watch registration and tokenization."""
    ctx.ensure_object(dict)
    configure_logging(level=logging.DEBUG if verbose else logging.INFO, json_format=json_logs)
    ctx.obj["verbose"] = verbose


@cli.command()
@click.option("--testnet-only", is_flag=True, help="Only list test networks")
def networks(testnet_only: bool):
    """List supported chain selectors."""
    table = Table(title="Supported Networks")
    table.add_column("Chain Selector Name", style="cyan")
    table.add_column("Selector", justify="right")
    table.add_column("Chain ID", justify="right")
    table.add_column("Network")
    table.add_column("Testnet")

    for network in list_networks(testnet_only=testnet_only):
        table.add_row(
            network.chain_selector_name,
            str(network.chain_selector),
            str(network.chain_id),
            network.display_name,
            "yes" if network.is_testnet else "no",
        )

    console.print(table)


@cli.command()
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def encode(payload_file: Path):
    """Print the ABI-encoded report for a registration payload."""
    try:
        request = parse_registration_payload(payload_file.read_bytes())
        record = encode_registration(request)
    except (InvalidRequestError, EncodingError) as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        raise SystemExit(1)

    console.print(f"Report ({len(record)} bytes): {record.hex()}")
    console.print(f"keccak256: 0x{record.digest.hex()}")


@cli.command()
@click.option(
    "--config", "config_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Workflow config JSON file",
)
@click.option(
    "--payload", "payload_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="HTTP trigger payload JSON file",
)
def simulate(config_file: Path, payload_file: Path):
    """Run one HTTP trigger event through the workflow."""
    try:
        settings = load_settings(config_file)
        runner = WorkflowRunner.from_settings(settings)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {escape(e.message)}[/red]")
        raise SystemExit(2)

    handler = runner.handler()
    console.print("\n[bold blue]Luxury Watch Tokenization Workflow[/bold blue]\n")
    console.print(f"Network: [cyan]{handler.network.display_name}[/cyan]")
    console.print(f"Mode: [cyan]{settings.chain_mode}[/cyan]")
    console.print(f"Receiver: [cyan]{handler.pipeline.receiver_address}[/cyan]\n")

    async def _dispatch_once(payload: bytes) -> str:
        try:
            return await runner.dispatch(payload)
        finally:
            await runner.close()

    try:
        summary = asyncio.run(_dispatch_once(payload_file.read_bytes()))
    except RegistrationFailedError as e:
        console.print(f"[red]✗ {escape(e.message)}[/red]")
        raise SystemExit(1)

    console.print(f"[green]✓ {escape(summary)}[/green]")
    tx_hash = summary.rsplit("TX: ", 1)[-1]
    tx_url = handler.network.tx_url(tx_hash)
    if tx_url and settings.chain_mode == "live":
        console.print(f"Verify execution: {tx_url}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
