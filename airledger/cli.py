"""
AirLedger CLI
==============

Click-based command-line interface for AirLedger.

Commands:
    airledger ingest FILE [FILE ...]   Merge observation files into the ledger
    airledger networks                 List known networks
    airledger stats                    Ledger statistics
    airledger analyze                  Population-level security sweep
    airledger export                   Write a ledger snapshot
    airledger clear                    Remove every network
    airledger vendor BSSID             Vendor lookup and MAC analysis
    airledger channel FREQ             Frequency to channel mapping

Common options:
    --config PATH       TOML configuration file
    --database PATH     Override the ledger snapshot path
    --quiet             Suppress console output

Exit status of ``analyze`` (and ``ingest --analyze``): 0 for SAFE or
CAUTION, 1 for WARNING, 2 for DANGER.

References:
    - Click Documentation: https://click.palletsprojects.com/
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from shared.config import AirConfig
from shared.console import AirConsole

from airledger import __version__


# ---------------------------------------------------------------------------
# CLI Group
# ---------------------------------------------------------------------------


@click.group(
    name="airledger",
    help=(
        "AIRLEDGER - Wireless Network Observation Ledger\n\n"
        "Keep a deduplicated history of every WiFi network seen by a "
        "scanner and flag evil twins, security downgrades, rogue hardware "
        "and coordinated attacks."
    ),
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to AirLedger configuration file (TOML).",
)
@click.option(
    "--database",
    "database_path",
    type=click.Path(),
    default=None,
    help="Ledger snapshot file (overrides ledger.database_path).",
)
@click.option(
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress console output.",
)
@click.version_option(__version__, prog_name="airledger")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[str],
    database_path: Optional[str],
    quiet: bool,
) -> None:
    """AirLedger - main CLI entry point."""
    ctx.ensure_object(dict)

    try:
        config = AirConfig.load(config_path) if config_path else AirConfig()
    except FileNotFoundError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if database_path:
        config.ledger.database_path = database_path

    ctx.obj["config"] = config
    ctx.obj["console"] = AirConsole(quiet=quiet)


def _engine(ctx: click.Context):
    from airledger.core.engine import LedgerEngine

    return LedgerEngine(config=ctx.obj["config"], console=ctx.obj["console"])


# ---------------------------------------------------------------------------
# Ingest
# ---------------------------------------------------------------------------


@cli.command(
    name="ingest",
    help=(
        "Merge observation files into the ledger.\n\n"
        "Each FILE holds one scan: a JSON array of observations or one "
        "JSON object per line. Files are processed in the order given. "
        "With --analyze a security sweep runs after every file, so "
        "networks disappearing between scans are detected."
    ),
)
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--analyze", "-a", "run_analysis",
    is_flag=True,
    default=False,
    help="Run the security sweep after each file.",
)
@click.option(
    "--output", "-o",
    type=click.Path(),
    default=None,
    help="JSON report path for the final sweep (requires --analyze).",
)
@click.pass_context
def ingest(
    ctx: click.Context,
    files: tuple[str, ...],
    run_analysis: bool,
    output: Optional[str],
) -> None:
    """Merge observation files into the ledger."""
    from airledger.core.engine import load_observations

    try:
        batches = [load_observations(path) for path in files]
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    engine = _engine(ctx)
    engine.output.display_banner()
    report = None
    for idx, batch in enumerate(batches):
        engine.ingest(batch)
        if run_analysis:
            last = idx == len(batches) - 1
            report = engine.analyze(output if last else None)

    if report is not None and report.risk_level.exit_code:
        sys.exit(report.risk_level.exit_code)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@cli.command(name="networks", help="List known networks, most recently seen first.")
@click.option(
    "--limit", "-n",
    type=click.IntRange(min=1),
    default=None,
    help="Show at most this many networks.",
)
@click.pass_context
def networks(ctx: click.Context, limit: Optional[int]) -> None:
    """List known networks."""
    engine = _engine(ctx)
    entries = engine.networks()
    engine.output.display_networks(entries, limit=limit)


@cli.command(name="stats", help="Show ledger statistics.")
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show ledger statistics."""
    engine = _engine(ctx)
    engine.output.display_stats(engine.stats())


@cli.command(
    name="analyze",
    help=(
        "Run the population-level security sweep over the ledger.\n\n"
        "Detects evil twins, rogue access points, karma attacks, beacon "
        "flooding, channel concentration, jamming and vendor anomalies."
    ),
)
@click.option(
    "--output", "-o",
    type=click.Path(),
    default=None,
    help="Write the report as JSON to this path.",
)
@click.pass_context
def analyze(ctx: click.Context, output: Optional[str]) -> None:
    """Run the security sweep."""
    engine = _engine(ctx)
    engine.output.display_banner()
    report = engine.analyze(output)
    if report.risk_level.exit_code:
        sys.exit(report.risk_level.exit_code)


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------


@cli.command(name="export", help="Write a full ledger snapshot as JSON.")
@click.option(
    "--output", "-o",
    type=click.Path(),
    default=None,
    help="Snapshot path (default: timestamped file in the output directory).",
)
@click.pass_context
def export(ctx: click.Context, output: Optional[str]) -> None:
    """Export the ledger."""
    engine = _engine(ctx)
    path = engine.export(output)
    ctx.obj["console"].success(f"Exported {len(engine.ledger)} networks to {path}")


@cli.command(name="clear", help="Remove every network from the ledger.")
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask for confirmation.")
@click.pass_context
def clear(ctx: click.Context, yes: bool) -> None:
    """Clear the ledger."""
    if not yes:
        click.confirm("Remove every network from the ledger?", abort=True)
    engine = _engine(ctx)
    engine.clear()
    ctx.obj["console"].success("Ledger cleared")


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


@cli.command(name="vendor", help="Look up the vendor of a BSSID and analyse its MAC address.")
@click.argument("bssid")
@click.pass_context
def vendor(ctx: click.Context, bssid: str) -> None:
    """Vendor lookup."""
    engine = _engine(ctx)
    engine.output.display_vendor(engine.lookup_vendor(bssid))


@cli.command(name="channel", help="Map a centre frequency in MHz to its WiFi channel.")
@click.argument("frequency", type=int)
@click.pass_context
def channel(ctx: click.Context, frequency: int) -> None:
    """Channel lookup."""
    engine = _engine(ctx)
    engine.output.display_channel(engine.channel_info(frequency))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Entry point for the AirLedger CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
