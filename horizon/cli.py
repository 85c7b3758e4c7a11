"""
Command-line interface for horizon state validation.

Usage:
    horizon-validate generate chain.json --blocks 20 --spend 1
    horizon-validate info chain.json
    horizon-validate validate chain.json --check-mmr-roots
    horizon-validate validate chain.json --height 10 --format markdown
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from .config import HorizonConfig, configure_logging
from .core.builder import ChainBuilder
from .core.consensus import ConsensusManager, Network
from .core.crypto import CommitmentFactory
from .core.horizon_sync import HorizonSyncValidators
from .core.serialization import dump_snapshot, load_snapshot
from .core.storage import BlockchainDatabase
from .core.validation import ValidationEngine, generate_report
from .exceptions import ChainStorageError, ConfigurationError, SnapshotError

logger = logging.getLogger(__name__)

EXIT_VALID = 0
EXIT_INVALID = 1
EXIT_ERROR = 2


def fail(message: str, code: int = EXIT_ERROR) -> None:
    click.echo(click.style(f"✗ {message}", fg="red"), err=True)
    sys.exit(code)


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="YAML or JSON config file")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, config_path: Optional[str], debug: bool):
    """Horizon Sync - pruned chain state validation"""
    ctx.ensure_object(dict)

    try:
        config = HorizonConfig.load(config_path) if config_path else HorizonConfig()
    except ConfigurationError as e:
        fail(str(e))

    configure_logging(config)
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.obj["config"] = config


@cli.command()
@click.argument("snapshot", type=click.Path(dir_okay=False))
@click.option("--height", type=click.IntRange(min=0), help="Horizon height (default: snapshot tip)")
@click.option("--network", "-n", type=click.Choice([n.value for n in Network]), help="Consensus network")
@click.option("--chunk-size", type=click.IntRange(min=1), help="Headers fetched per storage call")
@click.option("--check-mmr-roots/--skip-mmr-roots", default=None, help="Recompute MMR roots")
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json", "markdown"]),
    default="text",
    help="Report format",
)
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write the report to a file")
@click.pass_context
def validate(
    ctx,
    snapshot: str,
    height: Optional[int],
    network: Optional[str],
    chunk_size: Optional[int],
    check_mmr_roots: Optional[bool],
    output_format: str,
    output: Optional[str],
):
    """Validate the horizon state held in SNAPSHOT."""
    config: HorizonConfig = ctx.obj["config"]
    overrides = {
        "network": network,
        "header_chunk_size": chunk_size,
        "check_mmr_roots": check_mmr_roots,
    }
    config = config.model_copy(update={k: v for k, v in overrides.items() if v is not None})

    try:
        backend = load_snapshot(snapshot)
    except SnapshotError as e:
        fail(str(e))

    factory = CommitmentFactory()
    rules = ConsensusManager.for_network(config.network_id, factory)
    db = BlockchainDatabase(backend)

    try:
        if height is None:
            height = db.fetch_tip_header().height
        header = db.fetch_header(height)
    except ChainStorageError as e:
        fail(f"Snapshot has no header at the requested height: {e}")

    logger.info(f"Validating {config.network} horizon state at height {height}")
    validators = HorizonSyncValidators.full_consensus(db, rules, factory, config)
    engine = ValidationEngine()

    result = engine.run_pipeline([
        (validators.header, header),
        (validators.final_state, height),
    ])

    report = generate_report(result, height, config.network, header_hash=header.hash())

    if output_format == "json":
        text = report.to_json()
    elif output_format == "markdown":
        text = report.to_markdown()
    else:
        text = _text_report(report)

    if output:
        Path(output).write_text(text)
        click.echo(f"Report written to {output}")
    else:
        click.echo(text)

    if result.is_valid:
        logger.info(f"Horizon state at height {height} is valid")
        sys.exit(EXIT_VALID)
    logger.warning(f"Horizon state at height {height} was rejected")
    sys.exit(EXIT_INVALID)


def _text_report(report) -> str:
    status = click.style("✓ VALID", fg="green", bold=True) if report.is_valid else \
        click.style("✗ INVALID", fg="red", bold=True)
    lines = [
        f"{status}  {report.network} horizon state at height {report.height}",
        "",
    ]
    for stage, result in report.stage_results.items():
        lines.append(f"  {stage:<16} {result['status']}")
    for err in report.errors:
        lines.append("")
        lines.append(click.style(f"  {err['code_name']}: {err['message']}", fg="red"))
    lines.append("")
    lines.append(f"  Duration: {report.duration_ms:.2f}ms")
    return "\n".join(lines)


@cli.command()
@click.argument("output", type=click.Path(dir_okay=False))
@click.option("--blocks", "-b", type=click.IntRange(min=0), default=10, help="Blocks after genesis")
@click.option("--seed", default="horizon", help="Key derivation seed")
@click.option("--spend", type=click.IntRange(min=0), default=1, help="Outputs spent per block")
def generate(output: str, blocks: int, seed: str, spend: int):
    """Write a balanced localnet chain snapshot to OUTPUT."""
    factory = CommitmentFactory()
    rules = ConsensusManager.for_network(Network.LOCALNET, factory)
    builder = ChainBuilder(rules, factory, seed=seed.encode())

    for _ in range(blocks):
        builder.add_block(spend=min(spend, len(builder.spendable)))

    try:
        dump_snapshot(builder.backend, output)
    except SnapshotError as e:
        fail(str(e))

    click.echo(click.style(f"✓ Wrote {blocks + 1} blocks to {output}", fg="green"))


@cli.command()
@click.argument("snapshot", type=click.Path(dir_okay=False))
def info(snapshot: str):
    """Show the contents of SNAPSHOT."""
    try:
        backend = load_snapshot(snapshot)
        tip = backend.fetch_tip_header()
    except (SnapshotError, ChainStorageError) as e:
        fail(str(e))

    outputs = backend.output_entries
    click.echo(click.style(f"Snapshot {snapshot}", bold=True))
    click.echo(f"  Tip height:  {tip.height}")
    click.echo(f"  Tip hash:    {tip.hash()}")
    click.echo(f"  Headers:     {len(backend.headers)}")
    click.echo(f"  Outputs:     {len(outputs)} ({len(backend.fetch_all_utxos())} unspent)")
    click.echo(f"  Kernels:     {len(backend.kernel_entries)}")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
