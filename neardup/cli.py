"""
Command-line interface for near-duplicate detection.

Parameter-selection helpers (threshold, S-curve, band suggestions), a scanner
for pre-tokenised JSON-lines corpora, and configuration management.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import ConfigManager, DedupConfig, create_default_config_file
from .core.types import DocId
from .errors import NearDupError
from .lsh.probability import (
    optimal_bands,
    probability_curve,
    rows_per_band,
    suggest_bands,
    threshold,
)
from .pipeline import DedupPipeline
from .utils.logging_setup import get_logger, setup_logging

logger = get_logger(__name__)

console = Console()


def _fail(error: NearDupError):
    console.print(f"[red]✗ {error.message}[/red]")
    raise click.exceptions.Exit(1)


@click.group(name="neardup")
@click.version_option(__version__, prog_name="neardup")
def main():
    """Near-duplicate document detection with minhash and LSH banding."""


# ----------------------------
# Parameter selection
# ----------------------------

@main.command(name="threshold")
@click.argument("num_hashes", type=int)
@click.argument("bands", type=int)
def threshold_cmd(num_hashes, bands):
    """Show rows per band and the similarity threshold for a banding."""
    try:
        r = rows_per_band(num_hashes, bands)
        t = threshold(num_hashes, bands)
    except NearDupError as e:
        _fail(e)
    console.print(f"h={num_hashes} b={bands} r={r} threshold={t:.4f}")


@main.command(name="curve")
@click.argument("num_hashes", type=int)
@click.argument("bands", type=int)
@click.option("--points", type=int, default=11, show_default=True, help="Number of similarity points")
def curve_cmd(num_hashes, bands, points):
    """Tabulate candidate probability against Jaccard similarity."""
    try:
        s, p = probability_curve(num_hashes, bands, points)
        t = threshold(num_hashes, bands)
    except NearDupError as e:
        _fail(e)

    table = Table(title=f"h={num_hashes} b={bands} threshold≈{t:.3f}")
    table.add_column("similarity", justify="right")
    table.add_column("P(candidate)", justify="right")
    for si, pi in zip(s, p):
        table.add_row(f"{si:.2f}", f"{pi:.4f}")
    console.print(table)


@main.command(name="suggest")
@click.argument("num_hashes", type=int)
@click.option("--target", type=float, required=True, help="Desired similarity threshold")
@click.option("--fp-weight", type=float, default=0.5, show_default=True)
@click.option("--fn-weight", type=float, default=0.5, show_default=True)
def suggest_cmd(num_hashes, target, fp_weight, fn_weight):
    """Suggest band counts for a signature length and target threshold."""
    try:
        nearest = suggest_bands(num_hashes, target)
        optimal = optimal_bands(num_hashes, target, fp_weight, fn_weight)
    except NearDupError as e:
        _fail(e)

    table = Table(title=f"Band suggestions for h={num_hashes}, target={target}")
    table.add_column("strategy")
    table.add_column("bands", justify="right")
    table.add_column("rows", justify="right")
    table.add_column("threshold", justify="right")
    for label, b in (("nearest", nearest), ("optimal", optimal)):
        table.add_row(label, str(b), str(num_hashes // b), f"{threshold(num_hashes, b):.4f}")
    console.print(table)


# ----------------------------
# Scanning
# ----------------------------

def read_token_sets(path: Path) -> Dict[DocId, List[str]]:
    """
    Read ``{"id": ..., "tokens": [...]}`` JSON lines.

    Ids must be strings or integers. Blank lines are ignored; duplicate ids
    are rejected.
    """
    token_sets: Dict[DocId, List[str]] = {}
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
                doc_id = record["id"]
                tokens = record["tokens"]
            except (json.JSONDecodeError, KeyError, TypeError) as e:
                raise click.ClickException(f"{path}:{lineno}: expected an object with 'id' and 'tokens' ({e})")
            if isinstance(doc_id, bool) or not isinstance(doc_id, (str, int)):
                raise click.ClickException(f"{path}:{lineno}: 'id' must be a string or an integer")
            if not isinstance(tokens, list):
                raise click.ClickException(f"{path}:{lineno}: 'tokens' must be a list")
            if any(isinstance(t, (list, dict)) for t in tokens):
                raise click.ClickException(f"{path}:{lineno}: tokens must be scalar values")
            if doc_id in token_sets:
                raise click.ClickException(f"{path}:{lineno}: duplicate id {doc_id!r}")
            token_sets[doc_id] = tokens
    return token_sets


@main.command(name="scan")
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--config", "config_path", type=click.Path(exists=True, path_type=Path), help="Path to config file")
@click.option("--num-hashes", type=int, help="Override signature length")
@click.option("--bands", type=int, help="Override band count")
@click.option("--seed", type=int, help="Override hash family seed")
@click.option("--min-similarity", type=float, help="Only report pairs at or above this Jaccard similarity")
@click.option("--json", "as_json", is_flag=True, help="Output results as JSON")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def scan_cmd(input_path, config_path, num_hashes, bands, seed, min_similarity, as_json, verbose):
    """Find near-duplicate pairs in a JSON-lines file of token lists."""
    overrides = {
        key: value for key, value in (
            ("num_hashes", num_hashes),
            ("bands", bands),
            ("seed", seed),
            ("min_similarity", min_similarity),
        ) if value is not None
    }
    try:
        config = ConfigManager(config_path, console=Console(stderr=True, quiet=as_json)).load()
        if overrides:
            config = config.replace(**overrides)
        setup_logging("DEBUG" if verbose else config.log_level)

        token_sets = read_token_sets(input_path)
        result = DedupPipeline(config).run(token_sets)
    except NearDupError as e:
        _fail(e)

    if as_json:
        click.echo(json.dumps(result.as_dict(), indent=2, default=str))
        return

    table = Table(title=f"Near-duplicate pairs ({len(token_sets)} documents)")
    table.add_column("document A")
    table.add_column("document B")
    table.add_column("jaccard", justify="right")
    for pair, score in result.ranked():
        table.add_row(str(pair.first), str(pair.second), f"{score:.3f}")
    console.print(table)

    stats = result.stats
    console.print(
        f"{len(result.candidates)} candidate pairs from {stats.total_buckets} buckets "
        f"(threshold≈{config.threshold:.3f})"
    )
    if result.skipped:
        console.print(f"[yellow]Skipped {len(result.skipped)} documents without tokens[/yellow]")


# ----------------------------
# Configuration
# ----------------------------

@main.group(name="config")
def config_group():
    """Manage neardup configuration."""


@config_group.command(name="init")
@click.option(
    "--path",
    type=click.Path(path_type=Path),
    default=ConfigManager.DEFAULT_CONFIG_FILE,
    help="Path for config file"
)
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def config_init(path, force):
    """Write a default configuration file."""
    if path.exists() and not force:
        if not click.confirm(f"Config file {path} already exists. Overwrite?"):
            console.print("[yellow]Aborted[/yellow]")
            return
    create_default_config_file(path)
    console.print(f"[green]✓ Created config file at {path}[/green]")


@config_group.command(name="show")
@click.option("--path", type=click.Path(exists=True, path_type=Path), help="Path to config file")
def config_show(path):
    """Display the effective configuration."""
    manager = ConfigManager(path, console=console)
    try:
        manager.display(manager.load())
    except NearDupError as e:
        _fail(e)


@config_group.command(name="validate")
@click.option("--path", type=click.Path(exists=True, path_type=Path), help="Path to config file")
def config_validate(path: Optional[Path]):
    """Validate a configuration file."""
    try:
        config = DedupConfig.load_from_file(path or ConfigManager.DEFAULT_CONFIG_FILE)
    except FileNotFoundError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise click.exceptions.Exit(1)
    except NearDupError as e:
        _fail(e)
    console.print(f"[green]✓ Configuration is valid[/green] (threshold≈{config.threshold:.3f})")


if __name__ == "__main__":
    main()
