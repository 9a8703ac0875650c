"""Main CLI entry point for coannotation-pipeline.

Provides command group with global options and subcommands for building
co-annotation standards, holdout variants and functional network imports.
"""

import logging
from pathlib import Path

import click

from coannotation_pipeline import __version__
from coannotation_pipeline.config.loader import load_config
from coannotation_pipeline.cli.standard_cmd import standard
from coannotation_pipeline.cli.network_cmd import network


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@click.group()
@click.option(
    '--config',
    type=click.Path(exists=True, path_type=Path),
    default='config/default.yaml',
    help='Path to pipeline configuration YAML file'
)
@click.option(
    '--verbose',
    is_flag=True,
    help='Enable verbose logging (DEBUG level)'
)
@click.pass_context
def cli(ctx, config, verbose):
    """Coannotation-pipeline: co-annotation gold standards for gene-pair similarity evaluation.

    Builds pairwise standards from complex, pathway and GO memberships,
    derives holdout standards, and imports pre-scored functional networks.
    """
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Verbose logging enabled")


@cli.command()
@click.pass_context
def info(ctx):
    """Display pipeline information and configuration summary."""
    config_path = ctx.obj['config_path']

    click.echo(f"Coannotation Pipeline v{__version__}")
    click.echo(f"Config: {config_path}")
    click.echo()

    try:
        config = load_config(config_path)

        config_hash = config.config_hash()
        click.echo(f"Config Hash: {config_hash[:16]}...")
        click.echo()

        click.echo(click.style("Standard:", bold=True))
        click.echo(f"  Overlap Length: {config.standard.overlap_length}")
        click.echo(f"  Entity Filter:  {config.standard.subset_str or 'none'}")
        click.echo(f"  DuckDB Table:   {config.standard.table_name}")
        click.echo()

        click.echo(click.style("Functional Network:", bold=True))
        click.echo(f"  URL:     {config.network.url}")
        click.echo(f"  Top N:   {config.network.top_n}")
        click.echo(f"  Mapping: {config.network.mapping_path or 'none'}")
        click.echo()

        click.echo(click.style("Holdout:", bold=True))
        click.echo(f"  Policy: {config.holdout.policy}")
        click.echo()

        click.echo(click.style("Paths:", bold=True))
        click.echo(f"  Data Directory: {config.data_dir}")
        click.echo(f"  DuckDB Path: {config.duckdb_path}")

    except Exception as e:
        click.echo(click.style(f"Error loading config: {e}", fg='red'), err=True)
        ctx.exit(1)


cli.add_command(standard)
cli.add_command(network)


if __name__ == '__main__':
    cli()
