"""Network commands: import pre-scored global functional networks.

- giant: GIANT/HumanBase global network, binarized by top-K edge score
"""

import logging
import sys
from pathlib import Path

import click

from coannotation_pipeline.config.loader import load_config_with_overrides
from coannotation_pipeline.network import (
    NETWORK_TABLE_NAME,
    make_functional_network,
    map_network_to_symbols,
)
from coannotation_pipeline.persistence import PipelineStore, ProvenanceTracker

logger = logging.getLogger(__name__)


@click.group('network')
def network():
    """Import pre-scored functional networks as pair-list standards."""
    pass


@network.command('giant')
@click.option(
    '--force',
    is_flag=True,
    help='Re-download and reprocess even if a checkpoint exists'
)
@click.option(
    '--url',
    default=None,
    help='Override the network file URL'
)
@click.option(
    '--top-n',
    type=int,
    default=None,
    help='Number of highest scoring edges labelled 1 (default: from config)'
)
@click.option(
    '--mapping',
    'mapping_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help='Entrez -> symbol mapping file (symbol in column 1, Entrez ID in column 3)'
)
@click.pass_context
def giant(ctx, force, url, top_n, mapping_path):
    """Fetch the GIANT global functional network and binarize it.

    Downloads the network (skipped if the file exists), labels the top-N
    edges as positives, and loads the Entrez-ID pair list to DuckDB. With a
    mapping file the symbol pair list is loaded as well.

    Examples:

        coannotation-pipeline network giant --mapping Gene_symbol_Entrez_ID.txt

        coannotation-pipeline network giant --top-n 500000 --force
    """
    click.echo(click.style("=== Functional Network Import ===", bold=True))
    click.echo()

    store = None
    try:
        config = load_config_with_overrides(ctx.obj['config_path'], {
            'network.url': url,
            'network.top_n': top_n,
            'network.mapping_path': str(mapping_path) if mapping_path else None,
        })
        params = config.network
        click.echo(f"  URL: {params.url}")
        click.echo(f"  Top N: {params.top_n}")
        click.echo()

        store = PipelineStore.from_config(config)
        provenance = ProvenanceTracker.from_config(config)

        if store.has_checkpoint(NETWORK_TABLE_NAME) and not force:
            click.echo(click.style(
                "Functional network checkpoint exists. Skipping import (use --force to re-run).",
                fg='yellow'
            ))
            return

        network_path = Path(config.data_dir) / "network" / Path(params.url).name
        click.echo(f"Preparing network file: {network_path}")

        try:
            net = make_functional_network(
                network_path,
                mapping_path=params.mapping_path,
                url=params.url,
                top_n=params.top_n,
                force=force,
                timeout=params.timeout_seconds,
            )
        except Exception as e:
            click.echo(click.style(f"  Error importing network: {e}", fg='red'), err=True)
            logger.exception("Failed to import functional network")
            sys.exit(1)

        positives = int(net.data['is_annotated'].sum()) if net.data.height else 0
        click.echo(click.style(
            f"  {net.data.height} edges, {positives} positives, {net.gene_indices.height} distinct gene1",
            fg='green'
        ))
        provenance.record_step('import_functional_network', {
            'url': params.url,
            'path': str(network_path),
            'top_n': params.top_n,
            'edge_count': net.data.height,
            'positive_edges': positives,
        })

        store.save_dataframe(
            net.data,
            NETWORK_TABLE_NAME,
            description=f"Functional network (Entrez IDs), top {params.top_n} edges labelled 1",
        )

        if net.mapping.height:
            symbols = map_network_to_symbols(net)
            store.save_dataframe(
                symbols,
                f"{NETWORK_TABLE_NAME}_symbols",
                description="Functional network mapped to gene symbols",
            )
            provenance.record_step('map_network_to_symbols', {
                'mapping_path': str(params.mapping_path),
                'edge_count': symbols.height,
            })
            click.echo(click.style(f"  {symbols.height} edges mapped to gene symbols", fg='green'))

        provenance.save_to_store(store)
        click.echo(click.style(f"Saved to {config.duckdb_path}", fg='green'))

    except Exception as e:
        click.echo(click.style(f"  Error: {e}", fg='red'), err=True)
        logger.exception("Functional network import failed")
        sys.exit(1)
    finally:
        if store is not None:
            store.close()
