"""Standard commands: build co-annotation standards and holdout variants.

- build: entity table -> pair-list standard (Parquet file and DuckDB table)
- matrix: entity table -> symmetric co-annotation matrix (.npz)
- holdout: remove or relabel pairs touching target genes
"""

import logging
import sys
from pathlib import Path

import click
import polars as pl

from coannotation_pipeline.config.loader import load_config_with_overrides
from coannotation_pipeline.errors import EmptyResultError, InvalidInputError
from coannotation_pipeline.persistence import PipelineStore, ProvenanceTracker
from coannotation_pipeline.standards import (
    REMOVAL_POLICIES,
    load_to_duckdb,
    make_co_annotation_cached,
    make_co_annotation_matrix_cached,
    read_entity_table,
    remove_pairs_with_genes,
    remove_scored_pairs_with_genes,
)

logger = logging.getLogger(__name__)

_entities_option = click.option(
    '--entities',
    'entities_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help='Entity table (ID, Name, Genes columns)'
)
_overlap_option = click.option(
    '--overlap-length',
    type=int,
    default=None,
    help='Minimum shared entities for a co-annotation (default: from config)'
)
_subset_option = click.option(
    '--subset',
    'subset_str',
    multiple=True,
    help='Keep only entities whose Name contains this string (repeatable)'
)
_separator_option = click.option(
    '--separator',
    default='\t',
    show_default=repr('\t'),
    help='Column separator of the entity table'
)


def _load_config(ctx, overrides: dict):
    return load_config_with_overrides(ctx.obj['config_path'], overrides)


def _remove_stale_output(output: Path, force: bool) -> None:
    # The file cache returns an existing file as-is; --force rebuilds it
    if force and output is not None and output.exists():
        output.unlink()
        click.echo(f"  Removed existing output: {output}")


def _read_gene_list(genes: str | None, genes_file: Path | None) -> list[str]:
    targets = []
    if genes:
        targets.extend(g.strip() for g in genes.split(','))
    if genes_file:
        targets.extend(line.strip() for line in genes_file.read_text().splitlines())
    return [g for g in targets if g]


@click.group('standard')
def standard():
    """Build co-annotation gold standards from entity memberships.

    Entities are protein complexes, pathways or GO terms given as a table
    with ID, Name and a semicolon-delimited Genes column.
    """
    pass


@standard.command('build')
@_entities_option
@_overlap_option
@_subset_option
@_separator_option
@click.option(
    '--output',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Parquet file caching the standard (loaded instead of rebuilt if it exists)'
)
@click.option(
    '--table',
    'table_name',
    default=None,
    help='DuckDB table for the standard (default: from config)'
)
@click.option(
    '--force',
    is_flag=True,
    help='Rebuild even if a checkpoint or output file exists'
)
@click.pass_context
def build(ctx, entities_path, overlap_length, subset_str, separator, output, table_name, force):
    """Build the pair-list co-annotation standard.

    Every pair of genes found in the entity table gets one row; pairs that
    share at least --overlap-length entities are labelled 1.

    Examples:

        # All entities, default overlap length
        coannotation-pipeline standard build --entities corum.tsv

        # KEGG pathways only, cached to a Parquet file
        coannotation-pipeline standard build --entities pathways.tsv --subset KEGG --output kegg.parquet
    """
    click.echo(click.style("=== Co-annotation Standard ===", bold=True))
    click.echo()

    store = None
    try:
        click.echo("Loading configuration...")
        config = _load_config(ctx, {
            'standard.overlap_length': overlap_length,
            'standard.subset_str': list(subset_str) or None,
            'standard.table_name': table_name,
        })
        params = config.standard
        click.echo(click.style(f"  Config loaded: {ctx.obj['config_path']}", fg='green'))
        click.echo(f"  Overlap length: {params.overlap_length}")
        click.echo(f"  Entity filter: {params.subset_str or 'none'}")
        click.echo()

        store = PipelineStore.from_config(config)
        provenance = ProvenanceTracker.from_config(config)

        if store.has_checkpoint(params.table_name) and not force:
            df = store.load_dataframe(params.table_name)
            if df is not None:
                click.echo(click.style(
                    f"Checkpoint '{params.table_name}' exists. Skipping build (use --force to rebuild).",
                    fg='yellow'
                ))
                click.echo(f"Pairs: {df.height}")
                click.echo(f"Annotated pairs: {int(df['is_annotated'].sum()) if df.height else 0}")
                return

        click.echo(f"Reading entity table: {entities_path}")
        entities = read_entity_table(entities_path, separator=separator)
        click.echo(f"  {entities.height} entities")
        click.echo()

        click.echo("Generating co-annotation standard...")
        _remove_stale_output(output, force)
        df = make_co_annotation_cached(
            entities,
            overlap_length=params.overlap_length,
            subset_str=params.subset_str,
            delimiter=params.delimiter,
            file_location=output,
        )
        if df.height == 0:
            raise EmptyResultError("Fewer than two candidate genes; the standard has no pairs")

        annotated = int(df['is_annotated'].sum())
        click.echo(click.style(f"  {df.height} pairs, {annotated} co-annotated", fg='green'))
        click.echo()
        provenance.record_step('build_co_annotation', {
            'entities_path': str(entities_path),
            'entity_count': entities.height,
            'pair_count': df.height,
            'annotated_pairs': annotated,
            'output': str(output) if output else None,
        })

        click.echo("Loading to DuckDB...")
        load_to_duckdb(df, store, provenance, table_name=params.table_name)
        provenance.save_to_store(store)
        if output is not None and output.exists():
            provenance.save_sidecar(output)
        click.echo(click.style(f"  Saved table '{params.table_name}' to {config.duckdb_path}", fg='green'))

    except EmptyResultError as e:
        click.echo(click.style(f"  {e}", fg='yellow'))
    except InvalidInputError as e:
        click.echo(click.style(f"  Invalid input: {e}", fg='red'), err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(click.style(f"  Error building standard: {e}", fg='red'), err=True)
        logger.exception("Failed to build co-annotation standard")
        sys.exit(1)
    finally:
        if store is not None:
            store.close()


@standard.command('matrix')
@_entities_option
@_overlap_option
@_subset_option
@_separator_option
@click.option(
    '--output',
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help='.npz file for the matrix (loaded instead of rebuilt if it exists)'
)
@click.option(
    '--force',
    is_flag=True,
    help='Rebuild even if the output file exists'
)
@click.pass_context
def matrix(ctx, entities_path, overlap_length, subset_str, separator, output, force):
    """Build the symmetric gene x gene co-annotation matrix."""
    if output.suffix != '.npz':
        click.echo(click.style("--output must end in .npz", fg='red'), err=True)
        sys.exit(1)

    try:
        config = _load_config(ctx, {
            'standard.overlap_length': overlap_length,
            'standard.subset_str': list(subset_str) or None,
        })
        params = config.standard

        entities = read_entity_table(entities_path, separator=separator)
        click.echo(f"Read {entities.height} entities from {entities_path}")

        _remove_stale_output(output, force)
        result = make_co_annotation_matrix_cached(
            entities,
            overlap_length=params.overlap_length,
            subset_str=params.subset_str,
            delimiter=params.delimiter,
            file_location=output,
        )

        n = len(result.genes)
        annotated = int(result.values.sum()) // 2
        click.echo(click.style(f"  {n} x {n} matrix, {annotated} co-annotated pairs", fg='green'))
        click.echo(f"  Output: {output}")

    except InvalidInputError as e:
        click.echo(click.style(f"  Invalid input: {e}", fg='red'), err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(click.style(f"  Error building matrix: {e}", fg='red'), err=True)
        logger.exception("Failed to build co-annotation matrix")
        sys.exit(1)


@standard.command('holdout')
@click.option(
    '--standard',
    'standard_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help='Pair-list standard (Parquet)'
)
@click.option(
    '--genes',
    default=None,
    help='Comma-separated genes to hold out'
)
@click.option(
    '--genes-file',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help='File with one gene to hold out per line'
)
@click.option(
    '--scored',
    'scored_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Scored pairs (Parquet) with an 'index' column into the standard"
)
@click.option(
    '--policy',
    type=click.Choice(REMOVAL_POLICIES),
    default=None,
    help='strict: delete pairs; relabel: set them to 0 (default: from config)'
)
@click.option(
    '--output',
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help='Parquet file for the modified table'
)
@click.pass_context
def holdout(ctx, standard_path, genes, genes_file, scored_path, policy, output):
    """Remove or relabel co-annotated pairs involving target genes.

    Without --scored the standard itself is modified; with --scored the
    scored table is modified, using its 'index' column to look up genes
    in the standard.
    """
    try:
        config = _load_config(ctx, {'holdout.policy': policy})
        policy = config.holdout.policy
        provenance = ProvenanceTracker.from_config(config)

        targets = _read_gene_list(genes, genes_file)
        if not targets:
            click.echo(click.style("No target genes given; output equals input", fg='yellow'))

        standard_df = pl.read_parquet(standard_path)
        if scored_path is None:
            result = remove_pairs_with_genes(standard_df, targets, policy=policy)
            rows_before = standard_df.height
        else:
            scored_df = pl.read_parquet(scored_path)
            result = remove_scored_pairs_with_genes(standard_df, scored_df, targets, policy=policy)
            rows_before = scored_df.height

        output.parent.mkdir(parents=True, exist_ok=True)
        result.write_parquet(output)

        provenance.record_step('holdout', {
            'standard': str(standard_path),
            'scored': str(scored_path) if scored_path else None,
            'policy': policy,
            'target_genes': targets,
            'rows_before': rows_before,
            'rows_after': result.height,
        })
        provenance.save_sidecar(output)

        click.echo(click.style(
            f"  {policy}: {rows_before} -> {result.height} rows written to {output}",
            fg='green'
        ))

    except InvalidInputError as e:
        click.echo(click.style(f"  Invalid input: {e}", fg='red'), err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(click.style(f"  Error applying holdout: {e}", fg='red'), err=True)
        logger.exception("Failed to apply holdout")
        sys.exit(1)
