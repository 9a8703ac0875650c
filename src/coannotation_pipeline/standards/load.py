"""Load co-annotation standards to DuckDB with provenance tracking."""

from typing import Optional

import polars as pl
import structlog

from coannotation_pipeline.persistence import PipelineStore, ProvenanceTracker
from coannotation_pipeline.standards.models import CO_ANNOTATION_TABLE_NAME

logger = structlog.get_logger()


def load_to_duckdb(
    df: pl.DataFrame,
    store: PipelineStore,
    provenance: ProvenanceTracker,
    table_name: str = CO_ANNOTATION_TABLE_NAME,
    description: str = "",
) -> None:
    """Save a pair-list standard to DuckDB and record a provenance step.

    Creates or replaces the table, so reloading the same standard is
    idempotent.

    Args:
        df: Pair-list standard (gene1, gene2, is_annotated, ID)
        store: PipelineStore instance
        provenance: ProvenanceTracker instance
        table_name: DuckDB table to write
        description: Optional description for checkpoint metadata
    """
    logger.info("co_annotation_load_start", table_name=table_name, row_count=df.height)

    annotated = int(df["is_annotated"].sum()) if df.height else 0
    genes = pl.concat([df["gene1"], df["gene2"]]).n_unique() if df.height else 0
    positive_rate = annotated / df.height if df.height else None

    store.save_dataframe(
        df=df,
        table_name=table_name,
        description=description or "Co-annotation gold standard (gene pairs sharing curated entities)",
        replace=True,
    )

    provenance.record_step(f"load_{table_name}", {
        "row_count": df.height,
        "gene_count": genes,
        "annotated_pairs": annotated,
        "positive_rate": positive_rate,
    })

    logger.info(
        "co_annotation_load_complete",
        table_name=table_name,
        row_count=df.height,
        gene_count=genes,
        annotated_pairs=annotated,
    )


def query_annotated_pairs(
    store: PipelineStore,
    table_name: str = CO_ANNOTATION_TABLE_NAME,
    gene: Optional[str] = None,
) -> pl.DataFrame:
    """Query co-annotated pairs, optionally only those involving one gene.

    Returns:
        DataFrame of annotated pairs (gene1, gene2, is_annotated, ID) in
        standard order
    """
    logger.info("co_annotation_query", table_name=table_name, gene=gene)

    if not store.table_exists(table_name):
        return pl.DataFrame(schema={"gene1": pl.Utf8, "gene2": pl.Utf8, "is_annotated": pl.Int8, "ID": pl.Utf8})

    if gene is None:
        df = store.execute_query(
            f"SELECT gene1, gene2, is_annotated, ID FROM {table_name} WHERE is_annotated = 1"
        )
    else:
        df = store.execute_query(
            f"""
            SELECT gene1, gene2, is_annotated, ID
            FROM {table_name}
            WHERE is_annotated = 1 AND (gene1 = ? OR gene2 = ?)
            """,
            params=[gene, gene],
        )

    logger.info("co_annotation_query_complete", result_count=df.height)
    return df
