"""Remove or relabel co-annotated pairs that implicate held-out genes.

Used to re-evaluate a similarity measure after leaving out genes (or a
gene list) that dominate the standard. A pair is selected when either of
its genes is a target gene and it is annotated.

Two policies:

- strict: selected rows are deleted. Cleanest semantics, but the row
  count changes, so row-indexed scores computed on the original standard
  no longer line up.
- relabel: selected rows are kept with is_annotated = 0 and an empty
  source ID. Row count and order are unchanged, at the price of negatives
  that are not real biological negatives.
"""

from typing import Iterable, Literal

import polars as pl
import structlog

from coannotation_pipeline.errors import InvalidInputError
from coannotation_pipeline.standards.models import LABEL_COLUMN, ROW_INDEX_COLUMN

logger = structlog.get_logger()

RemovalPolicy = Literal["strict", "relabel"]
REMOVAL_POLICIES = ("strict", "relabel")

_STANDARD_REQUIRED = ("gene1", "gene2", "is_annotated")


def _check_policy(policy: str) -> None:
    if policy not in REMOVAL_POLICIES:
        raise InvalidInputError(f"Unknown removal policy {policy!r}; expected one of {REMOVAL_POLICIES}")


def _check_standard(standard: pl.DataFrame) -> None:
    missing = [col for col in _STANDARD_REQUIRED if col not in standard.columns]
    if missing:
        raise InvalidInputError(f"Standard is missing required columns: {missing}")


def _target_list(target_genes: Iterable[str]) -> list[str]:
    if isinstance(target_genes, str):
        target_genes = [target_genes]
    return sorted(set(target_genes))


def _selection(targets: list[str]) -> pl.Expr:
    return (
        pl.col("gene1").is_in(targets) | pl.col("gene2").is_in(targets)
    ) & (pl.col("is_annotated") == 1)


def _relabel_columns(df: pl.DataFrame, selected: pl.Expr) -> list[pl.Expr]:
    # Zero the annotation/label columns and clear the source of selected rows
    updates = []
    for col in ("is_annotated", LABEL_COLUMN):
        if col in df.columns:
            updates.append(
                pl.when(selected).then(0).otherwise(pl.col(col)).cast(df.schema[col]).alias(col)
            )
    if "ID" in df.columns:
        updates.append(
            pl.when(selected).then(pl.lit("")).otherwise(pl.col("ID")).cast(df.schema["ID"]).alias("ID")
        )
    return updates


def remove_pairs_with_genes(
    standard: pl.DataFrame,
    target_genes: Iterable[str],
    policy: RemovalPolicy = "strict",
) -> pl.DataFrame:
    """Remove or relabel annotated pairs touching target genes.

    Args:
        standard: Pair-list standard with gene1, gene2, is_annotated (and
            optionally ID) columns
        target_genes: Genes to hold out
        policy: "strict" deletes selected rows, "relabel" sets them to 0

    Returns:
        New pair table. Unselected rows are unchanged and keep their order.
        An empty target list returns an unchanged copy.

    Raises:
        InvalidInputError: On missing columns or an unknown policy
    """
    _check_policy(policy)
    _check_standard(standard)

    targets = _target_list(target_genes)
    if not targets:
        return standard.clone()

    selected = _selection(targets)
    selected_count = standard.filter(selected).height

    if policy == "strict":
        result = standard.filter(~selected)
    else:
        result = standard.with_columns(_relabel_columns(standard, selected))

    logger.info(
        "remove_pairs_with_genes",
        policy=policy,
        target_count=len(targets),
        rows_before=standard.height,
        rows_after=result.height,
        pairs_selected=selected_count,
    )
    return result


def remove_scored_pairs_with_genes(
    standard: pl.DataFrame,
    scored: pl.DataFrame,
    target_genes: Iterable[str],
    policy: RemovalPolicy = "strict",
) -> pl.DataFrame:
    """Remove or relabel scored pairs whose standard row touches target genes.

    The scored table is the subset of the standard that downstream scoring
    produced predictions for. Its "index" column holds the 0-based row of
    the standard each scored pair comes from; gene names and annotation
    are looked up there.

    Args:
        standard: Pair-list standard with gene1, gene2, is_annotated columns
        scored: Scored pairs with an integer "index" column plus score and
            label columns (e.g. "predicted", "true")
        target_genes: Genes to hold out
        policy: "strict" deletes selected rows, "relabel" zeroes their
            is_annotated / true columns and clears ID

    Returns:
        New scored table with the original columns

    Raises:
        InvalidInputError: On missing columns, an unknown policy, or index
            values outside the standard's row range
    """
    _check_policy(policy)
    _check_standard(standard)

    if ROW_INDEX_COLUMN not in scored.columns:
        raise InvalidInputError(f"Scored table has no {ROW_INDEX_COLUMN!r} column")
    if not scored.schema[ROW_INDEX_COLUMN].is_integer():
        raise InvalidInputError(
            f"Column {ROW_INDEX_COLUMN!r} must be integer, got {scored.schema[ROW_INDEX_COLUMN]}"
        )

    row_index = scored[ROW_INDEX_COLUMN]
    if row_index.null_count():
        raise InvalidInputError(f"Column {ROW_INDEX_COLUMN!r} has missing values")
    if scored.height and (row_index.min() < 0 or row_index.max() >= standard.height):
        raise InvalidInputError(
            f"Row index out of range: [{row_index.min()}, {row_index.max()}] "
            f"against a standard of {standard.height} rows"
        )

    targets = _target_list(target_genes)
    if not targets:
        return scored.clone()

    # Rows of the standard that are annotated and touch a target gene
    touched = (
        standard.select(_STANDARD_REQUIRED)
        .with_row_index("_row")
        .filter(_selection(targets))["_row"]
    )
    selected = pl.col(ROW_INDEX_COLUMN).is_in(touched.cast(row_index.dtype).implode())
    selected_count = scored.filter(selected).height

    if policy == "strict":
        result = scored.filter(~selected)
    else:
        result = scored.with_columns(_relabel_columns(scored, selected))

    logger.info(
        "remove_scored_pairs_with_genes",
        policy=policy,
        target_count=len(targets),
        rows_before=scored.height,
        rows_after=result.height,
        pairs_selected=selected_count,
    )
    return result
