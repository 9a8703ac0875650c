"""Pairwise co-annotation standards (pair list and adjacency matrix).

Every unordered pair (i, j), i < j, of candidate genes gets the number of
entities both genes belong to. Most pairs share nothing, so instead of
intersecting C(n, 2) entity sets the index is inverted: only pairs of
members of the same entity can share an entity, and every other pair is
0. The result is identical to the exhaustive O(n^2) intersection.

Pairs are addressed by their offset in row-major upper-triangle order,
which is also the row order of the pair-list standard:

    offset(i, j) = i * (2n - i - 1) / 2 + (j - i - 1)
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np
import polars as pl
import structlog

from coannotation_pipeline.errors import InvalidInputError
from coannotation_pipeline.standards.entity_index import EntityIndex, build_entity_index
from coannotation_pipeline.standards.models import GENE_DELIMITER, PAIR_COLUMNS

logger = structlog.get_logger()

# Called as progress(entities_done, entities_total)
ProgressCallback = Callable[[int, int], None]

SHARED_SCHEMA = {
    "i": pl.Int64,
    "j": pl.Int64,
    "pair_offset": pl.Int64,
    "shared_count": pl.Int32,
    "ID": pl.Utf8,
}


def pair_offsets(i: np.ndarray, j: np.ndarray, n: int) -> np.ndarray:
    """Row-major upper-triangle offsets of pairs (i, j) with i < j < n."""
    i = np.asarray(i, dtype=np.int64)
    j = np.asarray(j, dtype=np.int64)
    return i * (2 * n - i - 1) // 2 + (j - i - 1)


def _entity_sort_key(entity_id):
    # Integer IDs sort numerically, ahead of string IDs
    if isinstance(entity_id, (int, np.integer)):
        return (0, int(entity_id), "")
    return (1, 0, str(entity_id))


def _empty_shared() -> pl.DataFrame:
    return pl.DataFrame(schema=SHARED_SCHEMA)


def shared_entities(
    index: EntityIndex,
    progress: Optional[ProgressCallback] = None,
) -> pl.DataFrame:
    """Enumerate every gene pair that shares at least one entity.

    Args:
        index: Gene -> entity index
        progress: Optional callback receiving (entities_done, entities_total)

    Returns:
        DataFrame sorted by pair_offset with columns:
        - i, j: positions of the two genes in index.candidate_genes (i < j)
        - pair_offset: row of the pair in the full pair list
        - shared_count: number of shared entities (>= 1)
        - ID: shared entity IDs, sorted, joined with ";"
    """
    n = index.n_genes
    position = {gene: k for k, gene in enumerate(index.candidate_genes)}

    members_by_entity: dict = {}
    for gene, entity_ids in index.gene_to_entities.items():
        for entity_id in entity_ids:
            members_by_entity.setdefault(entity_id, []).append(position[gene])

    entity_ids = sorted(members_by_entity, key=_entity_sort_key)
    total = len(entity_ids)
    log_every = max(1, total // 10)

    logger.info("shared_entities_start", gene_count=n, entity_count=total)

    i_parts: list[np.ndarray] = []
    j_parts: list[np.ndarray] = []
    rank_parts: list[np.ndarray] = []

    for rank, entity_id in enumerate(entity_ids):
        members = np.sort(np.asarray(members_by_entity[entity_id], dtype=np.int64))
        if members.size >= 2:
            a, b = np.triu_indices(members.size, k=1)
            i_parts.append(members[a])
            j_parts.append(members[b])
            rank_parts.append(np.full(a.size, rank, dtype=np.int64))

        done = rank + 1
        if progress is not None:
            progress(done, total)
        if done % log_every == 0 or done == total:
            logger.debug("shared_entities_progress", entities_done=done, entities_total=total)

    if not i_parts:
        logger.info("shared_entities_complete", shared_pair_count=0)
        return _empty_shared()

    i_all = np.concatenate(i_parts)
    j_all = np.concatenate(j_parts)
    labels = pl.Series("ID", [str(entity_id) for entity_id in entity_ids], dtype=pl.Utf8)

    hits = pl.DataFrame({
        "i": i_all,
        "j": j_all,
        "pair_offset": pair_offsets(i_all, j_all, n),
        "_rank": np.concatenate(rank_parts),
    }).sort(["pair_offset", "_rank"])

    hits = hits.with_columns(labels.gather(hits["_rank"]).alias("ID"))

    shared = (
        hits.group_by("pair_offset", maintain_order=True)
        .agg(
            pl.col("i").first(),
            pl.col("j").first(),
            pl.len().cast(pl.Int32).alias("shared_count"),
            pl.col("ID").str.join(";"),
        )
        .select(list(SHARED_SCHEMA))
        .cast(SHARED_SCHEMA)
    )

    logger.info("shared_entities_complete", shared_pair_count=shared.height)
    return shared


def validate_overlap_length(overlap_length: int, index: EntityIndex) -> None:
    """Reject overlap lengths no gene pair could ever reach.

    Raises:
        InvalidInputError: If overlap_length is not an integer, is < 1, or
            (for at least two candidate genes) exceeds the largest number of
            entities any gene belongs to
    """
    if isinstance(overlap_length, bool) or not isinstance(overlap_length, (int, np.integer)):
        raise InvalidInputError(f"overlap_length must be an integer, got {overlap_length!r}")
    if overlap_length < 1:
        raise InvalidInputError(f"overlap_length must be >= 1, got {overlap_length}")
    if index.n_genes >= 2 and overlap_length > index.max_membership:
        raise InvalidInputError(
            f"overlap_length {overlap_length} exceeds the maximum entity membership "
            f"of any gene ({index.max_membership})"
        )


def empty_pair_frame(include_counts: bool = False) -> pl.DataFrame:
    """Zero-row pair list with the standard schema."""
    schema = {"gene1": pl.Utf8, "gene2": pl.Utf8, "is_annotated": pl.Int8, "ID": pl.Utf8}
    if include_counts:
        schema["shared_count"] = pl.Int32
    return pl.DataFrame(schema=schema)


def make_co_annotation_from_index(
    index: EntityIndex,
    overlap_length: int = 1,
    include_counts: bool = False,
    progress: Optional[ProgressCallback] = None,
) -> pl.DataFrame:
    """Build the pair-list co-annotation standard from an entity index.

    Args:
        index: Gene -> entity index
        overlap_length: Minimum number of shared entities for is_annotated = 1
        include_counts: Also return the raw shared_count column
        progress: Optional callback receiving (entities_done, entities_total)

    Returns:
        DataFrame with exactly C(n, 2) rows ordered by (gene1, gene2) position:
        - gene1, gene2: gene symbols, gene1 before gene2 in sorted order
        - is_annotated: 1 if the pair shares >= overlap_length entities, else 0
        - ID: shared entity IDs joined with ";" ("" when nothing is shared).
          Kept for pairs below the threshold too.
        - shared_count (only with include_counts): raw shared entity count
    """
    validate_overlap_length(overlap_length, index)

    n = index.n_genes
    if n < 2:
        logger.warning("co_annotation_empty", gene_count=n, reason="fewer than two candidate genes")
        return empty_pair_frame(include_counts)

    shared = shared_entities(index, progress=progress)

    pair_count = n * (n - 1) // 2
    logger.info("co_annotation_start", gene_count=n, pair_count=pair_count, overlap_length=overlap_length)

    rows, cols = np.triu_indices(n, k=1)
    genes = pl.Series("gene", index.candidate_genes, dtype=pl.Utf8)

    counts = np.zeros(pair_count, dtype=np.int32)
    offsets = shared["pair_offset"].to_numpy()
    counts[offsets] = shared["shared_count"].to_numpy()

    ids = pl.repeat("", pair_count, dtype=pl.Utf8, eager=True).alias("ID")
    if shared.height:
        ids = ids.scatter(offsets, shared["ID"])

    df = pl.DataFrame({
        "gene1": genes.gather(rows),
        "gene2": genes.gather(cols),
        "shared_count": counts,
    }).with_columns(
        (pl.col("shared_count") >= overlap_length).cast(pl.Int8).alias("is_annotated"),
        ids,
    )

    columns = list(PAIR_COLUMNS) + (["shared_count"] if include_counts else [])
    df = df.select(columns)

    annotated = int(df["is_annotated"].sum())
    logger.info(
        "co_annotation_complete",
        pair_count=df.height,
        annotated_pairs=annotated,
        shared_pairs=shared.height,
    )
    return df


def make_co_annotation(
    data_standard: pl.DataFrame,
    overlap_length: int = 1,
    subset_str: list[str] | None = None,
    delimiter: str = GENE_DELIMITER,
    include_counts: bool = False,
    progress: Optional[ProgressCallback] = None,
) -> pl.DataFrame:
    """Build the pair-list co-annotation standard from an entity table.

    Args:
        data_standard: Entity table with ID, Name and Genes columns
        overlap_length: Minimum number of shared entities for a co-annotation
        subset_str: Keep only entities whose Name contains one of these strings
        delimiter: Gene separator in the Genes column
        include_counts: Also return the raw shared_count column
        progress: Optional callback receiving (entities_done, entities_total)

    Returns:
        Pair-list standard (gene1, gene2, is_annotated, ID)

    Raises:
        InvalidInputError: On a malformed entity table or bad overlap_length
    """
    index = build_entity_index(data_standard, subset_str=subset_str, delimiter=delimiter)
    return make_co_annotation_from_index(
        index,
        overlap_length=overlap_length,
        include_counts=include_counts,
        progress=progress,
    )


@dataclass
class CoAnnotationMatrix:
    """Symmetric 0/1 gene x gene co-annotation matrix.

    Attributes:
        genes: Row and column labels, in sorted candidate-gene order
        values: n x n int8 array; the diagonal is never set
    """

    genes: list[str] = field(default_factory=list)
    values: np.ndarray = field(default_factory=lambda: np.zeros((0, 0), dtype=np.int8))

    @property
    def shape(self) -> tuple[int, int]:
        return self.values.shape

    def is_symmetric(self) -> bool:
        return bool(np.array_equal(self.values, self.values.T))

    def value(self, gene1: str, gene2: str) -> int:
        i = self.genes.index(gene1)
        j = self.genes.index(gene2)
        return int(self.values[i, j])

    def to_frame(self) -> pl.DataFrame:
        """Matrix as a DataFrame: a leading "gene" label column, then one column per gene."""
        if "gene" in self.genes:
            raise InvalidInputError("A candidate gene is literally named 'gene'; use .values instead")
        df = pl.DataFrame(
            {gene: self.values[:, k] for k, gene in enumerate(self.genes)},
            schema={gene: pl.Int8 for gene in self.genes},
        )
        return df.insert_column(0, pl.Series("gene", self.genes, dtype=pl.Utf8))


def make_co_annotation_matrix_from_index(
    index: EntityIndex,
    overlap_length: int = 1,
    progress: Optional[ProgressCallback] = None,
) -> CoAnnotationMatrix:
    """Build the co-annotation adjacency matrix from an entity index.

    Uses the same enumeration and threshold as the pair list; with the
    default overlap_length of 1 a cell is 1 iff the two genes share any
    entity.
    """
    validate_overlap_length(overlap_length, index)

    n = index.n_genes
    values = np.zeros((n, n), dtype=np.int8)
    if n < 2:
        logger.warning("co_annotation_matrix_empty", gene_count=n, reason="fewer than two candidate genes")
        return CoAnnotationMatrix(genes=list(index.candidate_genes), values=values)

    shared = shared_entities(index, progress=progress)
    positives = shared.filter(pl.col("shared_count") >= overlap_length)

    i = positives["i"].to_numpy()
    j = positives["j"].to_numpy()
    values[i, j] = 1
    values[j, i] = 1

    logger.info(
        "co_annotation_matrix_complete",
        gene_count=n,
        annotated_pairs=positives.height,
        overlap_length=overlap_length,
    )
    return CoAnnotationMatrix(genes=list(index.candidate_genes), values=values)


def make_co_annotation_matrix(
    data_standard: pl.DataFrame,
    overlap_length: int = 1,
    subset_str: list[str] | None = None,
    delimiter: str = GENE_DELIMITER,
    progress: Optional[ProgressCallback] = None,
) -> CoAnnotationMatrix:
    """Build the co-annotation adjacency matrix from an entity table."""
    index = build_entity_index(data_standard, subset_str=subset_str, delimiter=delimiter)
    return make_co_annotation_matrix_from_index(index, overlap_length=overlap_length, progress=progress)
