"""Gene to entity indexing for co-annotation standards.

Turns an entity table (ID, Name, semicolon-delimited Genes) into a map
from gene symbol to the set of entity IDs the gene belongs to, plus the
sorted candidate gene list that fixes row/column order of every standard
built from it.
"""

from dataclasses import dataclass, field
from pathlib import Path

import polars as pl
import structlog

from coannotation_pipeline.errors import InvalidInputError
from coannotation_pipeline.standards.models import (
    ENTITY_COLUMNS,
    ENTITY_GENES_COLUMN,
    ENTITY_ID_COLUMN,
    ENTITY_NAME_COLUMN,
    GENE_DELIMITER,
    Entity,
)

logger = structlog.get_logger()


@dataclass
class EntityIndex:
    """Read-only gene -> entity-ID-set index.

    Attributes:
        gene_to_entities: Gene symbol -> frozenset of entity IDs
        candidate_genes: All indexed genes, sorted lexicographically
        entity_count: Number of entities that were indexed (after filtering)
    """

    gene_to_entities: dict[str, frozenset] = field(default_factory=dict)
    candidate_genes: list[str] = field(default_factory=list)
    entity_count: int = 0

    @property
    def n_genes(self) -> int:
        return len(self.candidate_genes)

    @property
    def max_membership(self) -> int:
        """Largest number of entities any single gene belongs to."""
        return max((len(ids) for ids in self.gene_to_entities.values()), default=0)

    def entities_of(self, gene: str) -> frozenset:
        return self.gene_to_entities.get(gene, frozenset())


def split_gene_list(genes: str, delimiter: str = GENE_DELIMITER) -> list[str]:
    """Split a delimited gene field into symbols.

    All whitespace is removed from each token and empty tokens are
    discarded. Case is preserved.
    """
    tokens = ("".join(token.split()) for token in genes.split(delimiter))
    return [token for token in tokens if token]


def validate_entity_table(df: pl.DataFrame) -> None:
    """Check that the entity table has ID, Name and a string Genes column.

    Raises:
        InvalidInputError: On missing columns, a non-string Genes column,
            or a null ID or Genes value
    """
    missing = [col for col in ENTITY_COLUMNS if col not in df.columns]
    if missing:
        raise InvalidInputError(
            f"Entity table is missing required columns: {missing} "
            f"(found {df.columns})"
        )

    genes_dtype = df.schema[ENTITY_GENES_COLUMN]
    if genes_dtype != pl.Utf8:
        raise InvalidInputError(
            f"Column {ENTITY_GENES_COLUMN!r} must hold strings, got {genes_dtype}"
        )

    null_ids = df[ENTITY_ID_COLUMN].null_count()
    if null_ids:
        raise InvalidInputError(
            f"Column {ENTITY_ID_COLUMN!r} has {null_ids} missing values"
        )

    null_genes = df[ENTITY_GENES_COLUMN].null_count()
    if null_genes:
        raise InvalidInputError(
            f"Column {ENTITY_GENES_COLUMN!r} has {null_genes} missing values"
        )


def filter_entities_by_name(
    df: pl.DataFrame,
    subset_str: list[str] | None = None,
) -> pl.DataFrame:
    """Keep entities whose Name contains any of the given strings.

    Matching is a case-sensitive literal substring test; the result is the
    union of matches across all strings, in original row order.

    Args:
        df: Entity table
        subset_str: Strings to look for (e.g. ["KEGG", "REACTOME"]). None or
            empty keeps every entity.

    Returns:
        Filtered entity table
    """
    if not subset_str:
        return df

    if ENTITY_NAME_COLUMN not in df.columns:
        raise InvalidInputError(f"Entity table has no {ENTITY_NAME_COLUMN!r} column")

    names = pl.col(ENTITY_NAME_COLUMN).cast(pl.Utf8)
    condition = pl.lit(False)
    for pattern in subset_str:
        condition = condition | names.str.contains(pattern, literal=True).fill_null(False)

    filtered = df.filter(condition)
    logger.info(
        "filter_entities_by_name",
        subset_str=list(subset_str),
        entities_before=df.height,
        entities_after=filtered.height,
    )
    return filtered


def parse_entities(
    df: pl.DataFrame,
    delimiter: str = GENE_DELIMITER,
) -> list[Entity]:
    """Parse an entity table into Entity records.

    Genes repeated within one entity are kept once, at their first position.
    """
    validate_entity_table(df)

    entities = []
    for row in df.select(ENTITY_COLUMNS).iter_rows(named=True):
        genes = tuple(dict.fromkeys(split_gene_list(row[ENTITY_GENES_COLUMN], delimiter)))
        name = row[ENTITY_NAME_COLUMN]
        entities.append(
            Entity(
                id=row[ENTITY_ID_COLUMN],
                name="" if name is None else str(name),
                genes=genes,
            )
        )
    return entities


def build_entity_index(
    df: pl.DataFrame,
    subset_str: list[str] | None = None,
    delimiter: str = GENE_DELIMITER,
) -> EntityIndex:
    """Build the gene -> entity index and the sorted candidate gene list.

    Args:
        df: Entity table with ID, Name and Genes columns
        subset_str: Optional Name filter applied before indexing
        delimiter: Gene separator in the Genes column

    Returns:
        EntityIndex over every gene that is a member of at least one entity

    Raises:
        InvalidInputError: If the entity table is malformed
    """
    validate_entity_table(df)
    df = filter_entities_by_name(df, subset_str)

    logger.info("build_entity_index_start", entity_count=df.height)

    memberships: dict[str, set] = {}
    entities = parse_entities(df, delimiter)
    for entity in entities:
        for gene in entity.genes:
            memberships.setdefault(gene, set()).add(entity.id)

    index = EntityIndex(
        gene_to_entities={gene: frozenset(ids) for gene, ids in memberships.items()},
        candidate_genes=sorted(memberships),
        entity_count=len(entities),
    )

    logger.info(
        "build_entity_index_complete",
        entity_count=index.entity_count,
        gene_count=index.n_genes,
        max_membership=index.max_membership,
    )
    return index


def read_entity_table(path: Path | str, separator: str = "\t") -> pl.DataFrame:
    """Read an entity table (ID, Name, Genes) from a delimited text file.

    All columns are read as strings so gene symbols and IDs keep their
    exact spelling.
    """
    path = Path(path)
    logger.info("read_entity_table", path=str(path))

    df = pl.read_csv(
        path,
        separator=separator,
        infer_schema_length=0,
        quote_char='"',
        empty_string_is_null=False,
    )
    validate_entity_table(df)
    return df
