"""Data models and table schemas for co-annotation standards."""

from pydantic import BaseModel, ConfigDict, computed_field

# Entity table columns (complex / pathway / GO term memberships)
ENTITY_ID_COLUMN = "ID"
ENTITY_NAME_COLUMN = "Name"
ENTITY_GENES_COLUMN = "Genes"
ENTITY_COLUMNS = (ENTITY_ID_COLUMN, ENTITY_NAME_COLUMN, ENTITY_GENES_COLUMN)

# Separator of member genes inside the Genes column
GENE_DELIMITER = ";"

# Pair-list standard columns
PAIR_COLUMNS = ("gene1", "gene2", "is_annotated", "ID")

# Scored pair table columns produced by downstream scoring
ROW_INDEX_COLUMN = "index"
LABEL_COLUMN = "true"

# Table name for DuckDB storage
CO_ANNOTATION_TABLE_NAME = "co_annotation"


class Entity(BaseModel):
    """A curated functional entity (protein complex, pathway, GO term).

    Attributes:
        id: Entity identifier as found in the ID column (string or integer)
        name: Display name, used for subset filtering (e.g. "KEGG")
        genes: Member gene symbols in table order. Whitespace is removed,
            empty tokens are dropped and case is kept as-is, so C4orf3 and
            C4ORF3 stay distinct genes.
    """

    model_config = ConfigDict(frozen=True)

    id: str | int
    name: str
    genes: tuple[str, ...] = ()

    @computed_field
    @property
    def member_count(self) -> int:
        return len(self.genes)
