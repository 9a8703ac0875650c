"""Data models for pre-scored global functional networks."""

from dataclasses import dataclass, field

import polars as pl

from coannotation_pipeline.config.schema import GIANT_NETWORK_URL

# Table name for DuckDB storage
NETWORK_TABLE_NAME = "functional_network"

# Number of highest scoring edges kept as positives (~2.5% of the GIANT global network)
DEFAULT_TOP_N = 1_000_000

NETWORK_COLUMNS = ("gene1", "gene2", "score")

__all__ = [
    "GIANT_NETWORK_URL",
    "NETWORK_TABLE_NAME",
    "DEFAULT_TOP_N",
    "NETWORK_COLUMNS",
    "FunctionalNetwork",
]


@dataclass
class FunctionalNetwork:
    """A binarized functional network in Entrez IDs.

    Attributes:
        data: Pair list (gene1, gene2, is_annotated), sorted by gene1
        gene_indices: First and last row of each gene1 in data
            (gene, first_row, last_row; 0-based, inclusive)
        mapping: Entrez ID -> gene symbol (entrez_id, symbol); empty when
            no mapping file was given
    """

    data: pl.DataFrame
    gene_indices: pl.DataFrame
    mapping: pl.DataFrame = field(
        default_factory=lambda: pl.DataFrame(schema={"entrez_id": pl.Int64, "symbol": pl.Utf8})
    )

    def rows_for(self, gene: int) -> pl.DataFrame:
        """All pairs with the given gene1."""
        hit = self.gene_indices.filter(pl.col("gene") == gene)
        if hit.height == 0:
            return self.data.clear()
        first, last = hit["first_row"][0], hit["last_row"][0]
        return self.data.slice(first, last - first + 1)
