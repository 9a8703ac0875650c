"""Binarize a functional network and reduce it to the pair-list schema."""

from pathlib import Path
from typing import Optional

import polars as pl
import structlog

from coannotation_pipeline.errors import InvalidInputError
from coannotation_pipeline.network.fetch import (
    download_functional_network,
    parse_functional_network,
)
from coannotation_pipeline.network.models import (
    DEFAULT_TOP_N,
    GIANT_NETWORK_URL,
    FunctionalNetwork,
)

logger = structlog.get_logger()


def binarize_top_k(df: pl.DataFrame, top_n: int = DEFAULT_TOP_N) -> pl.DataFrame:
    """Label the top_n highest scoring edges 1 and every other edge 0.

    Ties at the cutoff are broken by file order. A top_n larger than the
    network labels every edge.

    Args:
        df: Network with gene1, gene2, score columns
        top_n: Number of positive edges

    Returns:
        DataFrame (gene1, gene2, is_annotated) in the input row order

    Raises:
        InvalidInputError: If top_n < 1 or the score column is missing
    """
    if isinstance(top_n, bool) or not isinstance(top_n, int) or top_n < 1:
        raise InvalidInputError(f"top_n must be a positive integer, got {top_n!r}")
    if "score" not in df.columns:
        raise InvalidInputError("Network has no 'score' column")

    result = df.select(
        "gene1",
        "gene2",
        (pl.col("score").rank(method="ordinal", descending=True) <= top_n)
        .fill_null(False)
        .cast(pl.Int8)
        .alias("is_annotated"),
    )

    positives = int(result["is_annotated"].sum()) if result.height else 0
    logger.info(
        "binarize_top_k_complete",
        edge_count=result.height,
        top_n=top_n,
        positive_edges=positives,
        positive_rate=round(positives / result.height, 4) if result.height else None,
    )
    return result


def group_unique_elements(values: pl.Series) -> pl.DataFrame:
    """First and last row of each distinct value in a sorted column.

    Args:
        values: Column sorted so that equal values are contiguous

    Returns:
        DataFrame (gene, first_row, last_row), 0-based inclusive rows,
        in order of first appearance
    """
    return (
        pl.DataFrame({"gene": values})
        .with_row_index("_row")
        .group_by("gene", maintain_order=True)
        .agg(
            pl.col("_row").min().cast(pl.Int64).alias("first_row"),
            pl.col("_row").max().cast(pl.Int64).alias("last_row"),
        )
    )


def read_entrez_symbol_mapping(path: Path) -> pl.DataFrame:
    """Read an Entrez ID -> gene symbol mapping file.

    Tab-separated with a header row; the symbol is in column 1 and the
    Entrez ID in column 3. Rows without a numeric Entrez ID are dropped;
    when an Entrez ID appears more than once the first symbol (in symbol
    order) wins.

    Returns:
        DataFrame (entrez_id, symbol), sorted by symbol
    """
    path = Path(path)
    df = pl.read_csv(
        path,
        separator="\t",
        infer_schema_length=0,
        quote_char=None,
        truncate_ragged_lines=True,
    )
    if df.width < 3:
        raise InvalidInputError(
            f"Mapping file {path} needs at least 3 columns (symbol, ..., entrez), got {df.width}"
        )

    symbol_col, entrez_col = df.columns[0], df.columns[2]
    mapping = (
        df.select(
            pl.col(entrez_col).str.strip_chars().cast(pl.Int64, strict=False).alias("entrez_id"),
            pl.col(symbol_col).alias("symbol"),
        )
        .drop_nulls()
        .sort("symbol", maintain_order=True)
        .unique(subset="entrez_id", keep="first", maintain_order=True)
    )

    logger.info(
        "read_entrez_symbol_mapping",
        path=str(path),
        rows_read=df.height,
        mapped_ids=mapping.height,
    )
    return mapping


def map_network_to_symbols(network: FunctionalNetwork) -> pl.DataFrame:
    """Convert a network from Entrez IDs to gene symbols.

    Pairs with either gene missing from the mapping are dropped.

    Returns:
        Pair list (gene1, gene2, is_annotated) in symbols, sorted by gene1
        (stable, so the network order is kept within each gene1)
    """
    if network.mapping.height == 0:
        raise InvalidInputError("Network has no Entrez -> symbol mapping")

    mapping = network.mapping.select("entrez_id", "symbol")
    result = (
        network.data.with_row_index("_row")
        .join(mapping.rename({"entrez_id": "gene1", "symbol": "_symbol1"}), on="gene1", how="inner")
        .join(mapping.rename({"entrez_id": "gene2", "symbol": "_symbol2"}), on="gene2", how="inner")
        .sort("_row")
        .select(
            pl.col("_symbol1").alias("gene1"),
            pl.col("_symbol2").alias("gene2"),
            "is_annotated",
        )
        .sort("gene1", maintain_order=True)
    )

    logger.info(
        "map_network_to_symbols_complete",
        edges_before=network.data.height,
        edges_after=result.height,
        dropped_unmapped=network.data.height - result.height,
    )
    return result


def make_functional_network(
    file_location: Path,
    mapping_path: Optional[Path] = None,
    url: str = GIANT_NETWORK_URL,
    top_n: int = DEFAULT_TOP_N,
    force: bool = False,
    timeout: float = 120.0,
) -> FunctionalNetwork:
    """Download (if needed), binarize and index a global functional network.

    Composes: download -> parse -> top-K binarize -> sort by gene1 ->
    group rows by gene1 -> read symbol mapping.

    Args:
        file_location: Local network file; downloaded from url if missing
        mapping_path: Optional Entrez -> symbol mapping file
        url: Download URL
        top_n: Number of highest scoring edges labelled 1
        force: Re-download even if file_location exists
        timeout: Download timeout in seconds

    Returns:
        FunctionalNetwork with data, gene_indices and mapping
    """
    logger.info("make_functional_network_start", path=str(file_location), top_n=top_n)

    path = download_functional_network(file_location, url=url, force=force, timeout=timeout)
    edges = parse_functional_network(path)

    data = binarize_top_k(edges, top_n=top_n).sort("gene1", maintain_order=True)
    gene_indices = group_unique_elements(data["gene1"])

    if mapping_path is not None:
        network = FunctionalNetwork(data=data, gene_indices=gene_indices, mapping=read_entrez_symbol_mapping(mapping_path))
    else:
        network = FunctionalNetwork(data=data, gene_indices=gene_indices)

    logger.info(
        "make_functional_network_complete",
        edge_count=data.height,
        gene1_count=gene_indices.height,
        mapped_ids=network.mapping.height,
    )
    return network
