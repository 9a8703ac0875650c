"""Unit tests for the functional network importer."""

import gzip
from pathlib import Path
from unittest.mock import Mock, patch

import polars as pl
import pytest
from polars.testing import assert_frame_equal

from coannotation_pipeline.errors import InvalidInputError
from coannotation_pipeline.network import (
    FunctionalNetwork,
    binarize_top_k,
    download_functional_network,
    group_unique_elements,
    make_functional_network,
    map_network_to_symbols,
    parse_functional_network,
    read_entrez_symbol_mapping,
)

NETWORK_TSV = "1\t2\t0.9\n2\t3\t0.1\n1\t3\t0.5\n3\t1\t0.8\n"


@pytest.fixture
def network_file(tmp_path: Path) -> Path:
    """Headerless network: four edges over Entrez IDs 1, 2, 3."""
    path = tmp_path / "network.tsv"
    path.write_text(NETWORK_TSV)
    return path


@pytest.fixture
def mapping_file(tmp_path: Path) -> Path:
    """Symbol in column 1, Entrez ID in column 3; one unmappable row."""
    path = tmp_path / "Gene_symbol_Entrez_ID.txt"
    path.write_text(
        "Symbol\tDescription\tEntrezID\n"
        "GENEB\tsecond gene\t2\n"
        "GENEA\tfirst gene\t1\n"
        "NOID\tno identifier\tNA\n"
    )
    return path


def test_parse_functional_network(network_file: Path):
    """Three headerless columns parsed as Int64, Int64, Float64."""
    df = parse_functional_network(network_file)

    assert df.columns == ["gene1", "gene2", "score"]
    assert df.schema["gene1"] == pl.Int64
    assert df.schema["score"] == pl.Float64
    assert df.height == 4


def test_parse_functional_network_gzip(tmp_path: Path, network_file: Path):
    """Gzip-compressed networks parse to the same table."""
    gz_path = tmp_path / "network.tsv.gz"
    with gzip.open(gz_path, "wt") as f:
        f.write(NETWORK_TSV)

    assert_frame_equal(parse_functional_network(gz_path), parse_functional_network(network_file))


def test_binarize_top_k():
    """The top_n highest scores are 1, input order kept."""
    df = pl.DataFrame({
        "gene1": [1, 2, 3, 4],
        "gene2": [5, 6, 7, 8],
        "score": [0.5, 0.9, 0.1, 0.8],
    })

    result = binarize_top_k(df, top_n=2)

    assert result.columns == ["gene1", "gene2", "is_annotated"]
    assert result["is_annotated"].to_list() == [0, 1, 0, 1]
    assert result.schema["is_annotated"] == pl.Int8


def test_binarize_top_k_larger_than_network():
    df = pl.DataFrame({"gene1": [1, 2], "gene2": [3, 4], "score": [0.2, 0.1]})

    assert binarize_top_k(df, top_n=10)["is_annotated"].to_list() == [1, 1]


def test_binarize_top_k_rejects_non_positive():
    df = pl.DataFrame({"gene1": [1], "gene2": [2], "score": [0.2]})

    with pytest.raises(InvalidInputError, match="top_n"):
        binarize_top_k(df, top_n=0)


def test_group_unique_elements():
    """First and last row of each run of equal values."""
    result = group_unique_elements(pl.Series([1, 1, 2, 3, 3, 3]))

    assert result.rows() == [(1, 0, 1), (2, 2, 2), (3, 3, 5)]


def test_read_entrez_symbol_mapping(mapping_file: Path):
    """Non-numeric IDs dropped; result sorted by symbol."""
    mapping = read_entrez_symbol_mapping(mapping_file)

    assert mapping.rows() == [(1, "GENEA"), (2, "GENEB")]


def test_read_entrez_symbol_mapping_duplicate_id(tmp_path: Path):
    """An Entrez ID listed twice keeps the first symbol in symbol order."""
    path = tmp_path / "mapping.txt"
    path.write_text("Symbol\tDescription\tEntrezID\nZZZ\tlater\t7\nAAA\tearlier\t7\n")

    mapping = read_entrez_symbol_mapping(path)

    assert mapping.rows() == [(7, "AAA")]


def test_read_entrez_symbol_mapping_too_few_columns(tmp_path: Path):
    path = tmp_path / "mapping.txt"
    path.write_text("Symbol\tEntrezID\nA\t1\n")

    with pytest.raises(InvalidInputError, match="3 columns"):
        read_entrez_symbol_mapping(path)


@patch("coannotation_pipeline.network.fetch.httpx.stream")
def test_make_functional_network(mock_stream: Mock, network_file: Path):
    """Existing file: no download; data sorted by gene1 with row ranges."""
    net = make_functional_network(network_file, top_n=2)

    mock_stream.assert_not_called()
    assert net.data.rows() == [(1, 2, 1), (1, 3, 0), (2, 3, 0), (3, 1, 1)]
    assert net.gene_indices.rows() == [(1, 0, 1), (2, 2, 2), (3, 3, 3)]
    assert net.mapping.height == 0


def test_rows_for(network_file: Path):
    net = make_functional_network(network_file, top_n=2)

    assert net.rows_for(1)["gene2"].to_list() == [2, 3]
    assert net.rows_for(99).height == 0


def test_map_network_to_symbols(network_file: Path, mapping_file: Path):
    """Edges touching an unmapped ID are dropped."""
    net = make_functional_network(network_file, mapping_path=mapping_file, top_n=2)

    symbols = map_network_to_symbols(net)

    assert net.mapping.height == 2
    assert symbols.rows() == [("GENEA", "GENEB", 1)]


def test_map_network_without_mapping_raises():
    net = FunctionalNetwork(
        data=pl.DataFrame({"gene1": [1], "gene2": [2], "is_annotated": [1]}),
        gene_indices=pl.DataFrame({"gene": [1], "first_row": [0], "last_row": [0]}),
    )

    with pytest.raises(InvalidInputError, match="mapping"):
        map_network_to_symbols(net)


@patch("coannotation_pipeline.network.fetch.httpx.stream")
def test_download_skips_if_exists(mock_stream: Mock, network_file: Path):
    """download_functional_network returns early if the file exists."""
    result = download_functional_network(network_file, force=False)

    assert result == network_file
    mock_stream.assert_not_called()


@patch("coannotation_pipeline.network.fetch.httpx.stream")
def test_download_writes_streamed_file(mock_stream: Mock, tmp_path: Path):
    """Streamed chunks are written to the output path."""
    output_path = tmp_path / "network" / "edges.tsv"

    mock_response = Mock()
    mock_response.headers = {"content-length": "12"}
    mock_response.iter_bytes = Mock(return_value=[b"1\t2\t0.9\n", b"2\t3\t0.1\n"])
    mock_response.raise_for_status = Mock()
    mock_stream.return_value.__enter__.return_value = mock_response

    result = download_functional_network(output_path, url="https://example.org/edges.tsv")

    assert result == output_path
    assert output_path.read_text() == "1\t2\t0.9\n2\t3\t0.1\n"
    assert not output_path.with_suffix(".tsv.tmp").exists()
    mock_stream.assert_called_once()
