"""Integration tests for the standard CLI commands using CliRunner.

Tests:
- info
- standard build: DuckDB table, Parquet output, provenance sidecar
- Checkpoint skip and --force rebuild
- --subset and --overlap-length options
- Invalid overlap length and empty standards
- standard matrix
- standard holdout on a standard and on a scored table
"""

from pathlib import Path

import numpy as np
import polars as pl
import pytest
from click.testing import CliRunner

from coannotation_pipeline.cli.main import cli
from coannotation_pipeline.persistence import PipelineStore, ProvenanceTracker


@pytest.fixture
def test_config(tmp_path):
    """Create minimal config YAML for testing."""
    config_path = tmp_path / "test_config.yaml"
    config_path.write_text(f"""
data_dir: {tmp_path}/data
duckdb_path: {tmp_path}/test.duckdb

standard:
  overlap_length: 1
  table_name: co_annotation

holdout:
  policy: strict
""")
    return config_path


@pytest.fixture
def entities_file(tmp_path) -> Path:
    """Two complexes and one pathway over five genes."""
    path = tmp_path / "entities.tsv"
    path.write_text(
        "ID\tName\tGenes\n"
        "A\tCORUM complex A\tg1;g2;g3\n"
        "B\tCORUM complex B\tg3;g4\n"
        "K\tKEGG pathway K\tg4;g5\n"
    )
    return path


@pytest.fixture
def runner():
    return CliRunner()


def test_info(runner, test_config):
    result = runner.invoke(cli, ['--config', str(test_config), 'info'])

    assert result.exit_code == 0
    assert "Config Hash:" in result.output
    assert "Overlap Length: 1" in result.output
    assert "Policy: strict" in result.output


def test_standard_help(runner, test_config):
    result = runner.invoke(cli, ['--config', str(test_config), 'standard', '--help'])

    assert result.exit_code == 0
    assert "build" in result.output
    assert "holdout" in result.output
    assert "matrix" in result.output


def test_build_creates_table_and_output(runner, test_config, entities_file, tmp_path):
    """build loads the standard to DuckDB, writes Parquet and a sidecar."""
    output = tmp_path / "standard.parquet"

    result = runner.invoke(cli, [
        '--config', str(test_config),
        'standard', 'build',
        '--entities', str(entities_file),
        '--output', str(output),
    ])

    assert result.exit_code == 0, result.output
    assert "10 pairs, 5 co-annotated" in result.output

    df = pl.read_parquet(output)
    assert df.height == 10
    assert (tmp_path / "standard.provenance.json").exists()

    with PipelineStore(tmp_path / "test.duckdb") as store:
        assert store.has_checkpoint("co_annotation")
        table = store.load_dataframe("co_annotation")
        assert table.height == 10
        assert store.table_exists("_provenance")


def test_build_skips_existing_checkpoint(runner, test_config, entities_file):
    args = [
        '--config', str(test_config),
        'standard', 'build',
        '--entities', str(entities_file),
    ]

    first = runner.invoke(cli, args)
    second = runner.invoke(cli, args)

    assert first.exit_code == 0, first.output
    assert second.exit_code == 0
    assert "Skipping build" in second.output
    assert "Pairs: 10" in second.output


def test_build_force_rebuilds(runner, test_config, entities_file, tmp_path):
    """--force rebuilds both the table and the cached output file."""
    output = tmp_path / "standard.parquet"
    base = [
        '--config', str(test_config),
        'standard', 'build',
        '--entities', str(entities_file),
        '--output', str(output),
    ]

    runner.invoke(cli, base)
    result = runner.invoke(cli, base + ['--subset', 'CORUM', '--force'])

    assert result.exit_code == 0, result.output
    assert "Removed existing output" in result.output
    # CORUM only: g1..g4
    assert pl.read_parquet(output).height == 6


def test_build_with_subset_and_table(runner, test_config, entities_file, tmp_path):
    result = runner.invoke(cli, [
        '--config', str(test_config),
        'standard', 'build',
        '--entities', str(entities_file),
        '--subset', 'KEGG',
        '--table', 'kegg_pairs',
    ])

    assert result.exit_code == 0, result.output
    with PipelineStore(tmp_path / "test.duckdb") as store:
        table = store.load_dataframe("kegg_pairs")
        assert table.rows() == [("g4", "g5", 1, "K")]


def test_build_invalid_overlap_length(runner, test_config, entities_file):
    """No gene belongs to three entities, so --overlap-length 3 fails."""
    result = runner.invoke(cli, [
        '--config', str(test_config),
        'standard', 'build',
        '--entities', str(entities_file),
        '--overlap-length', '3',
    ])

    assert result.exit_code == 1
    assert "Invalid input" in result.output


def test_build_missing_genes_column(runner, test_config, tmp_path):
    path = tmp_path / "bad.tsv"
    path.write_text("ID\tName\nA\tcomplex\n")

    result = runner.invoke(cli, [
        '--config', str(test_config),
        'standard', 'build',
        '--entities', str(path),
    ])

    assert result.exit_code == 1
    assert "Genes" in result.output


def test_build_single_gene_is_empty(runner, test_config, tmp_path):
    """Fewer than two genes is reported, not treated as a failure."""
    path = tmp_path / "single.tsv"
    path.write_text("ID\tName\tGenes\nA\tcomplex\tONLY\n")

    result = runner.invoke(cli, [
        '--config', str(test_config),
        'standard', 'build',
        '--entities', str(path),
    ])

    assert result.exit_code == 0
    assert "Fewer than two candidate genes" in result.output
    with PipelineStore(tmp_path / "test.duckdb") as store:
        assert not store.has_checkpoint("co_annotation")


def test_matrix_writes_npz(runner, test_config, entities_file, tmp_path):
    output = tmp_path / "matrix.npz"

    result = runner.invoke(cli, [
        '--config', str(test_config),
        'standard', 'matrix',
        '--entities', str(entities_file),
        '--output', str(output),
    ])

    assert result.exit_code == 0, result.output
    assert "5 x 5 matrix, 5 co-annotated pairs" in result.output
    with np.load(output) as data:
        values = data["values"]
        assert values.shape == (5, 5)
        assert np.array_equal(values, values.T)


def test_matrix_requires_npz_suffix(runner, test_config, entities_file, tmp_path):
    result = runner.invoke(cli, [
        '--config', str(test_config),
        'standard', 'matrix',
        '--entities', str(entities_file),
        '--output', str(tmp_path / "matrix.parquet"),
    ])

    assert result.exit_code == 1
    assert ".npz" in result.output


@pytest.fixture
def built_standard(runner, test_config, entities_file, tmp_path) -> Path:
    output = tmp_path / "standard.parquet"
    result = runner.invoke(cli, [
        '--config', str(test_config),
        'standard', 'build',
        '--entities', str(entities_file),
        '--output', str(output),
    ])
    assert result.exit_code == 0, result.output
    return output


def test_holdout_strict(runner, test_config, built_standard, tmp_path):
    """Strict holdout of g3 drops its three annotated pairs."""
    output = tmp_path / "holdout.parquet"

    result = runner.invoke(cli, [
        '--config', str(test_config),
        'standard', 'holdout',
        '--standard', str(built_standard),
        '--genes', 'g3',
        '--output', str(output),
    ])

    assert result.exit_code == 0, result.output
    assert "strict: 10 -> 7 rows" in result.output

    df = pl.read_parquet(output)
    touching = df.filter((pl.col("gene1") == "g3") | (pl.col("gene2") == "g3"))
    assert touching["is_annotated"].sum() == 0

    sidecar = ProvenanceTracker.load_sidecar(tmp_path / "holdout.provenance.json")
    assert sidecar["processing_steps"][0]["details"]["target_genes"] == ["g3"]


def test_holdout_relabel_from_genes_file(runner, test_config, built_standard, tmp_path):
    """Relabel keeps the row count; genes come from a file."""
    genes_file = tmp_path / "genes.txt"
    genes_file.write_text("g3\n\ng5\n")
    output = tmp_path / "holdout.parquet"

    result = runner.invoke(cli, [
        '--config', str(test_config),
        'standard', 'holdout',
        '--standard', str(built_standard),
        '--genes-file', str(genes_file),
        '--policy', 'relabel',
        '--output', str(output),
    ])

    assert result.exit_code == 0, result.output
    df = pl.read_parquet(output)
    assert df.height == 10
    # Only (g1, g2) and nothing touching g3 or g5 stays annotated
    assert df.filter(pl.col("is_annotated") == 1).select("gene1", "gene2").rows() == [("g1", "g2")]


def test_holdout_scored_table(runner, test_config, built_standard, tmp_path):
    """With --scored, the scored table is filtered through its index column."""
    scored = tmp_path / "scored.parquet"
    pl.DataFrame({
        "index": [0, 1, 9],
        "predicted": [0.9, 0.8, 0.1],
        "true": [1, 1, 1],
    }).write_parquet(scored)
    output = tmp_path / "scored_holdout.parquet"

    result = runner.invoke(cli, [
        '--config', str(test_config),
        'standard', 'holdout',
        '--standard', str(built_standard),
        '--scored', str(scored),
        '--genes', 'g3',
        '--output', str(output),
    ])

    assert result.exit_code == 0, result.output
    # Row 0 is (g1, g2), row 1 is (g1, g3), row 9 is (g4, g5)
    assert pl.read_parquet(output)["index"].to_list() == [0, 9]


def test_holdout_scored_index_out_of_range(runner, test_config, built_standard, tmp_path):
    scored = tmp_path / "scored.parquet"
    pl.DataFrame({"index": [10], "predicted": [0.5], "true": [1]}).write_parquet(scored)

    result = runner.invoke(cli, [
        '--config', str(test_config),
        'standard', 'holdout',
        '--standard', str(built_standard),
        '--scored', str(scored),
        '--genes', 'g3',
        '--output', str(tmp_path / "out.parquet"),
    ])

    assert result.exit_code == 1
    assert "out of range" in result.output


def test_holdout_without_genes(runner, test_config, built_standard, tmp_path):
    output = tmp_path / "holdout.parquet"

    result = runner.invoke(cli, [
        '--config', str(test_config),
        'standard', 'holdout',
        '--standard', str(built_standard),
        '--output', str(output),
    ])

    assert result.exit_code == 0
    assert "No target genes" in result.output
    assert pl.read_parquet(output).height == 10
