"""DuckDB checkpoint storage for co-annotation standards."""

import re
from pathlib import Path
from typing import Optional

import duckdb
import polars as pl

from coannotation_pipeline.errors import InvalidInputError

_TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_table_name(table_name: str) -> str:
    # Table names are interpolated into SQL
    if not _TABLE_NAME_PATTERN.match(table_name):
        raise InvalidInputError(f"Invalid table name: {table_name!r}")
    return table_name


class PipelineStore:
    """
    DuckDB-backed store for built standards and holdout variants.

    A standard over tens of thousands of genes holds hundreds of millions
    of pairs, so each build is saved as a table and reused on later runs
    unless the caller forces a rebuild.
    """

    def __init__(self, db_path: Path):
        """
        Open (or create) the DuckDB database.

        Args:
            db_path: Path to DuckDB database file. Parent directories
                     are created automatically.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = duckdb.connect(str(self.db_path))

        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS _checkpoints (
                table_name VARCHAR PRIMARY KEY,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                row_count BIGINT,
                description VARCHAR
            )
        """)

    def save_dataframe(
        self,
        df: pl.DataFrame,
        table_name: str,
        description: str = "",
        replace: bool = True,
    ) -> None:
        """
        Save a polars DataFrame as a DuckDB table and record the checkpoint.

        Args:
            df: DataFrame to save
            table_name: Name for the DuckDB table
            description: Optional description for checkpoint metadata
            replace: If True, replace existing table; if False, append
        """
        if not isinstance(df, pl.DataFrame):
            raise InvalidInputError("df must be a polars.DataFrame")
        table_name = _check_table_name(table_name)

        if replace:
            self.conn.execute(f"CREATE OR REPLACE TABLE {table_name} AS SELECT * FROM df")
        else:
            self.conn.execute(f"INSERT INTO {table_name} SELECT * FROM df")

        row_count = self.conn.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()[0]
        self.conn.execute("""
            INSERT OR REPLACE INTO _checkpoints (table_name, row_count, description, created_at)
            VALUES (?, ?, ?, CURRENT_TIMESTAMP)
        """, [table_name, row_count, description])

    def load_dataframe(self, table_name: str) -> Optional[pl.DataFrame]:
        """
        Load a table as a polars DataFrame, or None if it doesn't exist.

        Rows come back in insertion order, so a saved standard keeps its
        (gene1, gene2) enumeration order.
        """
        table_name = _check_table_name(table_name)
        try:
            return self.conn.execute(f"SELECT * FROM {table_name}").pl()
        except duckdb.CatalogException:
            return None

    def table_exists(self, table_name: str) -> bool:
        """Check whether a table is present in the database."""
        table_name = _check_table_name(table_name)
        result = self.conn.execute(
            "SELECT COUNT(*) FROM information_schema.tables WHERE table_name = ?",
            [table_name],
        ).fetchone()
        return result[0] > 0

    def has_checkpoint(self, table_name: str) -> bool:
        """Check whether a checkpoint has been recorded for a table."""
        result = self.conn.execute(
            "SELECT COUNT(*) FROM _checkpoints WHERE table_name = ?",
            [table_name],
        ).fetchone()
        return result[0] > 0

    def list_checkpoints(self) -> list[dict]:
        """
        List all checkpoints, newest first.

        Returns:
            List of dicts with keys: table_name, created_at, row_count, description
        """
        rows = self.conn.execute("""
            SELECT table_name, created_at, row_count, description
            FROM _checkpoints
            ORDER BY created_at DESC
        """).fetchall()

        return [
            {
                "table_name": name,
                "created_at": created_at,
                "row_count": row_count,
                "description": description,
            }
            for name, created_at, row_count, description in rows
        ]

    def delete_checkpoint(self, table_name: str) -> None:
        """Drop a table and its checkpoint metadata."""
        table_name = _check_table_name(table_name)
        self.conn.execute(f"DROP TABLE IF EXISTS {table_name}")
        self.conn.execute(
            "DELETE FROM _checkpoints WHERE table_name = ?",
            [table_name],
        )

    def export_parquet(self, table_name: str, output_path: Path) -> None:
        """Export a table to a Parquet file using DuckDB's native writer."""
        table_name = _check_table_name(table_name)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        quoted_path = str(output_path).replace("'", "''")
        self.conn.execute(f"COPY {table_name} TO '{quoted_path}' (FORMAT PARQUET)")

    def execute_query(
        self,
        query: str,
        params: Optional[list] = None,
    ) -> pl.DataFrame:
        """Execute a SQL query and return the result as a polars DataFrame."""
        if params:
            result = self.conn.execute(query, params)
        else:
            result = self.conn.execute(query)
        return result.pl()

    def close(self) -> None:
        """Close the DuckDB connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @classmethod
    def from_config(cls, config: "PipelineConfig") -> "PipelineStore":
        """Create a PipelineStore at the configured duckdb_path."""
        return cls(config.duckdb_path)
