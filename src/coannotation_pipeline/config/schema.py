"""Pydantic models for pipeline configuration."""

import hashlib
import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

# Default location of the GIANT/HumanBase global functional network
GIANT_NETWORK_URL = "https://s3-us-west-2.amazonaws.com/humanbase/networks/global_top.gz"


class StandardConfig(BaseModel):
    """Parameters for building co-annotation standards."""

    overlap_length: int = Field(
        default=1,
        ge=1,
        description="Minimum number of shared entities for a co-annotated pair",
    )
    subset_str: list[str] | None = Field(
        default=None,
        description="Keep only entities whose Name contains one of these strings",
    )
    delimiter: str = Field(
        default=";",
        min_length=1,
        max_length=1,
        description="Separator of member genes in the Genes column",
    )
    table_name: str = Field(
        default="co_annotation",
        description="DuckDB table holding the pair-list standard",
    )


class NetworkConfig(BaseModel):
    """Parameters for importing a pre-scored functional network."""

    url: str = Field(
        default=GIANT_NETWORK_URL,
        description="Download URL of the global functional network",
    )
    top_n: int = Field(
        default=1_000_000,
        ge=1,
        description="Number of highest scoring edges labelled as positives",
    )
    mapping_path: Path | None = Field(
        default=None,
        description="Tab-separated symbol/Entrez mapping file (symbol col 1, Entrez col 3)",
    )
    timeout_seconds: int = Field(
        default=120,
        ge=1,
        description="Download timeout in seconds",
    )


class HoldoutConfig(BaseModel):
    """Parameters for gene holdout re-evaluation."""

    policy: Literal["strict", "relabel"] = Field(
        default="strict",
        description="Delete annotated pairs touching target genes, or relabel them as 0",
    )


class PipelineConfig(BaseModel):
    """Main pipeline configuration."""

    data_dir: Path = Field(
        ...,
        description="Directory for downloaded files and cached standards",
    )
    duckdb_path: Path = Field(
        ...,
        description="Path to DuckDB database file",
    )
    standard: StandardConfig = Field(
        default_factory=StandardConfig,
        description="Co-annotation standard parameters",
    )
    network: NetworkConfig = Field(
        default_factory=NetworkConfig,
        description="Functional network import parameters",
    )
    holdout: HoldoutConfig = Field(
        default_factory=HoldoutConfig,
        description="Holdout re-evaluation parameters",
    )

    @field_validator("data_dir")
    @classmethod
    def create_directory(cls, v: Path) -> Path:
        """Create directory if it doesn't exist."""
        v.mkdir(parents=True, exist_ok=True)
        return v

    def config_hash(self) -> str:
        """
        Compute SHA-256 hash of the configuration.

        Returns a deterministic hash based on all config values,
        recorded with every standard built for provenance.
        """
        config_dict = self.model_dump(mode="python")
        config_json = json.dumps(
            config_dict,
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(config_json.encode()).hexdigest()
