"""Provenance tracking for built standards."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class ProvenanceTracker:
    """
    Records how a standard was produced.

    Captures the package version, the config hash, the standard
    parameters (overlap length, entity filters, network top-K) and
    every processing step, so a cached standard can be traced back to
    the run that built it.
    """

    def __init__(self, pipeline_version: str, config: "PipelineConfig"):
        self.pipeline_version = pipeline_version
        self.config_hash = config.config_hash()
        self.parameters = {
            "standard": config.standard.model_dump(mode="json"),
            "network": config.network.model_dump(mode="json"),
            "holdout": config.holdout.model_dump(mode="json"),
        }
        self.processing_steps: list[dict] = []
        self.created_at = datetime.now(timezone.utc)

    def record_step(self, step_name: str, details: Optional[dict] = None) -> None:
        """
        Record a processing step.

        Args:
            step_name: Name of the processing step (e.g. "build_co_annotation")
            details: Optional dictionary of row counts, paths, parameters
        """
        step = {
            "step_name": step_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if details:
            step["details"] = details
        self.processing_steps.append(step)

    def get_steps(self) -> list[dict]:
        return self.processing_steps

    def create_metadata(self) -> dict:
        """Create the full provenance metadata dictionary."""
        return {
            "pipeline_version": self.pipeline_version,
            "config_hash": self.config_hash,
            "parameters": self.parameters,
            "created_at": self.created_at.isoformat(),
            "processing_steps": self.processing_steps,
        }

    def save_sidecar(self, output_path: Path) -> Path:
        """
        Save provenance metadata next to an output file.

        Args:
            output_path: Path to the standard file; the sidecar replaces
                         its suffix (kegg.parquet -> kegg.provenance.json)

        Returns:
            Path of the sidecar file
        """
        output_path = Path(output_path)
        sidecar_path = output_path.with_suffix(".provenance.json")
        sidecar_path.parent.mkdir(parents=True, exist_ok=True)

        with open(sidecar_path, "w") as f:
            json.dump(self.create_metadata(), f, indent=2, default=str)
        return sidecar_path

    def save_to_store(self, store: "PipelineStore") -> None:
        """Append this run's metadata to the _provenance table."""
        metadata = self.create_metadata()

        store.conn.execute("""
            CREATE TABLE IF NOT EXISTS _provenance (
                version VARCHAR,
                config_hash VARCHAR,
                created_at TIMESTAMP,
                parameters_json VARCHAR,
                steps_json VARCHAR
            )
        """)
        store.conn.execute("""
            INSERT INTO _provenance (version, config_hash, created_at, parameters_json, steps_json)
            VALUES (?, ?, ?, ?, ?)
        """, [
            metadata["pipeline_version"],
            metadata["config_hash"],
            metadata["created_at"],
            json.dumps(metadata["parameters"]),
            json.dumps(metadata["processing_steps"], default=str),
        ])

    @staticmethod
    def load_sidecar(sidecar_path: Path) -> dict:
        with open(sidecar_path) as f:
            return json.load(f)

    @classmethod
    def from_config(
        cls,
        config: "PipelineConfig",
        version: Optional[str] = None,
    ) -> "ProvenanceTracker":
        """
        Create a ProvenanceTracker from a PipelineConfig.

        Args:
            config: PipelineConfig instance
            version: Version string. If None, uses coannotation_pipeline.__version__
        """
        if version is None:
            from coannotation_pipeline import __version__
            version = __version__

        return cls(version, config)
