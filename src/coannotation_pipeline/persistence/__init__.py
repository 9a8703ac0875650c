"""Persistence layer for standard checkpoints and provenance tracking."""

from coannotation_pipeline.persistence.duckdb_store import PipelineStore
from coannotation_pipeline.persistence.provenance import ProvenanceTracker

__all__ = ["PipelineStore", "ProvenanceTracker"]
