"""Co-annotation gold standards built from entity memberships."""

from coannotation_pipeline.standards.models import (
    CO_ANNOTATION_TABLE_NAME,
    ENTITY_COLUMNS,
    PAIR_COLUMNS,
    Entity,
)
from coannotation_pipeline.standards.entity_index import (
    EntityIndex,
    build_entity_index,
    filter_entities_by_name,
    parse_entities,
    read_entity_table,
    split_gene_list,
)
from coannotation_pipeline.standards.pairwise import (
    CoAnnotationMatrix,
    make_co_annotation,
    make_co_annotation_from_index,
    make_co_annotation_matrix,
    make_co_annotation_matrix_from_index,
    shared_entities,
    validate_overlap_length,
)
from coannotation_pipeline.standards.removal import (
    REMOVAL_POLICIES,
    RemovalPolicy,
    remove_pairs_with_genes,
    remove_scored_pairs_with_genes,
)
from coannotation_pipeline.standards.cache import (
    file_cached,
    load_matrix,
    load_pair_list,
    make_co_annotation_cached,
    make_co_annotation_matrix_cached,
    save_result,
)
from coannotation_pipeline.standards.load import load_to_duckdb, query_annotated_pairs

__all__ = [
    "CO_ANNOTATION_TABLE_NAME",
    "ENTITY_COLUMNS",
    "PAIR_COLUMNS",
    "Entity",
    "EntityIndex",
    "build_entity_index",
    "filter_entities_by_name",
    "parse_entities",
    "read_entity_table",
    "split_gene_list",
    "CoAnnotationMatrix",
    "make_co_annotation",
    "make_co_annotation_from_index",
    "make_co_annotation_matrix",
    "make_co_annotation_matrix_from_index",
    "shared_entities",
    "validate_overlap_length",
    "REMOVAL_POLICIES",
    "RemovalPolicy",
    "remove_pairs_with_genes",
    "remove_scored_pairs_with_genes",
    "file_cached",
    "load_matrix",
    "load_pair_list",
    "make_co_annotation_cached",
    "make_co_annotation_matrix_cached",
    "save_result",
    "load_to_duckdb",
    "query_annotated_pairs",
]
