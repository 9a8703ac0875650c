"""Import of pre-scored global functional networks (GIANT/HumanBase)."""

from coannotation_pipeline.network.models import (
    DEFAULT_TOP_N,
    GIANT_NETWORK_URL,
    NETWORK_TABLE_NAME,
    FunctionalNetwork,
)
from coannotation_pipeline.network.fetch import download_functional_network, parse_functional_network
from coannotation_pipeline.network.transform import (
    binarize_top_k,
    group_unique_elements,
    make_functional_network,
    map_network_to_symbols,
    read_entrez_symbol_mapping,
)

__all__ = [
    "DEFAULT_TOP_N",
    "GIANT_NETWORK_URL",
    "NETWORK_TABLE_NAME",
    "FunctionalNetwork",
    "download_functional_network",
    "parse_functional_network",
    "binarize_top_k",
    "group_unique_elements",
    "make_functional_network",
    "map_network_to_symbols",
    "read_entrez_symbol_mapping",
]
