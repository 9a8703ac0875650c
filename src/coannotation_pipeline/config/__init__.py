from .loader import load_config, load_config_with_overrides
from .schema import (
    GIANT_NETWORK_URL,
    HoldoutConfig,
    NetworkConfig,
    PipelineConfig,
    StandardConfig,
)

__all__ = [
    "load_config",
    "load_config_with_overrides",
    "PipelineConfig",
    "StandardConfig",
    "NetworkConfig",
    "HoldoutConfig",
    "GIANT_NETWORK_URL",
]
