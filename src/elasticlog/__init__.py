"""
Batching log shipper for the Elasticsearch bulk API.
"""

from .config import ElasticLogConfig, load_config_from_env
from .errors import (
    ElasticLogError,
    NotInitializedError,
    ProvisioningError,
    ServerConnectionError,
    TransmissionError,
    TransportError,
)
from .handler import ElasticHandler
from .logger import ElasticLog, FlushResult, LifecycleState

__version__ = "0.3.0"
__all__ = [
    "ElasticLog",
    "ElasticLogConfig",
    "ElasticHandler",
    "FlushResult",
    "LifecycleState",
    "load_config_from_env",
    "ElasticLogError",
    "NotInitializedError",
    "ProvisioningError",
    "ServerConnectionError",
    "TransmissionError",
    "TransportError",
]
