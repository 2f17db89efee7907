"""Home Assistant hub access."""
from .client import (
    METADATA_TEMPLATE,
    HubClient,
    HubClientFactory,
    HubState,
    ServiceCallResult,
)

__all__ = [
    "METADATA_TEMPLATE",
    "HubClient",
    "HubClientFactory",
    "HubState",
    "ServiceCallResult",
]
