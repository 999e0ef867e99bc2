"""
FedEx Module - Shipping integration.

Features:
- Address validation
- Rate quotes with warehouse selection
- Shipment tracking
"""

from artgallery.modules.fedex.client import FedExClient, get_fedex_client
from artgallery.modules.fedex.config import FedExConfig, get_fedex_config

__all__ = [
    "FedExClient",
    "FedExConfig",
    "get_fedex_client",
    "get_fedex_config",
]
