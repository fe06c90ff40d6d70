"""
Utility modules for the Onopay gateway client
"""
from .config_loader import GatewayConfig, GatewayEndpoints, load_gateway_config

__all__ = [
    'GatewayConfig',
    'GatewayEndpoints',
    'load_gateway_config',
]
