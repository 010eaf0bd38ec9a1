"""
Reverse proxy for the Gateway Service.
"""

from .forwarder import ProxyForwarder

__all__ = [
    "ProxyForwarder",
]
