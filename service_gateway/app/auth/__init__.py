"""
Authentication helpers for the Gateway service.
"""

from .gate import AuthGate

__all__ = [
    "AuthGate",
]
