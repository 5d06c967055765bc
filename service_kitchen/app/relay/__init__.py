"""
Status relay package for the Kitchen Display Service.
"""

from .status_relay import StatusRelay

__all__ = ["StatusRelay"]
