"""
Polling package for the Kitchen Display Service.
"""

from .poll_loop import OrderPollLoop

__all__ = ["OrderPollLoop"]
