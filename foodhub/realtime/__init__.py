"""Realtime comment channel: broadcast registry + WebSocket endpoint.

Events flow one way per call:
1. A client frame arrives on the WebSocket and is dispatched to the comment service.
2. The service either answers the sender or publishes to every subscriber of the namespace.
"""

from .channel import ChannelRegistry, Subscriber

__all__ = ["ChannelRegistry", "Subscriber"]
