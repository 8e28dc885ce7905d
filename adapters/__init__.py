"""
Adapters package - External service connections.
SMS gateway, WebSocket fan-out and the job scheduler.
"""

from adapters import sms_adapter, socket_hub

__all__ = [
    "sms_adapter",
    "socket_hub",
]
