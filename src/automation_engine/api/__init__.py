"""
HTTP and WebSocket transport for the automation engine.
"""

from .routes import router, set_dependencies
from .websocket import websocket_endpoint, send_execution_update

__all__ = ["router", "set_dependencies", "websocket_endpoint", "send_execution_update"]
