"""WebSocket transport with notification support"""

from .client import WebSocketTransport, normalize_ws_url

__all__ = ["WebSocketTransport", "normalize_ws_url"]
