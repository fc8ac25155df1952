"""
Transport implementations.
"""

from .websocket import WebSocketSession, WebSocketTransport, decode_frame, encode_frame

__all__ = [
    "WebSocketSession",
    "WebSocketTransport",
    "decode_frame",
    "encode_frame",
]
