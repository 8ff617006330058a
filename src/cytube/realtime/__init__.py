"""
CyTube Realtime Module

Socket.IO session handling, channel handshake and bounded broadcast requests.
"""

from .connection import CytubeConnection, connect
from .handshake import ChannelHandshake
from .requests import await_event, with_callback
from .transport import Session, SocketIOSession

__all__ = [
    # Connection
    "CytubeConnection",
    "connect",
    # Handshake
    "ChannelHandshake",
    # Requests
    "await_event",
    "with_callback",
    # Transport
    "Session",
    "SocketIOSession",
]
