"""
WebRTC Data Channel Module

Handles Responder-side data channels that echo browser messages.
"""

from .echo_channel import EchoRelay, RelayState

__all__ = ["EchoRelay", "RelayState"]
