"""
WebRTC Signaling Module

Handles WebRTC signaling (offer/answer exchange and teardown) over HTTP.
"""

from .offer_handler import init as init_offer_handler
from .disconnect_handler import init as init_disconnect_handler


def initialize_signaling(app, session_manager):
    """
    Initialize all signaling handlers.

    Args:
        app: Quart application
        session_manager: WebRTCSessionManager instance
    """
    init_offer_handler(app, session_manager)
    init_disconnect_handler(app, session_manager)
