"""
HTTP Controller

Builds the Quart application that exposes the signaling endpoint.
"""

from quart import Quart
from tools.config import SignalingConfig
from tools.logger import log_info
from typing import Optional
from .. import webrtc_controller
from ..webrtc_controller import WebRTCSessionManager


def create_app(
    config: Optional[SignalingConfig] = None,
    session_manager: Optional[WebRTCSessionManager] = None,
) -> Quart:
    """
    Create the signaling application.

    Args:
        config: Signaling configuration, ignored when a session_manager is given
        session_manager: Session registry, a new one is created when omitted

    Returns:
        Quart app with the signaling routes registered
    """
    manager = session_manager or WebRTCSessionManager(config)

    app = Quart(__name__)
    app.extensions["session_manager"] = manager

    log_info("Initializing HTTP Controller...")
    webrtc_controller.init(app, manager)

    @app.before_serving
    async def startup():
        await webrtc_controller.start(manager)

    @app.after_serving
    async def shutdown():
        await webrtc_controller.stop(manager)

    log_info("HTTP Controller initialized successfully.")
    return app
