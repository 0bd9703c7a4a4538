"""
WebRTC Disconnect Handler

Handles session teardown requests from the browser.
Closes the peer connection and removes the session from the registry.
"""

from quart import jsonify
from tools.logger import log_info


def init(app, session_manager):
    """
    Initialize the WebRTC disconnect handler.

    Args:
        app: Quart application
        session_manager: WebRTCSessionManager instance
    """
    endpoint = f"{session_manager.config.endpoint}/<session_id>"
    log_info(f"Registering route: DELETE {endpoint}")

    @app.route(endpoint, methods=["DELETE"])
    async def teardown_rtc(session_id):
        log_info(f"WebRTC disconnect request for session {session_id}")

        closed = await session_manager.close_session(session_id, reason="client requested")

        if closed:
            return jsonify({
                "status": "success",
                "session_id": session_id,
                "message": "Session closed",
            })
        return jsonify({
            "status": "warning",
            "session_id": session_id,
            "message": "Session not found (may already be closed)",
        }), 404

    @app.route("/sessions", methods=["GET"])
    async def list_sessions():
        return jsonify(session_manager.list_sessions())
