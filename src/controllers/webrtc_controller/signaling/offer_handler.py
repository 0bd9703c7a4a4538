"""
WebRTC Offer Handler

Handles SDP offers POSTed by the browser to the signaling endpoint.
Creates peer connections and generates SDP answers.
"""

from quart import jsonify, request
from tools.logger import log_info, log_debug, log_error, log_warning
from tools.contract_validation import description_to_dict, parse_session_description
from tools.errors import (
    ChannelOverwritten,
    HandshakeError,
    HandshakeTimeout,
    InvalidState,
    MalformedDescription,
)
from tools.peer_transport import (
    apply_local_description,
    apply_remote_description,
    create_local_description,
    wait_for_ice_gathering_complete,
)
from ..data_channel import EchoRelay
from .. import SessionState
from typing import Tuple
import uuid


SESSION_HEADER = "X-Session-Id"


def error_status(error: HandshakeError) -> int:
    """Map a handshake error to the HTTP status returned to the browser."""
    if isinstance(error, MalformedDescription):
        return 400
    if isinstance(error, (InvalidState, ChannelOverwritten)):
        return 409
    if isinstance(error, HandshakeTimeout):
        return 504
    return 500


async def handle_offer(raw_offer, session_manager) -> Tuple[str, dict]:
    """
    Answer a browser offer.

    Flow:
    1. Validate the payload (no peer connection is created if it is malformed)
    2. Create a new RTCPeerConnection registered under a fresh session id
    3. Attach the echo relay to channel arrivals
    4. Set remote description (offer)
    5. Create and set local description (answer)
    6. Return the answer

    Args:
        raw_offer: Request body, raw bytes, JSON text or decoded dict
        session_manager: WebRTCSessionManager instance

    Returns:
        (session_id, {"sdp": ..., "type": "answer"})

    Raises:
        MalformedOffer: payload is not a valid offer
        ChannelOverwritten: "reject" policy and another session has an open channel
        InvalidState, HandshakeTimeout: negotiation failed, the session is discarded
    """
    config = session_manager.config
    offer = parse_session_description(raw_offer, expected_type="offer")

    if config.mailbox_policy == "reject" and session_manager.has_open_channel():
        raise ChannelOverwritten("Another session holds an open channel")

    session_id = uuid.uuid4().hex
    log_info(f"Received WebRTC offer for session {session_id}")

    pc = await session_manager.create_session(session_id)

    try:
        relay = EchoRelay(session_id, session_manager)
        session_manager.set_relay(session_id, relay)
        relay.bind(pc)

        @pc.on("connectionstatechange")
        async def on_connection_state_change():
            state = pc.connectionState
            log_info(f"Session {session_id} connection state: {state}")
            session_manager.update_connection_state(session_id, state)

            if session_manager.get_session(session_id) is None:
                return
            if state == "failed":
                log_warning(f"Session {session_id} connection failed")
                await session_manager.close_session(session_id, reason="connection_failed")
            elif state == "closed":
                await session_manager.close_session(session_id, reason="connection_closed")

        @pc.on("iceconnectionstatechange")
        async def on_ice_connection_state_change():
            ice_state = pc.iceConnectionState
            log_debug(f"Session {session_id} ICE state: {ice_state}")
            session_manager.update_connection_state(
                session_id,
                pc.connectionState,
                ice_state
            )

        await apply_remote_description(pc, offer)
        log_debug(f"Set remote description for session {session_id}")

        answer = await create_local_description(pc, "answer")
        await apply_local_description(pc, answer)

        if config.responder_wait_for_gathering:
            await wait_for_ice_gathering_complete(pc, config.gathering_timeout)
        log_debug(f"Created answer for session {session_id}")

    except BaseException:
        # Also covers cancellation: never keep a half-negotiated connection
        await session_manager.close_session(session_id, reason="error")
        raise

    session_manager.update_session_state(session_id, SessionState.CONNECTING)
    log_info(f"WebRTC session {session_id} negotiated, sending answer")

    return session_id, description_to_dict(pc.localDescription)


def init(app, session_manager):
    """
    Initialize the WebRTC offer handler.

    Args:
        app: Quart application
        session_manager: WebRTCSessionManager instance
    """
    endpoint = session_manager.config.endpoint
    log_info(f"Registering route: POST {endpoint}")

    @app.route(endpoint, methods=["POST"])
    async def setup_rtc():
        # Raw bytes: decoding is part of payload validation
        raw_offer = await request.get_data()

        try:
            session_id, answer = await handle_offer(raw_offer, session_manager)
        except HandshakeError as e:
            status = error_status(e)
            if status >= 500:
                log_error(f"Error handling WebRTC offer: {e}")
            else:
                log_warning(f"Rejected WebRTC offer: {e}")
            return jsonify({"status": "error", "error": str(e)}), status

        return jsonify(answer), 200, {SESSION_HEADER: session_id}
