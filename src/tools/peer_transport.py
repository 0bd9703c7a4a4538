"""
Thin helpers around aiortc peer connections.

These wrap the handful of aiortc calls whose failure modes matter for the
handshake: description ordering errors are turned into InvalidState, and the
ICE gathering wait is bounded so it can never hang.
"""

import asyncio
from aiortc import (
    RTCConfiguration,
    RTCIceServer,
    RTCPeerConnection,
    RTCSessionDescription,
)
from aiortc.exceptions import InvalidStateError
from .config import SignalingConfig
from .errors import HandshakeTimeout, InvalidState, MalformedAnswer, MalformedOffer
from .logger import log_debug


def create_peer_connection(config: SignalingConfig) -> RTCPeerConnection:
    """Build a peer connection using the configured ICE servers."""
    ice_servers = [RTCIceServer(urls=url) for url in config.ice_servers]
    return RTCPeerConnection(configuration=RTCConfiguration(iceServers=ice_servers))


async def create_local_description(pc: RTCPeerConnection, kind: str) -> RTCSessionDescription:
    """
    Generate an offer or an answer.

    Raises:
        InvalidState: the connection is not in a state that allows it
    """
    try:
        if kind == "offer":
            return await pc.createOffer()
        return await pc.createAnswer()
    except InvalidStateError as e:
        raise InvalidState(f"Cannot create {kind}: {e}") from e


async def apply_local_description(pc: RTCPeerConnection, description: RTCSessionDescription):
    try:
        await pc.setLocalDescription(description)
    except InvalidStateError as e:
        raise InvalidState(f"Cannot apply local {description.type}: {e}") from e
    log_debug(f"Applied local {description.type}, signaling state: {pc.signalingState}")


async def apply_remote_description(pc: RTCPeerConnection, description: RTCSessionDescription):
    try:
        await pc.setRemoteDescription(description)
    except InvalidStateError as e:
        raise InvalidState(f"Cannot apply remote {description.type}: {e}") from e
    except (ValueError, AssertionError) as e:
        # aiortc's SDP parser asserts on malformed media lines
        error_class = MalformedOffer if description.type == "offer" else MalformedAnswer
        raise error_class(f"Remote {description.type} rejected: {e}") from e
    log_debug(f"Applied remote {description.type}, signaling state: {pc.signalingState}")


async def wait_for_ice_gathering_complete(pc, timeout: float) -> None:
    """
    Wait until the connection's ICE gathering state is "complete".

    Returns immediately when gathering has already completed, so repeated calls
    are harmless.

    Raises:
        HandshakeTimeout: gathering did not complete within ``timeout`` seconds
    """
    if pc.iceGatheringState == "complete":
        return

    done = asyncio.get_running_loop().create_future()

    def on_gathering_state_change():
        if pc.iceGatheringState == "complete" and not done.done():
            done.set_result(None)

    pc.on("icegatheringstatechange", on_gathering_state_change)
    try:
        # The state may have flipped between the first check and subscribing
        on_gathering_state_change()
        await asyncio.wait_for(done, timeout)
    except asyncio.TimeoutError as e:
        raise HandshakeTimeout(
            f"ICE gathering did not complete within {timeout}s "
            f"(state: {pc.iceGatheringState})"
        ) from e
    finally:
        pc.remove_listener("icegatheringstatechange", on_gathering_state_change)
