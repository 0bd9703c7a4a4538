"""
Begin Handshake

Initiator side of the signaling exchange: offer, wait for ICE gathering,
single HTTP round trip, apply answer, then talk over the data channel.
"""

from aiortc import RTCSessionDescription
from tools.config import SignalingConfig
from tools.contract_validation import description_to_dict, parse_session_description
from tools.errors import HandshakeTimeout, InvalidState
from tools.logger import log_info, log_debug, log_error
from tools.peer_transport import (
    apply_local_description,
    apply_remote_description,
    create_local_description,
    create_peer_connection,
    wait_for_ice_gathering_complete,
)
from .signaling_client import HttpSignalingClient
from typing import List, Optional, Union
import asyncio


class Initiator:
    """
    Browser-role peer.

    Owns one peer connection and one data channel. Echoed messages are
    appended to ``received`` in arrival order and can be awaited with
    ``next_message``.
    """

    def __init__(self, signaling, config: Optional[SignalingConfig] = None):
        """
        Args:
            signaling: Object with ``post_offer(description)`` returning
                (answer_body, session_id) and ``release(session_id)``
            config: Channel label and timeouts
        """
        self.signaling = signaling
        self.config = config or SignalingConfig()
        self.pc = None
        self.channel = None
        self.session_id: Optional[str] = None
        self.received: List[Union[str, bytes]] = []
        self._messages: asyncio.Queue = asyncio.Queue()
        self._opened = asyncio.Event()

    async def begin_handshake(self) -> RTCSessionDescription:
        """
        Run the whole offer/answer exchange.

        Returns:
            The remote answer applied to the connection

        Raises:
            HandshakeTimeout: ICE gathering or the HTTP round trip took too long
            SignalingError: the signaling endpoint failed
            MalformedAnswer: the response is not a valid answer
            InvalidState: descriptions were applied out of order
        """
        self.pc = create_peer_connection(self.config)

        try:
            self.channel = self.pc.createDataChannel(self.config.channel_label, ordered=True)

            @self.channel.on("open")
            def on_open():
                log_info(f"Data channel '{self.channel.label}' open")
                self._opened.set()

            @self.channel.on("message")
            def on_message(message):
                log_info(f"Received echo: {message!r}")
                self.received.append(message)
                self._messages.put_nowait(message)

            offer = await create_local_description(self.pc, "offer")
            await apply_local_description(self.pc, offer)

            # The offer is sent exactly once, so it must carry every candidate
            await wait_for_ice_gathering_complete(self.pc, self.config.gathering_timeout)
            log_debug("ICE gathering complete, posting offer")

            body, self.session_id = await self.signaling.post_offer(
                description_to_dict(self.pc.localDescription)
            )
            answer = parse_session_description(body, expected_type="answer")
            await apply_remote_description(self.pc, answer)

        except BaseException:
            # Also releases the Responder's session if it already answered
            await self.close()
            raise

        log_info(f"Handshake complete for session {self.session_id}")
        return answer

    async def wait_open(self, timeout: Optional[float] = None):
        """Wait until the data channel can carry messages."""
        timeout = self.config.open_timeout if timeout is None else timeout
        try:
            await asyncio.wait_for(self._opened.wait(), timeout)
        except asyncio.TimeoutError as e:
            raise HandshakeTimeout(f"Data channel did not open within {timeout}s") from e

    def send(self, message: Union[str, bytes]):
        """
        Send a message on the data channel.

        Raises:
            InvalidState: no handshake yet, or the channel is not open
        """
        if self.channel is None or self.channel.readyState != "open":
            state = self.channel.readyState if self.channel else "missing"
            raise InvalidState(f"Cannot send, data channel is {state}")
        self.channel.send(message)

    async def next_message(self, timeout: float = 5.0) -> Union[str, bytes]:
        """Wait for the next echoed message."""
        try:
            return await asyncio.wait_for(self._messages.get(), timeout)
        except asyncio.TimeoutError as e:
            raise HandshakeTimeout(f"No message received within {timeout}s") from e

    async def _release_peer_connection(self):
        if self.pc is None:
            return
        try:
            await self.pc.close()
        except Exception as e:
            log_error(f"Error closing peer connection: {e}")
        self.pc = None

    async def close(self):
        """Close the peer connection and release the session on the Responder."""
        await self._release_peer_connection()
        if self.session_id:
            await self.signaling.release(self.session_id)
            log_debug(f"Released session {self.session_id}")
            self.session_id = None


async def run_echo_session(
    url: str,
    messages: List[str],
    config: Optional[SignalingConfig] = None,
    timeout: float = 5.0,
) -> List[Union[str, bytes]]:
    """
    Handshake with a Responder, send each message and collect the echoes.

    Args:
        url: Signaling endpoint URL
        messages: Messages to send, one at a time
        config: Signaling configuration
        timeout: Seconds to wait for each echo

    Returns:
        The echoed messages in the order they came back
    """
    config = config or SignalingConfig()
    initiator = Initiator(HttpSignalingClient(url, timeout=config.http_timeout), config)

    try:
        await initiator.begin_handshake()
        await initiator.wait_open()

        echoes = []
        for message in messages:
            log_info(f"Sending {message!r}")
            initiator.send(message)
            echoes.append(await initiator.next_message(timeout))
        return echoes
    finally:
        await initiator.close()
