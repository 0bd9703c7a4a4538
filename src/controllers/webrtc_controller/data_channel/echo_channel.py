"""
Echo Data Channel

Relays every message received on a Responder-side data channel straight back
to the browser. aiortc callbacks only enqueue events; a single worker task per
peer connection consumes them in arrival order.
"""

from tools.logger import log_info, log_debug, log_error, log_warning
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
import asyncio


class RelayState(Enum):
    """Echo relay states."""
    IDLE = "idle"          # No channel yet, or channel arrived without traffic
    ACTIVE = "active"      # At least one message echoed
    DETACHED = "detached"  # Displaced by a newer session, messages are dropped
    CLOSED = "closed"      # Session torn down


@dataclass(frozen=True)
class ChannelArrived:
    channel: object


@dataclass(frozen=True)
class MessageReceived:
    channel: object
    payload: Union[str, bytes]


# Queue sentinel stopping the worker
_CLOSE = object()


class EchoRelay:
    """
    Echo relay bound to one peer connection.

    Message Protocol:
        Any str or bytes payload is sent back unchanged on the channel it
        arrived on, exactly once, in arrival order.
    """

    def __init__(self, session_id: str, session_manager=None):
        """
        Initialize echo relay.

        Args:
            session_id: Associated WebRTC session ID
            session_manager: WebRTCSessionManager instance (optional)
        """
        self.session_id = session_id
        self.session_manager = session_manager
        self.channel = None
        self.state = RelayState.IDLE
        self.echoed = 0
        self._events: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None

    def bind(self, pc):
        """Subscribe to channel arrivals on a peer connection and start the worker."""

        @pc.on("datachannel")
        def on_datachannel(channel):
            self.on_arrive(channel)

        self.start()

    def start(self):
        if self._worker is None:
            self._worker = asyncio.create_task(self._run())

    def on_arrive(self, channel):
        """Queue a channel arrival and start listening for its messages."""
        if self.is_closed:
            log_warning(f"Channel '{channel.label}' arrived after relay {self.session_id} stopped")
            return

        log_info(f"Data channel '{channel.label}' received for session {self.session_id}")
        self._events.put_nowait(ChannelArrived(channel))

        @channel.on("message")
        def on_message(message):
            self._enqueue(MessageReceived(channel, message))

        @channel.on("close")
        def on_close():
            log_info(f"Data channel '{channel.label}' closed for session {self.session_id}")

    def _enqueue(self, event):
        if self.is_closed:
            log_debug(f"Relay {self.session_id} is {self.state.value}, dropping event")
            return
        self._events.put_nowait(event)

    async def _run(self):
        while True:
            event = await self._events.get()
            if event is _CLOSE:
                break
            try:
                self._handle_event(event)
            except Exception as e:
                log_error(f"Error handling event in session {self.session_id}: {e}")
        log_debug(f"Relay worker for session {self.session_id} stopped")

    def _handle_event(self, event):
        if isinstance(event, ChannelArrived):
            self.channel = event.channel
            if self.session_manager:
                self.session_manager.set_data_channel(self.session_id, event.channel)
        elif isinstance(event, MessageReceived):
            if event.channel is not self.channel:
                log_debug(f"Ignoring message from stale channel in session {self.session_id}")
                return
            self.on_message(event.payload)

    def on_message(self, payload):
        """
        Echo one inbound payload.

        Args:
            payload: Raw message (string or bytes)
        """
        if self.is_closed:
            return

        log_info(f"Session {self.session_id} received: {payload!r}")

        if self.state is RelayState.IDLE:
            self.state = RelayState.ACTIVE

        if self.session_manager:
            self.session_manager.touch_session(self.session_id)

        if self._send(payload):
            self.echoed += 1

    def _send(self, payload) -> bool:
        """
        Send payload back to the browser via the data channel.

        Returns:
            True if the payload was handed to the channel
        """
        if not self.channel:
            return False

        try:
            if self.channel.readyState == "open":
                self.channel.send(payload)
                return True
            log_warning(f"Cannot echo, channel state: {self.channel.readyState}")
        except Exception as e:
            log_error(f"Error sending message in session {self.session_id}: {e}")
        return False

    def detach(self):
        """Stop echoing without closing the channel."""
        if self.is_closed:
            return
        self.state = RelayState.DETACHED
        self._events.put_nowait(_CLOSE)
        log_info(f"Relay for session {self.session_id} detached")

    def close(self):
        """Stop the worker and close the channel."""
        if self.state is RelayState.CLOSED:
            return
        if self.state is not RelayState.DETACHED:
            self._events.put_nowait(_CLOSE)
        self.state = RelayState.CLOSED

        if self.channel:
            try:
                self.channel.close()
            except Exception as e:
                log_debug(f"Error closing data channel: {e}")

        log_info(f"Echo relay closed for session {self.session_id}")

    async def wait_closed(self):
        """Wait for the worker task to drain and exit."""
        if self._worker:
            await self._worker

    @property
    def is_closed(self) -> bool:
        """Check if the relay stopped echoing."""
        return self.state in (RelayState.DETACHED, RelayState.CLOSED)
