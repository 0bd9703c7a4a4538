"""
WebRTC Controller

Manages the Responder's peer connection sessions.
Signaling is a single HTTP request/response; afterwards every session talks
to its browser directly over a data channel that echoes what it receives.
"""

from aiortc import RTCPeerConnection
from tools.config import SignalingConfig
from tools.peer_transport import create_peer_connection
from tools.logger import log_info, log_debug, log_error, log_warning
from typing import Dict, Optional, Callable
from enum import Enum
from datetime import datetime, timedelta
import asyncio


class SessionState(Enum):
    """WebRTC session states."""
    CREATED = "created"           # Session created, offer being processed
    CONNECTING = "connecting"     # Answer sent, establishing connection
    CONNECTED = "connected"       # Transport connected, channel usable
    DISCONNECTED = "disconnected" # Connection lost
    CLOSED = "closed"             # Session closed


class WebRTCSessionManager:
    """
    Registry of WebRTC peer connection sessions.

    Each session is keyed by the session_id handed back to the Initiator in
    the signaling response. The manager also keeps a "mailbox": the session
    whose data channel arrived most recently. What happens to the previous
    mailbox holder depends on ``config.mailbox_policy``:

        registry: nothing, sessions are independent
        replace:  the previous session's relay is detached (single active peer)
        reject:   new offers are refused while another channel is open
    """

    def __init__(self, config: Optional[SignalingConfig] = None):
        self.config = config or SignalingConfig()
        self._sessions: Dict[str, dict] = {}
        self._mailbox: Optional[str] = None
        self._lock = asyncio.Lock()
        self._cleanup_task: Optional[asyncio.Task] = None
        self._on_session_closed: Optional[Callable] = None

    async def start(self):
        """Start the session manager background tasks."""
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            log_info("WebRTC session cleanup task started")

    async def stop(self):
        """Stop the session manager and close all sessions."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
        await self.close_all_sessions()
        log_info("WebRTC session manager stopped")

    async def _cleanup_loop(self):
        """Background task to clean up stale sessions."""
        while True:
            try:
                await asyncio.sleep(self.config.cleanup_interval)
                await self._cleanup_stale_sessions()
            except asyncio.CancelledError:
                break
            except Exception as e:
                log_error(f"Error in session cleanup loop: {e}")

    async def _cleanup_stale_sessions(self):
        """Close sessions that have been inactive for too long."""
        now = datetime.now()
        timeout = timedelta(seconds=self.config.session_timeout)
        stale_sessions = [
            session_id
            for session_id, session in self._sessions.items()
            if now - session["last_activity"] > timeout
        ]

        for session_id in stale_sessions:
            log_warning(
                f"Closing stale WebRTC session {session_id} "
                f"(inactive > {self.config.session_timeout}s)"
            )
            await self.close_session(session_id, reason="timeout")

    async def create_session(self, session_id: str) -> RTCPeerConnection:
        """
        Create a new WebRTC session.

        Args:
            session_id: Unique identifier for this session

        Returns:
            RTCPeerConnection instance for this session
        """
        async with self._lock:
            if session_id in self._sessions:
                log_warning(f"Session {session_id} already exists, closing existing")
                await self._close_session_unlocked(session_id, reason="replaced")

            pc = create_peer_connection(self.config)
            now = datetime.now()

            self._sessions[session_id] = {
                "pc": pc,
                "data_channel": None,
                "relay": None,
                "state": SessionState.CREATED,
                "created_at": now,
                "last_activity": now,
                "ice_connection_state": "new",
                "connection_state": "new",
            }

            log_info(f"Created WebRTC session {session_id}")
            return pc

    def get_session(self, session_id: str) -> Optional[dict]:
        """Get session by ID."""
        return self._sessions.get(session_id)

    def get_peer_connection(self, session_id: str) -> Optional[RTCPeerConnection]:
        """Get peer connection for a session."""
        session = self._sessions.get(session_id)
        return session["pc"] if session else None

    def update_session_state(self, session_id: str, state: SessionState) -> bool:
        """Update the state of a session."""
        session = self._sessions.get(session_id)
        if session:
            old_state = session["state"]
            session["state"] = state
            session["last_activity"] = datetime.now()
            log_debug(f"Session {session_id} state: {old_state.value} -> {state.value}")
            return True
        return False

    def update_connection_state(self, session_id: str, connection_state: str, ice_state: str = None) -> bool:
        """Update the connection states of a session."""
        session = self._sessions.get(session_id)
        if session:
            session["connection_state"] = connection_state
            if ice_state:
                session["ice_connection_state"] = ice_state
            session["last_activity"] = datetime.now()

            if connection_state == "connected":
                session["state"] = SessionState.CONNECTED
            elif connection_state in ("failed", "disconnected"):
                session["state"] = SessionState.DISCONNECTED
            elif connection_state == "connecting":
                session["state"] = SessionState.CONNECTING
            return True
        return False

    def touch_session(self, session_id: str) -> bool:
        """Update last activity timestamp for a session."""
        session = self._sessions.get(session_id)
        if session:
            session["last_activity"] = datetime.now()
            return True
        return False

    async def _close_session_unlocked(self, session_id: str, reason: str = "requested") -> bool:
        """Close a session without acquiring lock (internal use)."""
        session = self._sessions.pop(session_id, None)
        if not session:
            return False

        session["state"] = SessionState.CLOSED
        if self._mailbox == session_id:
            self._mailbox = None

        relay = session.get("relay")
        if relay:
            try:
                relay.close()
            except Exception as e:
                log_debug(f"Error closing relay: {e}")

        try:
            await session["pc"].close()
            log_info(f"Closed WebRTC session {session_id} (reason: {reason})")
        except Exception as e:
            log_error(f"Error closing peer connection for session {session_id}: {e}")

        if self._on_session_closed:
            try:
                self._on_session_closed(session_id, reason)
            except Exception as e:
                log_error(f"Error in session closed callback: {e}")

        return True

    async def close_session(self, session_id: str, reason: str = "requested") -> bool:
        """
        Close and cleanup a WebRTC session.

        Args:
            session_id: Session to close
            reason: Reason for closing (for logging)

        Returns:
            True if session was closed, False if not found
        """
        async with self._lock:
            result = await self._close_session_unlocked(session_id, reason)
            if not result:
                log_warning(f"Session {session_id} not found for closing")
            return result

    async def close_all_sessions(self):
        """Close all active sessions."""
        async with self._lock:
            for session_id in list(self._sessions.keys()):
                await self._close_session_unlocked(session_id, reason="shutdown")
        log_info("All WebRTC sessions closed")

    def list_sessions(self) -> Dict[str, dict]:
        """List all active sessions with their info."""
        return {
            sid: {
                "state": session["state"].value,
                "connection_state": session["connection_state"],
                "ice_connection_state": session["ice_connection_state"],
                "relay_state": session["relay"].state.value if session["relay"] else None,
                "channel": session["data_channel"].label if session["data_channel"] else None,
                "created_at": session["created_at"].isoformat(),
                "mailbox": sid == self._mailbox,
            }
            for sid, session in self._sessions.items()
        }

    def get_session_count(self) -> int:
        """Get the number of active sessions."""
        return len(self._sessions)

    def set_relay(self, session_id: str, relay) -> bool:
        """Associate a channel relay with a session."""
        session = self._sessions.get(session_id)
        if session:
            session["relay"] = relay
            return True
        return False

    def get_relay(self, session_id: str):
        """Get the channel relay for a session."""
        session = self._sessions.get(session_id)
        return session.get("relay") if session else None

    def set_data_channel(self, session_id: str, channel) -> bool:
        """
        Associate an arrived data channel with a session and make it the mailbox.

        Under the "replace" policy the previous mailbox holder's relay is
        detached, so its channel stays open but nothing answers it anymore.
        """
        session = self._sessions.get(session_id)
        if not session:
            return False

        session["data_channel"] = channel
        session["last_activity"] = datetime.now()

        previous = self._mailbox
        if previous and previous != session_id and previous in self._sessions:
            if self.config.mailbox_policy == "replace":
                log_warning(
                    f"Channel of session {previous} overwritten by session {session_id}, "
                    f"its messages will no longer be echoed"
                )
                previous_relay = self._sessions[previous].get("relay")
                if previous_relay:
                    previous_relay.detach()
            else:
                log_debug(f"Mailbox moves from session {previous} to {session_id}")

        self._mailbox = session_id
        return True

    def get_data_channel(self, session_id: str):
        """Get the data channel for a session."""
        session = self._sessions.get(session_id)
        return session.get("data_channel") if session else None

    @property
    def mailbox_session_id(self) -> Optional[str]:
        """Session whose channel arrived most recently."""
        return self._mailbox

    @property
    def mailbox(self):
        """Channel that arrived most recently, if its session is still registered."""
        return self.get_data_channel(self._mailbox) if self._mailbox else None

    def has_open_channel(self) -> bool:
        """Check whether any registered session holds an open data channel."""
        return any(
            session["data_channel"] is not None
            and session["data_channel"].readyState == "open"
            for session in self._sessions.values()
        )

    def on_session_closed(self, callback: Callable):
        """Register a callback for when sessions are closed."""
        self._on_session_closed = callback


# Global session manager instance
session_manager = WebRTCSessionManager()


def init(app, manager: Optional[WebRTCSessionManager] = None):
    """
    Initialize the WebRTC controller by registering signaling routes.

    Args:
        app: Quart application serving the signaling endpoint
        manager: Session registry to use, defaults to the global one
    """
    from .signaling import initialize_signaling

    log_info("Initializing WebRTC Controller...")
    initialize_signaling(app, manager or session_manager)
    log_info("WebRTC Controller initialized successfully.")


async def start(manager: Optional[WebRTCSessionManager] = None):
    """Start the WebRTC controller background tasks."""
    await (manager or session_manager).start()


async def stop(manager: Optional[WebRTCSessionManager] = None):
    """Stop the WebRTC controller."""
    await (manager or session_manager).stop()
