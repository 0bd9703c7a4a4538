"""
Handshake error taxonomy.

Every error raised while setting up a peer connection derives from
HandshakeError so HTTP handlers and the CLI can catch the whole family at once.
"""


class HandshakeError(Exception):
    """Base class for failures that abort a handshake attempt."""


class MalformedDescription(HandshakeError):
    """A signaling payload could not be parsed into a session description."""


class MalformedOffer(MalformedDescription):
    """The offer posted by the Initiator is not a valid session description."""


class MalformedAnswer(MalformedDescription):
    """The answer returned by the Responder is not a valid session description."""


class InvalidState(HandshakeError):
    """A description was generated or applied in the wrong signaling state."""


class HandshakeTimeout(HandshakeError):
    """ICE gathering, channel opening or the signaling round trip took too long."""


class ChannelOverwritten(HandshakeError):
    """A new session would displace the channel of an active one."""


class SignalingError(HandshakeError):
    """The signaling endpoint could not be reached or answered with an error."""

    def __init__(self, message: str, status: int = None):
        self.status = status
        super().__init__(message)
