"""
Initiator Use Case

Browser-role peer: negotiates with the Responder over HTTP and exchanges
messages over the resulting data channel.
"""

from use_cases.initiator.begin_handshake import Initiator, run_echo_session
from use_cases.initiator.signaling_client import HttpSignalingClient

__all__ = ["Initiator", "HttpSignalingClient", "run_echo_session"]
