"""
HTTP Signaling Client

Posts the Initiator's offer to the Responder's signaling endpoint and
releases the session when the Initiator is done.
"""

from aiohttp import ClientError, ClientSession, ClientTimeout
from tools.errors import HandshakeTimeout, SignalingError
from tools.logger import log_debug, log_warning
from typing import Optional, Tuple
import asyncio


SESSION_HEADER = "X-Session-Id"


class HttpSignalingClient:
    """One-shot offer/answer exchange over HTTP."""

    def __init__(self, url: str, timeout: float = 10.0):
        """
        Args:
            url: Full URL of the signaling endpoint, e.g. http://host:8080/setupRTC
            timeout: Bound on each HTTP round trip in seconds
        """
        self.url = url.rstrip("/")
        self.timeout = timeout

    async def post_offer(self, description: dict) -> Tuple[dict, Optional[str]]:
        """
        Send an offer and return the decoded answer body and the session id.

        Raises:
            HandshakeTimeout: the round trip exceeded the timeout
            SignalingError: connection failure or non-200 response
        """
        try:
            async with ClientSession(timeout=ClientTimeout(total=self.timeout)) as session:
                async with session.post(self.url, json=description) as response:
                    if response.status != 200:
                        text = await response.text()
                        raise SignalingError(
                            f"Signaling endpoint answered {response.status}: {text}",
                            status=response.status,
                        )
                    body = await response.json(content_type=None)
                    session_id = response.headers.get(SESSION_HEADER)
        except asyncio.TimeoutError as e:
            raise HandshakeTimeout(
                f"No answer from {self.url} within {self.timeout}s"
            ) from e
        except ClientError as e:
            raise SignalingError(f"Cannot reach {self.url}: {e}") from e
        except ValueError as e:
            raise SignalingError(f"Answer from {self.url} is not JSON: {e}", status=200) from e

        log_debug(f"Received answer for session {session_id}")
        return body, session_id

    async def release(self, session_id: str) -> bool:
        """Ask the Responder to tear down a session. Failures are only logged."""
        try:
            async with ClientSession(timeout=ClientTimeout(total=self.timeout)) as session:
                async with session.delete(f"{self.url}/{session_id}") as response:
                    return response.status == 200
        except (asyncio.TimeoutError, ClientError) as e:
            log_warning(f"Could not release session {session_id}: {e}")
            return False
