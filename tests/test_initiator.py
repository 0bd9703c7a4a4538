import pytest

from tools.config import SignalingConfig
from tools.errors import InvalidState, MalformedAnswer, SignalingError
from use_cases.initiator import Initiator


class StubSignaling:
    def __init__(self, body=None, error=None):
        self.body = body
        self.error = error
        self.offers = []
        self.released = []

    async def post_offer(self, description):
        self.offers.append(description)
        if self.error:
            raise self.error
        return self.body, "stub-session"

    async def release(self, session_id):
        self.released.append(session_id)
        return True


async def test_offer_is_posted_only_after_gathering_completes():
    signaling = StubSignaling(error=SignalingError("down", status=503))
    initiator = Initiator(signaling, SignalingConfig(gathering_timeout=5.0))

    with pytest.raises(SignalingError):
        await initiator.begin_handshake()

    offer = signaling.offers[0]
    assert offer["type"] == "offer"
    assert "m=application" in offer["sdp"]
    assert initiator.pc is None


async def test_malformed_answer_releases_connection():
    signaling = StubSignaling(body={"sdp": "garbage", "type": "answer"})
    initiator = Initiator(signaling)

    with pytest.raises(MalformedAnswer):
        await initiator.begin_handshake()

    assert initiator.pc is None
    assert signaling.released == ["stub-session"]
    assert initiator.session_id is None


async def test_send_before_handshake_is_invalid_state():
    initiator = Initiator(StubSignaling())

    with pytest.raises(InvalidState):
        initiator.send("Button Clicked!")


async def test_close_releases_session():
    signaling = StubSignaling()
    initiator = Initiator(signaling)
    initiator.session_id = "abc"

    await initiator.close()

    assert signaling.released == ["abc"]
    assert initiator.session_id is None
