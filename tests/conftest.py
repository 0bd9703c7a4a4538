import asyncio

import pytest
from pyee import EventEmitter

from controllers.http_controller import create_app
from controllers.webrtc_controller import WebRTCSessionManager
from tools.config import SignalingConfig
from tools.errors import SignalingError


class FakeChannel(EventEmitter):
    """Data channel stand-in recording what gets sent."""

    def __init__(self, label="mychannel", ready_state="open"):
        super().__init__()
        self.label = label
        self.readyState = ready_state
        self.sent = []
        self.closed = False
        self.fail_send = False

    def send(self, data):
        if self.fail_send:
            raise ConnectionError("transport gone")
        self.sent.append(data)

    def close(self):
        self.closed = True
        self.readyState = "closed"


class FakePeerConnection(EventEmitter):
    def __init__(self, ice_gathering_state="new"):
        super().__init__()
        self.iceGatheringState = ice_gathering_state

    def set_gathering_state(self, state):
        self.iceGatheringState = state
        self.emit("icegatheringstatechange")


class QuartSignaling:
    """Signaling transport that talks to the Quart app in-process."""

    def __init__(self, app, endpoint="/setupRTC"):
        self.client = app.test_client()
        self.endpoint = endpoint
        self.released = []

    async def post_offer(self, description):
        response = await self.client.post(self.endpoint, json=description)
        body = await response.get_json()
        if response.status_code != 200:
            raise SignalingError(f"status {response.status_code}: {body}", status=response.status_code)
        return body, response.headers.get("X-Session-Id")

    async def release(self, session_id):
        response = await self.client.delete(f"{self.endpoint}/{session_id}")
        self.released.append(session_id)
        return response.status_code == 200


async def wait_until(predicate, timeout=5.0, interval=0.01):
    """Poll ``predicate`` until it is truthy or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail(f"Condition not met within {timeout}s")
        await asyncio.sleep(interval)


@pytest.fixture
def config():
    return SignalingConfig(gathering_timeout=5.0, open_timeout=10.0)


@pytest.fixture
async def manager(config):
    manager = WebRTCSessionManager(config)
    yield manager
    await manager.close_all_sessions()


@pytest.fixture
def app(manager):
    return create_app(session_manager=manager)
