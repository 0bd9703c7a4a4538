"""Loopback scenarios: Initiator and Responder negotiate in-process over aiortc."""

import asyncio

import pytest

from conftest import QuartSignaling, wait_until
from controllers.http_controller import create_app
from controllers.webrtc_controller import WebRTCSessionManager
from controllers.webrtc_controller.data_channel import RelayState
from tools.config import SignalingConfig
from tools.errors import HandshakeTimeout
from use_cases.initiator import Initiator


async def _connected_initiator(app, config):
    initiator = Initiator(QuartSignaling(app, config.endpoint), config)
    await initiator.begin_handshake()
    await initiator.wait_open()
    return initiator


async def test_descriptions_applied_in_order_leave_both_peers_usable(app, manager, config):
    initiator = await _connected_initiator(app, config)
    try:
        responder_pc = manager.get_peer_connection(initiator.session_id)

        assert initiator.pc.localDescription.type == "offer"
        assert initiator.pc.remoteDescription.type == "answer"
        assert responder_pc.remoteDescription.type == "offer"
        assert responder_pc.localDescription.type == "answer"
        assert initiator.pc.signalingState == responder_pc.signalingState == "stable"
        assert initiator.channel.readyState == "open"
    finally:
        await initiator.close()


async def test_button_click_is_echoed_exactly_once(app, manager, config):
    initiator = await _connected_initiator(app, config)
    try:
        initiator.send("Button Clicked!")

        assert await initiator.next_message() == "Button Clicked!"
        await asyncio.sleep(0.2)

        assert initiator.received == ["Button Clicked!"]
        relay = manager.get_relay(initiator.session_id)
        assert relay.echoed == 1
        assert relay.state is RelayState.ACTIVE
        assert manager.mailbox_session_id == initiator.session_id
    finally:
        await initiator.close()


async def test_echo_preserves_order(app, config):
    initiator = await _connected_initiator(app, config)
    try:
        messages = [f"message-{i}" for i in range(20)] + [b"\x00raw"]
        for message in messages:
            initiator.send(message)

        echoes = [await initiator.next_message() for _ in messages]

        assert echoes == messages
    finally:
        await initiator.close()


async def test_close_releases_responder_session(app, manager, config):
    initiator = await _connected_initiator(app, config)
    session_id = initiator.session_id

    await initiator.close()

    assert manager.get_session(session_id) is None


async def test_second_initiator_displaces_first_without_crashing():
    config = SignalingConfig(mailbox_policy="replace", gathering_timeout=5.0, open_timeout=10.0)
    manager = WebRTCSessionManager(config)
    app = create_app(session_manager=manager)
    first = second = None
    try:
        first = await _connected_initiator(app, config)
        await wait_until(lambda: manager.mailbox_session_id == first.session_id)

        second = await _connected_initiator(app, config)
        await wait_until(lambda: manager.mailbox_session_id == second.session_id)

        assert manager.get_relay(first.session_id).state is RelayState.DETACHED
        assert first.channel.readyState == "open"

        first.send("anyone there?")
        second.send("Button Clicked!")

        assert await second.next_message() == "Button Clicked!"
        with pytest.raises(HandshakeTimeout):
            await first.next_message(timeout=0.5)
        assert first.received == []
    finally:
        for initiator in (first, second):
            if initiator:
                await initiator.close()
        await manager.close_all_sessions()


async def test_registry_policy_keeps_sessions_independent(app, manager, config):
    first = await _connected_initiator(app, config)
    second = await _connected_initiator(app, config)
    try:
        first.send("from first")
        second.send("from second")

        assert await first.next_message() == "from first"
        assert await second.next_message() == "from second"
        assert manager.get_session_count() == 2
    finally:
        await first.close()
        await second.close()
