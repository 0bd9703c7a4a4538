import pytest

from tools.config import SignalingConfig


def test_defaults():
    config = SignalingConfig()

    assert config.endpoint == "/setupRTC"
    assert config.channel_label == "mychannel"
    assert config.ice_servers == []
    assert config.mailbox_policy == "registry"
    assert config.responder_wait_for_gathering is True


def test_from_env_reads_prefixed_variables():
    config = SignalingConfig.from_env(
        {
            "RTC_PORT": "9000",
            "RTC_ICE_SERVERS": "stun:stun.example.com:3478, turn:turn.example.com",
            "RTC_MAILBOX_POLICY": "replace",
            "RTC_RESPONDER_WAIT_FOR_GATHERING": "no",
            "RTC_GATHERING_TIMEOUT": "2.5",
            "RTC_HOST": "",
        }
    )

    assert config.port == 9000
    assert config.ice_servers == ["stun:stun.example.com:3478", "turn:turn.example.com"]
    assert config.mailbox_policy == "replace"
    assert config.responder_wait_for_gathering is False
    assert config.gathering_timeout == 2.5
    assert config.host == "0.0.0.0"


def test_rejects_unknown_mailbox_policy():
    with pytest.raises(ValueError):
        SignalingConfig(mailbox_policy="broadcast")


def test_override_ignores_none():
    config = SignalingConfig(port=8081).override(port=None, host="127.0.0.1")

    assert config.port == 8081
    assert config.host == "127.0.0.1"
