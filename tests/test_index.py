import pytest

import index
from tools.errors import HandshakeTimeout


def test_parser_serve_flags():
    args = index.build_parser().parse_args(["serve", "--port", "9000", "--mailbox-policy", "reject"])

    assert args.command == "serve"
    assert args.port == 9000
    assert args.mailbox_policy == "reject"


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        index.build_parser().parse_args([])


def test_connect_prints_echoes(monkeypatch, capsys):
    seen = {}

    async def fake_session(url, messages, config):
        seen.update(url=url, messages=messages, label=config.channel_label)
        return messages

    monkeypatch.setattr(index, "run_echo_session", fake_session)

    code = index.main(["connect", "--url", "http://localhost:8080/setupRTC"])

    assert code == 0
    assert seen == {
        "url": "http://localhost:8080/setupRTC",
        "messages": ["Button Clicked!"],
        "label": "mychannel",
    }
    assert capsys.readouterr().out.strip() == "Button Clicked!"


def test_connect_reports_handshake_failure(monkeypatch):
    async def failing_session(url, messages, config):
        raise HandshakeTimeout("no answer")

    monkeypatch.setattr(index, "run_echo_session", failing_session)

    assert index.main(["connect", "--url", "http://localhost:1/setupRTC"]) == 1
