## Main Execution Script
from controllers import main_signaling_task
from tools.config import MAILBOX_POLICIES, SignalingConfig
from tools.errors import HandshakeError
from tools.logger import *
from use_cases.initiator import run_echo_session
import argparse
import asyncio
import sys


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="WebRTC echo agent with HTTP signaling")
    parser.add_argument(
        "-l",
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set the logging level (use -l or --log-level)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the Responder signaling server")
    serve.add_argument("--host", help="Address to bind")
    serve.add_argument("--port", type=int, help="Port to bind")
    serve.add_argument("--endpoint", help="Signaling endpoint path")
    serve.add_argument("--mailbox-policy", choices=MAILBOX_POLICIES)
    serve.add_argument("--ice-server", action="append", dest="ice_servers", help="STUN/TURN URL, repeatable")

    connect = subparsers.add_parser("connect", help="Run an Initiator against a Responder")
    connect.add_argument("--url", required=True, help="Signaling endpoint URL")
    connect.add_argument(
        "-m",
        "--message",
        action="append",
        dest="messages",
        help="Message to send, repeatable (default: 'Button Clicked!')",
    )
    connect.add_argument("--channel-label", help="Data channel label")
    connect.add_argument("--ice-server", action="append", dest="ice_servers", help="STUN/TURN URL, repeatable")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    set_log_level(args.log_level)
    config = SignalingConfig.from_env()

    if args.command == "serve":
        config = config.override(
            host=args.host,
            port=args.port,
            endpoint=args.endpoint,
            mailbox_policy=args.mailbox_policy,
            ice_servers=args.ice_servers,
        )
        try:
            main_signaling_task(config)
        except KeyboardInterrupt:
            log_warning("Keyboard interrupt received. Shutting down.")
        return 0

    config = config.override(channel_label=args.channel_label, ice_servers=args.ice_servers)
    messages = args.messages or ["Button Clicked!"]
    try:
        echoes = asyncio.run(run_echo_session(args.url, messages, config))
    except HandshakeError as e:
        log_error(f"Session failed: {e}")
        return 1
    except KeyboardInterrupt:
        log_warning("Keyboard interrupt received. Closing connection and exiting.")
        return 130

    for echo in echoes:
        print(echo)
    return 0


if __name__ == "__main__":
    sys.exit(main())
