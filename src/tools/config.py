"""
Runtime configuration for the signaling server and the initiator client.

Values come from defaults, then ``RTC_*`` environment variables, then CLI flags.
"""

from dataclasses import dataclass, field, replace
from typing import List, Mapping, Optional
import os


MAILBOX_POLICIES = ("registry", "replace", "reject")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class SignalingConfig:
    host: str = "0.0.0.0"
    port: int = 8080
    endpoint: str = "/setupRTC"
    channel_label: str = "mychannel"
    # Empty means host candidates only (no STUN/TURN lookups)
    ice_servers: List[str] = field(default_factory=list)
    gathering_timeout: float = 10.0
    http_timeout: float = 10.0
    open_timeout: float = 10.0
    mailbox_policy: str = "registry"
    responder_wait_for_gathering: bool = True
    session_timeout: float = 300.0
    cleanup_interval: float = 60.0

    def __post_init__(self):
        if self.mailbox_policy not in MAILBOX_POLICIES:
            raise ValueError(
                f"Unknown mailbox policy {self.mailbox_policy!r}, "
                f"expected one of {', '.join(MAILBOX_POLICIES)}"
            )
        if not self.endpoint.startswith("/"):
            raise ValueError("Signaling endpoint must start with '/'")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SignalingConfig":
        """
        Build a configuration from ``RTC_*`` environment variables.

        Args:
            environ: Mapping to read from, defaults to ``os.environ``

        Returns:
            SignalingConfig with every variable that is set applied over the defaults
        """
        environ = os.environ if environ is None else environ
        values = {}

        readers = {
            "host": ("RTC_HOST", str),
            "port": ("RTC_PORT", int),
            "endpoint": ("RTC_ENDPOINT", str),
            "channel_label": ("RTC_CHANNEL_LABEL", str),
            "ice_servers": ("RTC_ICE_SERVERS", _parse_list),
            "gathering_timeout": ("RTC_GATHERING_TIMEOUT", float),
            "http_timeout": ("RTC_HTTP_TIMEOUT", float),
            "open_timeout": ("RTC_OPEN_TIMEOUT", float),
            "mailbox_policy": ("RTC_MAILBOX_POLICY", str),
            "responder_wait_for_gathering": ("RTC_RESPONDER_WAIT_FOR_GATHERING", _parse_bool),
            "session_timeout": ("RTC_SESSION_TIMEOUT", float),
            "cleanup_interval": ("RTC_CLEANUP_INTERVAL", float),
        }
        for name, (variable, parse) in readers.items():
            raw = environ.get(variable)
            if raw is not None and raw != "":
                values[name] = parse(raw)

        return cls(**values)

    def override(self, **changes) -> "SignalingConfig":
        """Return a copy with every non-None keyword applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
