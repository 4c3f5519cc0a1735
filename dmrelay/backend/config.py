"""Configuration helpers for backend runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum


class LeavePolicy(str, Enum):
    """What leaving a room does to unread counters."""

    RESET_SELF = "reset_self"
    KEEP = "keep"


@dataclass(frozen=True)
class RelaySettings:
    snapshot_path: str | None
    database_url: str | None
    host: str
    port: int
    leave_policy: LeavePolicy = LeavePolicy.RESET_SELF
    flush_interval_s: float = 0.0
    flush_on_send: bool = False
    log_level: str = "info"
    cors_origins: tuple[str, ...] = ("*",)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in os.getenv(name, default).split(",") if item.strip())


def load_settings() -> RelaySettings:
    port_raw = os.getenv("DMRELAY_PORT", "4000")
    return RelaySettings(
        snapshot_path=os.getenv("DMRELAY_SNAPSHOT_PATH", "chat_history.json") or None,
        database_url=os.getenv("DMRELAY_DATABASE_URL"),
        host=os.getenv("DMRELAY_HOST", "127.0.0.1"),
        port=int(port_raw),
        leave_policy=LeavePolicy(os.getenv("DMRELAY_LEAVE_POLICY", LeavePolicy.RESET_SELF.value)),
        flush_interval_s=float(os.getenv("DMRELAY_FLUSH_INTERVAL", "0")),
        flush_on_send=_env_flag("DMRELAY_FLUSH_ON_SEND"),
        log_level=os.getenv("DMRELAY_LOG_LEVEL", "info"),
        cors_origins=_env_list("DMRELAY_CORS_ORIGINS", "*"),
    )
