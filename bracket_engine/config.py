"""Configuration helpers for the bracket engine runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

from .models import DEFAULT_ROUND_LABELS

ConsensusMode = Literal["self_report", "host_confirmation"]

_CONSENSUS_MODES = ("self_report", "host_confirmation")


def env_int(name: str, *, default: int | None = None) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_list(name: str, *, default: tuple[str, ...] = ()) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    values = tuple(part.strip() for part in raw.split(",") if part.strip())
    return values or default


def env_pairs(name: str) -> tuple[tuple[str, str], ...]:
    """Parse ``key=value`` entries from a comma separated variable."""
    pairs: list[tuple[str, str]] = []
    for entry in env_list(name):
        key, sep, value = entry.partition("=")
        if sep and key.strip() and value.strip():
            pairs.append((key.strip().lower(), value.strip()))
    return tuple(pairs)


@dataclass(frozen=True)
class EngineConfig:
    table_name: str | None = None
    aws_region: str = "us-east-1"
    min_competitors: int = 2
    required_reporters: int = 2
    consensus_mode: ConsensusMode = "self_report"
    round_labels: tuple[str, ...] = DEFAULT_ROUND_LABELS
    max_write_attempts: int = 5
    # (host_id, region) pairs allowed to attest in host_confirmation mode
    result_hosts: tuple[tuple[str, str], ...] = ()


def read_engine_config() -> EngineConfig:
    mode = (os.getenv("RESULT_CONSENSUS_MODE") or "self_report").strip().lower()
    if mode not in _CONSENSUS_MODES:
        mode = "self_report"
    return EngineConfig(
        table_name=os.getenv("TOURNAMENT_TABLE_NAME") or None,
        aws_region=os.getenv("AWS_REGION", "us-east-1"),
        min_competitors=max(2, env_int("BRACKET_MIN_COMPETITORS", default=2) or 2),
        required_reporters=max(
            1, env_int("RESULT_REPORTERS_REQUIRED", default=2) or 2
        ),
        consensus_mode=mode,  # type: ignore[arg-type]
        round_labels=env_list("BRACKET_ROUND_LABELS", default=DEFAULT_ROUND_LABELS),
        max_write_attempts=max(
            1, env_int("ENGINE_MAX_WRITE_ATTEMPTS", default=5) or 5
        ),
        result_hosts=env_pairs("RESULT_HOSTS"),
    )


__all__ = [
    "ConsensusMode",
    "EngineConfig",
    "env_int",
    "env_list",
    "env_pairs",
    "read_engine_config",
]
