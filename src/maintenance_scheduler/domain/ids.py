"""Prefixed ULID identifiers for anomalies, windows and action plans."""

from __future__ import annotations

import secrets
import time
from collections.abc import Callable
from typing import Final

CROCKFORD_BASE32_ALPHABET: Final[str] = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
ULID_LENGTH: Final[int] = 26
ULID_RANDOM_BYTES: Final[int] = 10
ULID_MAX_TIMESTAMP_MS: Final[int] = (1 << 48) - 1
_PREFIX_SEPARATOR: Final[str] = "-"

ANOMALY_ID_PREFIX: Final[str] = "anom"
WINDOW_ID_PREFIX: Final[str] = "mw"
ACTION_PLAN_ID_PREFIX: Final[str] = "ap"
ACTION_ITEM_ID_PREFIX: Final[str] = "act"

_DECODE_TABLE: Final[dict[str, int]] = {
    char: index for index, char in enumerate(CROCKFORD_BASE32_ALPHABET)
}

RandBytes = Callable[[int], bytes]
IdFactory = Callable[[], str]

__all__ = [
    "ACTION_ITEM_ID_PREFIX",
    "ACTION_PLAN_ID_PREFIX",
    "ANOMALY_ID_PREFIX",
    "CROCKFORD_BASE32_ALPHABET",
    "IdFactory",
    "RandBytes",
    "ULID_LENGTH",
    "WINDOW_ID_PREFIX",
    "generate_action_item_id",
    "generate_action_plan_id",
    "generate_anomaly_id",
    "generate_prefixed_id",
    "generate_ulid",
    "generate_window_id",
    "parse_ulid_timestamp_ms",
    "validate_prefixed_id",
    "validate_ulid",
]


def generate_ulid(*, timestamp_ms: int | None = None, randbytes: RandBytes | None = None) -> str:
    """Generate a 26-character uppercase Crockford Base32 ULID."""
    ts_ms = _resolve_timestamp_ms(timestamp_ms)
    entropy = _resolve_random_bytes(randbytes)
    value = (ts_ms << 80) | int.from_bytes(entropy, "big")

    chars: list[str] = []
    for _ in range(ULID_LENGTH):
        chars.append(CROCKFORD_BASE32_ALPHABET[value & 0b11111])
        value >>= 5
    return "".join(reversed(chars))


def validate_ulid(value: str) -> None:
    """Raise ``ValueError`` when ``value`` is not a well-formed ULID."""
    _decode_ulid(value)


def parse_ulid_timestamp_ms(value: str) -> int:
    return _decode_ulid(value) >> 80


def generate_prefixed_id(
    prefix: str,
    *,
    timestamp_ms: int | None = None,
    randbytes: RandBytes | None = None,
) -> str:
    """Generate ``<prefix>-<ulid>``."""
    _validate_prefix(prefix)
    ulid = generate_ulid(timestamp_ms=timestamp_ms, randbytes=randbytes)
    return f"{prefix}{_PREFIX_SEPARATOR}{ulid}"


def validate_prefixed_id(id_str: str, expected_prefix: str) -> None:
    _validate_prefix(expected_prefix)
    if not isinstance(id_str, str):
        raise ValueError(f"prefixed id must be a string, got {type(id_str).__name__}")
    lead = f"{expected_prefix}{_PREFIX_SEPARATOR}"
    if not id_str.startswith(lead):
        raise ValueError(f"expected prefix '{lead}'")
    try:
        validate_ulid(id_str[len(lead) :])
    except ValueError as exc:
        raise ValueError(f"invalid ULID part for prefix '{expected_prefix}': {exc}") from exc


def generate_anomaly_id(
    *, timestamp_ms: int | None = None, randbytes: RandBytes | None = None
) -> str:
    return generate_prefixed_id(ANOMALY_ID_PREFIX, timestamp_ms=timestamp_ms, randbytes=randbytes)


def generate_window_id(
    *, timestamp_ms: int | None = None, randbytes: RandBytes | None = None
) -> str:
    return generate_prefixed_id(WINDOW_ID_PREFIX, timestamp_ms=timestamp_ms, randbytes=randbytes)


def generate_action_plan_id(
    *, timestamp_ms: int | None = None, randbytes: RandBytes | None = None
) -> str:
    return generate_prefixed_id(
        ACTION_PLAN_ID_PREFIX, timestamp_ms=timestamp_ms, randbytes=randbytes
    )


def generate_action_item_id(
    *, timestamp_ms: int | None = None, randbytes: RandBytes | None = None
) -> str:
    return generate_prefixed_id(
        ACTION_ITEM_ID_PREFIX, timestamp_ms=timestamp_ms, randbytes=randbytes
    )


def _resolve_timestamp_ms(timestamp_ms: int | None) -> int:
    resolved = time.time_ns() // 1_000_000 if timestamp_ms is None else timestamp_ms
    if isinstance(resolved, bool) or not isinstance(resolved, int):
        raise ValueError(f"timestamp_ms must be an int, got {type(resolved).__name__}")
    if not 0 <= resolved <= ULID_MAX_TIMESTAMP_MS:
        raise ValueError(
            f"timestamp_ms out of range: expected 0..{ULID_MAX_TIMESTAMP_MS}, got {resolved}"
        )
    return resolved


def _resolve_random_bytes(randbytes: RandBytes | None) -> bytes:
    provider = secrets.token_bytes if randbytes is None else randbytes
    raw = bytes(provider(ULID_RANDOM_BYTES))
    if len(raw) != ULID_RANDOM_BYTES:
        raise ValueError(f"randbytes must return exactly {ULID_RANDOM_BYTES} bytes")
    return raw


def _decode_ulid(value: str) -> int:
    if not isinstance(value, str):
        raise ValueError(f"ulid must be a string, got {type(value).__name__}")
    if len(value) != ULID_LENGTH:
        raise ValueError(f"ulid length must be {ULID_LENGTH}, got {len(value)}")

    decoded = 0
    for index, char in enumerate(value.upper()):
        digit = _DECODE_TABLE.get(char)
        if digit is None:
            raise ValueError(f"invalid ULID character {value[index]!r} at index {index}")
        decoded = (decoded << 5) | digit
    if decoded >> 128:
        raise ValueError("ulid overflow: value exceeds maximum 128-bit ULID")
    return decoded


def _validate_prefix(prefix: str) -> None:
    if not isinstance(prefix, str) or not prefix:
        raise ValueError("prefix must be a non-empty string")
    if _PREFIX_SEPARATOR in prefix:
        raise ValueError(f"prefix must not contain '{_PREFIX_SEPARATOR}'")
