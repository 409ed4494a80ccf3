"""Unit tests for prefixed ULID helpers."""

from __future__ import annotations

import pytest

from maintenance_scheduler.domain import ids


def _zero_bytes(size: int) -> bytes:
    return b"\x00" * size


def _ff_bytes(size: int) -> bytes:
    return b"\xff" * size


def test_generate_ulid_no_collision_5000() -> None:
    generated = {ids.generate_ulid() for _ in range(5_000)}
    assert len(generated) == 5_000


def test_ulid_charset_length_and_invalid_characters() -> None:
    value = ids.generate_ulid(timestamp_ms=123_456, randbytes=_ff_bytes)
    assert len(value) == ids.ULID_LENGTH
    assert all(char in ids.CROCKFORD_BASE32_ALPHABET for char in value)

    ids.validate_ulid(value.lower())

    with pytest.raises(ValueError, match="ulid length must be"):
        ids.validate_ulid("0" * 25)
    with pytest.raises(ValueError, match="invalid ULID character"):
        ids.validate_ulid("U" + "0" * 25)
    with pytest.raises(ValueError, match="overflow"):
        ids.validate_ulid("8" + "0" * 25)


def test_timestamp_roundtrip_and_bounds() -> None:
    value = ids.generate_ulid(timestamp_ms=1_772_438_400_000, randbytes=_zero_bytes)
    assert ids.parse_ulid_timestamp_ms(value) == 1_772_438_400_000

    with pytest.raises(ValueError, match="timestamp_ms out of range"):
        ids.generate_ulid(timestamp_ms=-1)
    with pytest.raises(ValueError, match="randbytes must return exactly"):
        ids.generate_ulid(randbytes=lambda size: b"\x00" * (size - 1))


@pytest.mark.parametrize(
    ("factory", "prefix"),
    [
        (ids.generate_anomaly_id, ids.ANOMALY_ID_PREFIX),
        (ids.generate_window_id, ids.WINDOW_ID_PREFIX),
        (ids.generate_action_plan_id, ids.ACTION_PLAN_ID_PREFIX),
        (ids.generate_action_item_id, ids.ACTION_ITEM_ID_PREFIX),
    ],
)
def test_prefixed_factories_validate_against_their_prefix(factory, prefix: str) -> None:
    generated = factory(timestamp_ms=42, randbytes=_zero_bytes)
    assert generated.startswith(f"{prefix}-")
    ids.validate_prefixed_id(generated, prefix)


def test_validate_prefixed_id_rejects_wrong_prefix_and_bad_ulid() -> None:
    window = ids.generate_window_id(timestamp_ms=1, randbytes=_zero_bytes)
    with pytest.raises(ValueError, match="expected prefix 'anom-'"):
        ids.validate_prefixed_id(window, ids.ANOMALY_ID_PREFIX)
    with pytest.raises(ValueError, match="invalid ULID part"):
        ids.validate_prefixed_id("mw-NOT-A-ULID", ids.WINDOW_ID_PREFIX)
    with pytest.raises(ValueError, match="must not contain"):
        ids.generate_prefixed_id("bad-prefix")
