from datetime import datetime, timedelta, timezone

from datetime_utils import UTC, ensure_utc, from_ms, now_ms, parse_rfc3339, to_rfc3339_utc


def test_now_ms_matches_wall_clock():
    before = int(datetime.now(UTC).timestamp() * 1000)
    value = now_ms()
    after = int(datetime.now(UTC).timestamp() * 1000)
    assert before <= value <= after


def test_from_ms():
    assert from_ms(None) is None
    assert from_ms(0) == datetime(1970, 1, 1, tzinfo=UTC)


def test_ensure_utc_naive_and_offset():
    naive = datetime(2024, 5, 1, 12, 0)
    assert ensure_utc(naive).tzinfo == UTC
    shifted = datetime(2024, 5, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    assert ensure_utc(shifted) == datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def test_rfc3339_roundtrip_and_garbage():
    moment = datetime(2024, 5, 1, 12, 30, 15, 999, tzinfo=UTC)
    text = to_rfc3339_utc(moment)
    assert text == "2024-05-01T12:30:15Z"
    assert parse_rfc3339(text) == moment.replace(microsecond=0)
    assert parse_rfc3339("") is None
    assert parse_rfc3339("yesterday") is None
