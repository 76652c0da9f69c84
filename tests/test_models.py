from datetime import datetime, timezone

from scootcare.models import parse_ts


def test_parse_ts_accepts_trimmed_fractions_from_postgres():
    ts = parse_ts("2024-05-01T10:00:00.12345+00:00")
    assert ts == datetime(2024, 5, 1, 10, 0, 0, 123450, tzinfo=timezone.utc)
    assert parse_ts("2024-05-01 10:00:00.5+00:00").microsecond == 500000
    assert parse_ts("2024-05-01T10:00:00.1234567+00:00").microsecond == 123456


def test_parse_ts_zulu_and_naive():
    assert parse_ts("2024-05-01T10:00:00Z") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
    assert parse_ts("2024-05-01T10:00:00").tzinfo == timezone.utc
    assert parse_ts(None) is None
