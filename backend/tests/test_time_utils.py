from datetime import datetime, timezone, timedelta

import pytest

from unitrack.time_utils import parse_iso_datetime, to_utc_z, utcnow


@pytest.mark.parametrize("value, expected", [
    ("2024-05-01T09:30", datetime(2024, 5, 1, 9, 30)),
    ("2024-05-01T09:30Z", datetime(2024, 5, 1, 9, 30)),
    ("2024-05-01T11:30+02:00", datetime(2024, 5, 1, 9, 30)),
    ("  ", None),
    (None, None),
])
def test_parse_iso_datetime(value, expected):
    assert parse_iso_datetime(value) == expected


def test_parse_iso_datetime_rejects_garbage():
    with pytest.raises(ValueError):
        parse_iso_datetime("yesterday")


def test_to_utc_z():
    assert to_utc_z(datetime(2024, 5, 1, 9, 30, 15, 999)) == "2024-05-01T09:30:15Z"
    aware = datetime(2024, 5, 1, 11, 30, tzinfo=timezone(timedelta(hours=2)))
    assert to_utc_z(aware) == "2024-05-01T09:30:00Z"
    assert to_utc_z(None) is None


def test_utcnow_is_naive():
    assert utcnow().tzinfo is None
