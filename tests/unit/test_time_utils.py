import pytest
from datetime import date, datetime

from stockcloud.utils.time_utils import local_date, local_day_bounds, parse_day


class TestBusinessDays:
    """Local calendar days in America/Lima (UTC-5, no DST)."""

    def test_local_day_bounds(self, app):
        start, end = local_day_bounds('2025-03-14')

        assert start == datetime(2025, 3, 14, 5, 0)
        assert end == datetime(2025, 3, 15, 5, 0)

    def test_late_evening_belongs_to_previous_day(self, app):
        assert local_date(datetime(2025, 3, 15, 2, 30)) == date(2025, 3, 14)

    def test_parse_day(self):
        assert parse_day('2025-01-31') == date(2025, 1, 31)
        assert parse_day(date(2025, 1, 31)) == date(2025, 1, 31)
        with pytest.raises(ValueError):
            parse_day('31/01/2025')
