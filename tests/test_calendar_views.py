import unittest
from datetime import date, datetime, timezone

from flowzone.calendar_views import (
    days_in_month, format_hour_label, get_day_events, get_events_at_hour,
    get_month_days, get_week_days, view_range
)


class TestCalendarViews(unittest.TestCase):

    EVENTS = [
        {"id": "a", "startTime": "2026-10-20T09:00:00Z"},
        {"id": "b", "startTime": "2026-10-20T09:45:00Z"},
        {"id": "c", "startTime": "2026-10-20T14:00:00Z"},
        {"id": "d", "startTime": "2026-10-21T09:00:00Z"},
    ]

    def test_week_starts_on_sunday(self):
        week = get_week_days(date(2026, 10, 21))  # a Wednesday
        self.assertEqual(len(week), 7)
        self.assertEqual(week[0], date(2026, 10, 18))
        self.assertEqual(week[-1], date(2026, 10, 24))

    def test_week_of_a_sunday(self):
        self.assertEqual(get_week_days(date(2026, 10, 18))[0], date(2026, 10, 18))

    def test_week_of_a_saturday(self):
        self.assertEqual(get_week_days(date(2026, 10, 24))[0], date(2026, 10, 18))

    def test_month_grid_padding(self):
        """October 2026 starts on a Thursday, so four blank cells lead the grid"""
        days = get_month_days(2026, 10)
        self.assertEqual(days[:4], [None] * 4)
        self.assertEqual(days[4], date(2026, 10, 1))
        self.assertEqual(days[-1], date(2026, 10, 31))
        self.assertEqual(len(days), 35)

    def test_days_in_month(self):
        self.assertEqual(days_in_month(2026, 2), 28)
        self.assertEqual(days_in_month(2028, 2), 29)
        self.assertEqual(days_in_month(2026, 12), 31)

    def test_day_events(self):
        self.assertEqual([e["id"] for e in get_day_events(self.EVENTS, date(2026, 10, 20))], ["a", "b", "c"])

    def test_events_at_hour(self):
        self.assertEqual([e["id"] for e in get_events_at_hour(self.EVENTS, date(2026, 10, 20), 9)], ["a", "b"])
        self.assertEqual(get_events_at_hour(self.EVENTS, date(2026, 10, 20), 10), [])

    def test_view_ranges(self):
        utc = timezone.utc
        self.assertEqual(
            view_range("day", date(2026, 10, 20)),
            (datetime(2026, 10, 20, tzinfo=utc), datetime(2026, 10, 21, tzinfo=utc))
        )
        self.assertEqual(
            view_range("week", date(2026, 10, 21)),
            (datetime(2026, 10, 18, tzinfo=utc), datetime(2026, 10, 25, tzinfo=utc))
        )
        self.assertEqual(
            view_range("month", date(2026, 12, 15)),
            (datetime(2026, 12, 1, tzinfo=utc), datetime(2027, 1, 1, tzinfo=utc))
        )

    def test_unknown_view(self):
        with self.assertRaises(ValueError):
            view_range("year", date(2026, 10, 20))

    def test_hour_labels(self):
        self.assertEqual(format_hour_label(0), "12 AM")
        self.assertEqual(format_hour_label(9), "9 AM")
        self.assertEqual(format_hour_label(12), "12 PM")
        self.assertEqual(format_hour_label(15), "3 PM")


if __name__ == "__main__":
    unittest.main()
