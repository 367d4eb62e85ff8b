import unittest
from datetime import date, datetime, timedelta, timezone

from teamsum.pipeline.calendar import (
    days_left_in_month,
    is_complete,
    is_today,
    local_today,
    month_bounds,
    month_end,
    period_bounds,
    trigger_window,
    week_bounds,
)


class WeekBoundsTests(unittest.TestCase):
    def test_every_day_falls_inside_its_week(self):
        start = date(2023, 12, 20)
        for i in range(60):
            d = start + timedelta(days=i)
            monday, sunday = week_bounds(d)
            self.assertLessEqual(monday, d)
            self.assertLessEqual(d, sunday)
            self.assertEqual(monday.weekday(), 0)
            self.assertEqual((sunday - monday).days, 6)

    def test_sunday_maps_to_previous_monday(self):
        self.assertEqual(week_bounds(date(2024, 1, 7)), (date(2024, 1, 1), date(2024, 1, 7)))

    def test_offset_weeks(self):
        self.assertEqual(week_bounds("2024-01-03", -1)[0], date(2023, 12, 25))


class MonthTests(unittest.TestCase):
    def test_month_bounds_with_offset(self):
        self.assertEqual(month_bounds(date(2024, 1, 31), 1), (date(2024, 2, 1), "2024-02"))
        self.assertEqual(month_bounds(date(2024, 1, 15), -1), (date(2023, 12, 1), "2023-12"))

    def test_month_end_and_days_left(self):
        self.assertEqual(month_end(date(2024, 2, 10)), date(2024, 2, 29))
        self.assertEqual(days_left_in_month(date(2024, 2, 29)), 1)
        self.assertEqual(days_left_in_month(date(2024, 2, 1)), 29)

    def test_period_bounds(self):
        self.assertEqual(period_bounds("monthly", date(2024, 4, 9)), (date(2024, 4, 1), date(2024, 4, 30)))
        with self.assertRaises(ValueError):
            period_bounds("yearly", date(2024, 4, 9))


class TriggerWindowTests(unittest.TestCase):
    def test_utc_sunday_evening(self):
        self.assertTrue(trigger_window(datetime(2024, 1, 7, 19, 30, tzinfo=timezone.utc), "UTC"))
        self.assertFalse(trigger_window(datetime(2024, 1, 7, 20, 0, tzinfo=timezone.utc), "UTC"))
        self.assertFalse(trigger_window(datetime(2024, 1, 6, 19, 30, tzinfo=timezone.utc), "UTC"))

    def test_local_timezone(self):
        # 00:30 UTC Monday is 19:30 Sunday in New York (EST)
        now = datetime(2024, 1, 8, 0, 30, tzinfo=timezone.utc)
        self.assertTrue(trigger_window(now, "America/New_York"))
        self.assertFalse(trigger_window(now, "UTC"))
        self.assertEqual(local_today(now, "America/New_York"), date(2024, 1, 7))
        self.assertTrue(is_today("2024-01-07", now, "America/New_York"))
        self.assertFalse(is_today(date(2024, 1, 7), now, "UTC"))

    def test_unknown_timezone_falls_back_to_utc(self):
        now = datetime(2024, 1, 7, 19, 5, tzinfo=timezone.utc)
        self.assertTrue(trigger_window(now, "Not/AZone"))
        self.assertTrue(trigger_window(now, None))

    def test_configured_weekday_and_hour(self):
        now = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
        self.assertTrue(trigger_window(now, "UTC", weekday=0, hour=8))


class CompletenessTests(unittest.TestCase):
    def test_is_complete_after_end_of_day(self):
        self.assertFalse(is_complete(date(2024, 1, 7), datetime(2024, 1, 7, 23, 0, tzinfo=timezone.utc)))
        self.assertTrue(is_complete(date(2024, 1, 7), datetime(2024, 1, 8, 0, 0, 1, tzinfo=timezone.utc)))


if __name__ == "__main__":
    unittest.main()
