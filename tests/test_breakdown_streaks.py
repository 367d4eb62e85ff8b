import unittest
from datetime import date

from teamsum.pipeline.breakdown import build_daily_breakdown, calorie_goal_hit, count_days, water_goal_hit
from teamsum.pipeline.streaks import StreakInvariantError, _checked, current_streak, longest_run, longest_streak
from teamsum.pipeline.trends import trend


def _day(active, on="2024-01-01"):
    return {"date": on, "total_calories": 1800 if active else 0, "total_water_ml": 0, "workout_done": False}


class BreakdownTests(unittest.TestCase):
    def test_missing_days_are_zero_and_length_is_fixed(self):
        metrics = [{"date": "2024-01-03", "total_calories": 2050, "total_water_ml": 2500, "workout_count": 1, "workout_mins": 30}]
        days = build_daily_breakdown(metrics, date(2024, 1, 1), 7, 2000, 2000)
        self.assertEqual(len(days), 7)
        self.assertEqual([d["date"] for d in days][0], "2024-01-01")
        self.assertEqual(days[0]["total_calories"], 0.0)
        self.assertFalse(days[0]["calories_hit"])
        self.assertTrue(days[2]["calories_hit"])
        self.assertTrue(days[2]["water_hit"])
        self.assertTrue(days[2]["workout_done"])
        self.assertEqual(days[6]["day_of_week"], 6)

    def test_future_days_are_flagged_not_missed(self):
        metrics = [{"date": "2024-01-06", "total_calories": 2000, "total_water_ml": 2000}]
        days = build_daily_breakdown(metrics, date(2024, 1, 1), 7, today=date(2024, 1, 4))
        self.assertEqual([d["is_future"] for d in days], [False] * 4 + [True] * 3)
        self.assertFalse(days[5]["calories_hit"])
        self.assertEqual(days[5]["total_calories"], 0.0)

    def test_goal_rules(self):
        self.assertTrue(calorie_goal_hit(2200, 2000))
        self.assertFalse(calorie_goal_hit(2201, 2000))
        self.assertFalse(calorie_goal_hit(0, 2000))
        self.assertFalse(calorie_goal_hit(2000, 0))
        self.assertTrue(water_goal_hit(2000, 2000))
        self.assertFalse(water_goal_hit(0, 0))

    def test_count_days(self):
        days = build_daily_breakdown([{"date": "2024-01-01", "workout_mins": 20}], "2024-01-01", 7)
        self.assertEqual(count_days(days, "workout_done"), 1)


class StreakTests(unittest.TestCase):
    def test_longest_streak_example(self):
        flags = [True, True, False, True, True, True, False]
        self.assertEqual(longest_streak([_day(f) for f in flags]), 3)
        self.assertEqual(longest_run(flags), 3)

    def test_five_day_run_in_a_week(self):
        flags = [False, True, True, True, True, True, False]
        self.assertEqual(longest_streak([_day(f) for f in flags]), 5)

    def test_empty_window(self):
        self.assertEqual(longest_streak([]), 0)

    def test_current_streak_walks_back_from_today(self):
        days = build_daily_breakdown(
            [
                {"date": "2024-01-01", "total_water_ml": 500},
                {"date": "2024-01-03", "total_water_ml": 500},
                {"date": "2024-01-04", "total_calories": 1000},
                {"date": "2024-01-05", "workout_count": 1},
            ],
            "2024-01-01",
            7,
            today=date(2024, 1, 5),
        )
        self.assertEqual(current_streak(days, date(2024, 1, 5)), 3)
        self.assertEqual(current_streak(days, date(2024, 1, 2)), 0)

    def test_negative_result_is_an_invariant_violation(self):
        with self.assertRaises(StreakInvariantError):
            _checked(-1, "longest_run")


class TrendTests(unittest.TestCase):
    def test_trend_table(self):
        self.assertEqual(trend(110, 100), "up")
        self.assertEqual(trend(89, 100), "down")
        self.assertEqual(trend(90, 100), "down")
        self.assertEqual(trend(95, 100), "stable")
        self.assertEqual(trend(5, 0), "new")
        self.assertEqual(trend(5, None), "new")


if __name__ == "__main__":
    unittest.main()
