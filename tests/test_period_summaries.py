import json
import unittest
from datetime import date, datetime, timezone

from teamsum.pipeline.combined import build_combined_summary, push_message
from teamsum.pipeline.highlights import INSIGHT_FITNESS_ONLY
from teamsum.pipeline.periods import (
    build_finance_period_summary,
    build_fitness_period_summary,
    compute_fitness_summary,
    fitness_targets,
    month_starts_for_run,
)
from teamsum.pipeline.persist import (
    SummaryValidationError,
    content_hash,
    dismiss_combined_summary,
    get_combined_summary,
    get_period_summary,
    upsert_combined_summary,
    upsert_period_summary,
)
from teamsum.pipeline.readers import get_previous_period_summary
from teamsum.pipeline.validation import validate_period_summary

from seed_data import FINANCE_PERSONA, FITNESS_PERSONA, make_conn, seed_scenario_week

SUNDAY_EVENING = datetime(2024, 1, 7, 19, 30, tzinfo=timezone.utc)
WEEK_START = date(2024, 1, 1)


def _fitness(conn, subject_id="s1", now=SUNDAY_EVENING):
    return build_fitness_period_summary(
        conn, subject_id, "weekly", WEEK_START, persona=FITNESS_PERSONA, today=date(2024, 1, 7), now_utc=now
    )


class FitnessSummaryTests(unittest.TestCase):
    def setUp(self):
        self.conn = make_conn()
        seed_scenario_week(self.conn, "s1")

    def test_scenario_week(self):
        summary = _fitness(self.conn)
        self.assertEqual(
            summary["highlights"],
            ["Hit calorie goal 5 of 7 days", "Hit water goal every day", "4 workouts this week"],
        )
        self.assertEqual(summary["total_workouts"], 4)
        self.assertEqual(summary["total_workout_mins"], 180.0)
        self.assertEqual(summary["days_at_calorie_goal"], 5)
        self.assertEqual(summary["days_at_water_goal"], 7)
        self.assertEqual(summary["longest_streak"], 7)
        self.assertEqual(summary["current_streak"], 7)
        self.assertEqual(summary["avg_daily_calories"], 2014.29)
        self.assertEqual(summary["meals_logged"], 21)
        self.assertEqual(summary["calories_trend"], "new")
        self.assertTrue(summary["has_activity"])
        self.assertFalse(summary["is_complete"])
        ok, reasons = validate_period_summary(summary)
        self.assertTrue(ok, reasons)

    def test_mid_week_marks_future_days(self):
        summary = compute_fitness_summary(
            "s1", "weekly", WEEK_START, [{"date": "2024-01-01", "total_water_ml": 2500}], today=date(2024, 1, 3)
        )
        self.assertEqual(sum(1 for d in summary["daily_breakdown"] if d["is_future"]), 4)
        self.assertEqual(summary["current_streak"], 0)
        self.assertFalse(summary["has_activity"])

    def test_trend_uses_previous_week(self):
        upsert_period_summary(self.conn, "fitness", "weekly", "s1", "2024-01-01", _fitness(self.conn))
        prev = get_previous_period_summary(self.conn, "fitness", "weekly", "s1", "2024-01-08")
        self.assertEqual(prev["total_workouts"], 4)
        nxt = build_fitness_period_summary(self.conn, "s1", "weekly", date(2024, 1, 8), persona=FITNESS_PERSONA, today=date(2024, 1, 14))
        self.assertEqual(nxt["workouts_trend"], "down")
        self.assertEqual(nxt["calories_trend"], "down")

    def test_non_iso_row_dates_still_count(self):
        rows = []
        for i in range(7):
            on = date(2024, 1, 1 + i)
            rows.append({
                "date": on if i % 2 else f"{on.isoformat()}T00:00:00",
                "total_calories": 2000,
                "meal_count": 3,
            })
        summary = compute_fitness_summary("s1", "weekly", WEEK_START, rows, today=date(2024, 1, 7))
        self.assertEqual(summary["avg_daily_calories"], 2000.0)
        self.assertEqual(summary["meals_logged"], 21)
        self.assertEqual(summary["days_with_meals"], 7)
        self.assertEqual(summary["days_at_calorie_goal"], 7)

    def test_targets_from_persona(self):
        self.assertEqual(fitness_targets({"nutrition_goals": {"calories": 1800}, "daily_water_goal_ml": 2500}), (1800.0, 2500.0))
        self.assertEqual(fitness_targets(None), (2000.0, 2000.0))


class PersistenceTests(unittest.TestCase):
    def setUp(self):
        self.conn = make_conn()
        seed_scenario_week(self.conn, "s1")

    def test_weekly_recompute_is_idempotent(self):
        first = _fitness(self.conn)
        second = _fitness(self.conn)
        self.assertEqual(json.dumps(first, sort_keys=True), json.dumps(second, sort_keys=True))
        self.assertTrue(upsert_period_summary(self.conn, "fitness", "weekly", "s1", "2024-01-01", first))
        self.assertFalse(upsert_period_summary(self.conn, "fitness", "weekly", "s1", "2024-01-01", second))
        count = self.conn.execute("SELECT COUNT(*) FROM period_summaries").fetchone()[0]
        self.assertEqual(count, 1)

    def test_completion_change_is_written(self):
        upsert_period_summary(self.conn, "fitness", "weekly", "s1", "2024-01-01", _fitness(self.conn))
        later = _fitness(self.conn, now=datetime(2024, 1, 8, 1, 0, tzinfo=timezone.utc))
        self.assertTrue(later["is_complete"])
        self.assertEqual(content_hash(later), content_hash(_fitness(self.conn)))
        self.assertTrue(upsert_period_summary(self.conn, "fitness", "weekly", "s1", "2024-01-01", later))
        stored = get_period_summary(self.conn, "fitness", "weekly", "s1", "2024-01-01")
        self.assertTrue(stored["is_complete"])

    def test_invalid_record_is_rejected(self):
        with self.assertRaises(SummaryValidationError):
            upsert_period_summary(self.conn, "fitness", "weekly", "s1", "2024-01-01", {"domain": "fitness"})
        self.assertEqual(self.conn.execute("SELECT COUNT(*) FROM period_summaries").fetchone()[0], 0)

    def test_combined_viewed_survives_rewrite(self):
        fitness = _fitness(self.conn)
        finance = build_finance_period_summary(
            self.conn, "s1", "weekly", WEEK_START, persona=FINANCE_PERSONA, today=date(2024, 1, 7), now_utc=SUNDAY_EVENING
        )
        combined = build_combined_summary("s1", WEEK_START, fitness, finance, [], SUNDAY_EVENING)
        self.assertFalse(finance["has_activity"])
        self.assertEqual(combined["team_wins"], [])
        self.assertEqual(combined["insight"], INSIGHT_FITNESS_ONLY)
        self.assertTrue(upsert_combined_summary(self.conn, "s1", "2024-01-01", combined))

        read = get_combined_summary(self.conn, "s1")
        self.assertFalse(read["viewed"])
        self.assertTrue(get_combined_summary(self.conn, "s1", "2024-01-01")["viewed"])

        changed = dict(combined, teammate_notes=["[Coach] User logged a high-protein meal"])
        self.assertTrue(upsert_combined_summary(self.conn, "s1", "2024-01-01", changed))
        again = get_combined_summary(self.conn, "s1", "2024-01-01", mark_viewed=False)
        self.assertTrue(again["viewed"])
        self.assertEqual(again["teammate_notes"], ["[Coach] User logged a high-protein meal"])

        self.assertTrue(dismiss_combined_summary(self.conn, "s1", "2024-01-01"))
        self.assertFalse(dismiss_combined_summary(self.conn, "s1", "2024-01-01"))
        self.assertIsNone(get_combined_summary(self.conn, "s1"))


class CombinedTests(unittest.TestCase):
    def test_push_copy(self):
        title, body, data = push_message({"team_wins": ["a", "b"], "period_start": "2024-01-01"})
        self.assertEqual(title, "\U0001f4ca Week in Review")
        self.assertEqual(body, "2 team wins this week! \U0001f389")
        self.assertEqual(data["type"], "combined_weekly_summary")
        self.assertEqual(push_message({"team_wins": ["a"]})[1], "1 team win this week! \U0001f389")
        self.assertEqual(push_message({"team_wins": []})[1], "Your weekly summary is ready!")

    def test_teammate_notes_are_capped(self):
        insights = [{"source_name": "Coach", "insight_type": "budget_streak", "data": {"days": i}} for i in range(8)]
        combined = build_combined_summary("s1", "2024-01-01", {"has_activity": True}, None, insights)
        self.assertEqual(len(combined["teammate_notes"]), 5)
        self.assertEqual(combined["period_end"], "2024-01-07")

    def test_month_starts_for_run(self):
        self.assertEqual(month_starts_for_run(date(2024, 1, 29), date(2024, 2, 4)), [date(2024, 1, 1), date(2024, 2, 1)])
        self.assertEqual(month_starts_for_run(date(2024, 1, 29), date(2024, 1, 31)), [date(2024, 1, 1)])


if __name__ == "__main__":
    unittest.main()
