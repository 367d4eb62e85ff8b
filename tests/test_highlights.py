import unittest
from datetime import datetime, timedelta, timezone

from teamsum.pipeline.highlights import (
    INSIGHT_BALANCED,
    INSIGHT_BOTH_ACTIVE,
    INSIGHT_FINANCE_ONLY,
    INSIGHT_FITNESS_ONLY,
    INSIGHT_TEAMWORK,
    evaluate_team_wins,
    fitness_highlights,
    generate_insight,
)
from teamsum.pipeline.shared_insights import (
    _FORMATTERS,
    InsightType,
    expires_at,
    expiry_days,
    format_insight,
    time_ago,
)


class FitnessHighlightTests(unittest.TestCase):
    def test_priority_and_cap(self):
        self.assertEqual(
            fitness_highlights(3, 5, 7, 4),
            ["3-day logging streak", "Hit calorie goal 5 of 7 days", "Hit water goal every day"],
        )

    def test_full_window_streak_is_not_repeated(self):
        self.assertEqual(fitness_highlights(7, 0, 7, 0), ["Hit water goal every day"])
        self.assertEqual(fitness_highlights(5, 0, 0, 0), ["5-day logging streak"])

    def test_partial_water_and_monthly_wording(self):
        self.assertEqual(fitness_highlights(0, 0, 5, 0), ["Hit water goal 5 of 7 days"])
        self.assertEqual(fitness_highlights(0, 0, 0, 10, 31, "monthly"), ["10 workouts this month"])

    def test_nothing_to_celebrate(self):
        self.assertEqual(fitness_highlights(2, 4, 4, 3), [])


class TeamWinTests(unittest.TestCase):
    def test_active_and_under_budget(self):
        wins = evaluate_team_wins({"total_workouts": 3, "longest_streak": 1}, {"budget_status": "under"})
        self.assertIn("Stayed active AND under budget this week!", wins)
        self.assertLessEqual(len(wins), 3)

    def test_cap_at_three(self):
        fitness = {
            "has_activity": True,
            "total_workouts": 6,
            "longest_streak": 6,
            "days_at_calorie_goal": 6,
            "days_at_water_goal": 6,
        }
        finance = {
            "has_activity": True,
            "budget_status": "under",
            "days_under_budget": 7,
            "savings_progress_pct": 80,
            "top_category": {"name": "rent", "amount": 900},
        }
        wins = evaluate_team_wins(fitness, finance)
        self.assertEqual(
            wins,
            [
                "Stayed active AND under budget this week!",
                "Great meal tracking and smart spending!",
                "Crushed your fitness goals!",
            ],
        )

    def test_food_top_category_blocks_meal_win(self):
        wins = evaluate_team_wins(
            {"days_at_calorie_goal": 5},
            {"budget_status": "over", "top_category": {"name": "Food", "amount": 100}},
        )
        self.assertEqual(wins, [])

    def test_missing_or_inactive_domain_disqualifies(self):
        fitness = {"has_activity": True, "total_workouts": 5}
        self.assertEqual(evaluate_team_wins(fitness, None), [])
        self.assertEqual(evaluate_team_wins(fitness, {"has_activity": False, "budget_status": "under"}), [])

    def test_savings_win_text(self):
        wins = evaluate_team_wins({"has_activity": True}, {"has_activity": True, "savings_progress_pct": 55})
        self.assertEqual(wins, ["55% progress on savings goals!"])


class InsightTests(unittest.TestCase):
    def test_insight_selection(self):
        active_fit = {"has_activity": True, "total_workouts": 3}
        active_fin = {"has_activity": True, "budget_status": "under"}
        self.assertEqual(generate_insight(active_fit, active_fin, ["a", "b"]), INSIGHT_TEAMWORK)
        self.assertEqual(generate_insight(active_fit, active_fin, ["a"]), INSIGHT_BALANCED)
        self.assertEqual(
            generate_insight(active_fit, {"has_activity": True, "budget_status": "over"}, []),
            INSIGHT_BOTH_ACTIVE,
        )
        self.assertEqual(generate_insight(active_fit, {"has_activity": False}, []), INSIGHT_FITNESS_ONLY)
        self.assertEqual(generate_insight(None, active_fin, []), INSIGHT_FINANCE_ONLY)
        self.assertIsNone(generate_insight({"has_activity": False}, {"has_activity": False}, []))


class SharedInsightFormatTests(unittest.TestCase):
    def test_every_type_has_a_formatter(self):
        self.assertEqual(set(_FORMATTERS), set(InsightType))

    def test_fitness_messages(self):
        self.assertEqual(
            format_insight({"source_name": "Coach", "insight_type": "workout_logged", "data": {"type": "run", "duration": 30, "streak_count": 3}}),
            "[Coach] User did a 30 min run (3 day streak!)",
        )
        self.assertEqual(
            format_insight({"source_name": "Coach", "insight_type": "meal_logged", "data": {"high_protein": True}}),
            "[Coach] User logged a high-protein meal",
        )
        self.assertEqual(
            format_insight({"source_name": "Coach", "insight_type": "goal_hit", "data": {"type": "water", "days_in_row": 4}}),
            "[Coach] User hit their water goal (4 days in a row!)",
        )

    def test_finance_messages(self):
        self.assertEqual(
            format_insight({"source_name": "Penny", "insight_type": "expense_logged", "data": {"amount": 250.0, "category": "shopping", "is_high": True}}),
            "[Penny] User made a large expense: $250 on shopping",
        )
        self.assertEqual(
            format_insight({"source_name": "Penny", "insight_type": "budget_streak", "data": {"days": 5}}),
            "[Penny] User has been under budget for 5 days!",
        )

    def test_unknown_type_uses_default(self):
        self.assertEqual(
            format_insight({"source_domain": "fitness", "insight_type": "mood", "data": {"a": 1}}),
            '[fitness] {"a": 1}',
        )

    def test_time_ago_suffix(self):
        now = datetime(2024, 1, 7, 12, 0, tzinfo=timezone.utc)
        insight = {
            "source_name": "Coach",
            "insight_type": "activity_drop",
            "data": {"days_since_workout": 4},
            "created_at": (now - timedelta(hours=2)).isoformat(),
        }
        self.assertEqual(format_insight(insight, now), "[Coach] User hasn't worked out in 4 days (2 hours ago)")
        self.assertEqual(time_ago(now - timedelta(days=1, hours=1), now), "yesterday")
        self.assertEqual(time_ago(now, now), "just now")

    def test_milestone_expiry(self):
        self.assertEqual(expiry_days("goal_completed"), 14)
        self.assertEqual(expiry_days(InsightType.STREAK_ACHIEVED), 14)
        self.assertEqual(expiry_days("expense_logged"), 7)
        self.assertEqual(expiry_days("bogus"), 7)
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.assertEqual(expires_at("goal_hit", created), created + timedelta(days=14))


if __name__ == "__main__":
    unittest.main()
