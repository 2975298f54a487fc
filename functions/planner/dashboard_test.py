# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import unittest
from datetime import date, datetime, timezone

from planner import dashboard
from shared.types import Category, Goal, GoalStatus, InstallmentType

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def _goal(goal_id: str, **overrides) -> Goal:
    goal = Goal(
        id=goal_id,
        title=f"Goal {goal_id}",
        category="tech",
        total_amount=100,
        currency="USD",
        deadline="2026-02-10",
        created_at="2026-01-01T09:00:00+00:00",
        installment_type=InstallmentType.DAILY,
        total_installments=10,
        installment_amount=10,
        reminder_time="18:00",
        reminder_day=1,
    )
    for name, value in overrides.items():
        setattr(goal, name, value)
    return goal


class DashboardTest(unittest.TestCase):

    def test_all_categories_appends_custom(self):
        custom = Category(id="custom-1", label="Wedding", icon="💍")
        categories = dashboard.all_categories([custom])
        self.assertEqual(categories[0].id, "savings")
        self.assertEqual(categories[-1], custom)

    def test_active_goals_filters_by_category(self):
        goals = [
            _goal("a"),
            _goal("b", category="travel"),
            _goal("c", status=GoalStatus.COMPLETED),
        ]
        self.assertEqual([g.id for g in dashboard.active_goals(goals)], ["a", "b"])
        self.assertEqual(
            [g.id for g in dashboard.active_goals(goals, "travel")], ["b"]
        )

    def test_summarize(self):
        goals = [
            _goal("a", paid_amount=50),
            _goal("b", total_amount=300, paid_amount=50),
            _goal("c", total_amount=1000, status=GoalStatus.FAILED),
        ]
        summary = dashboard.summarize(goals, "LRD")
        self.assertEqual(summary.currency, "LRD")
        self.assertEqual(summary.total_target, 400)
        self.assertEqual(summary.total_paid, 100)
        self.assertEqual(summary.progress_percent, 25)
        self.assertEqual(summary.active_goal_count, 2)
        self.assertEqual(
            [(s.name, s.value) for s in summary.chart_data],
            [("Paid", 100), ("Remaining", 300)],
        )

    def test_summarize_empty(self):
        summary = dashboard.summarize([], "USD")
        self.assertEqual(summary.progress_percent, 0)
        self.assertEqual(summary.chart_data[1].value, 1)

    def test_daily_todos(self):
        goals = [_goal(str(i)) for i in range(7)]
        goals[0].deadline = "2026-01-10"
        todos = dashboard.daily_todos(goals, NOW)
        self.assertEqual(len(todos), 5)
        self.assertEqual(todos[0].due, "Overdue!")
        self.assertEqual(todos[1].task, "Deposit for Goal 1")
        # Feb 10 00:00 is 25.5 days after Jan 15 12:00.
        self.assertEqual(todos[1].due, "26 days left")

    def test_next_due_picks_earliest(self):
        goals = [
            _goal("monthly", installment_type=InstallmentType.MONTHLY),
            _goal("weekly", installment_type=InstallmentType.WEEKLY, reminder_day=6),
        ]
        due = dashboard.next_due(goals, date(2026, 1, 15))
        self.assertEqual(due.goal_id, "weekly")
        self.assertEqual(due.date, "2026-01-17")
        self.assertEqual(due.amount, 10)
        self.assertEqual(due.label, "2 days left")

    def test_next_due_today(self):
        due = dashboard.next_due([_goal("daily")], date(2026, 1, 15))
        self.assertEqual(due.label, "Due today!")

    def test_next_due_none(self):
        self.assertIsNone(dashboard.next_due([], date(2026, 1, 15)))

    def test_goal_progress(self):
        progress = dashboard.goal_progress(_goal("a", paid_installments=3))
        self.assertEqual(progress.installment_value, 10)
        self.assertEqual(progress.remaining_payments, 7)
        self.assertEqual(progress.progress_percent, 30)

    def test_merge_history_dedupes_and_sorts(self):
        archived = _goal(
            "a", status=GoalStatus.COMPLETED, created_at="2026-01-02T00:00:00"
        )
        failed = _goal(
            "b", status=GoalStatus.FAILED, created_at="2026-01-05T00:00:00+00:00"
        )
        newer = _goal(
            "c", status=GoalStatus.COMPLETED, created_at="2026-01-10T00:00:00+00:00"
        )
        summary = dashboard.merge_history(
            [archived, failed, newer, _goal("d")], [archived]
        )
        self.assertEqual([g.id for g in summary.completed], ["c", "a"])
        self.assertEqual([g.id for g in summary.failed], ["b"])


if __name__ == "__main__":
    unittest.main()
