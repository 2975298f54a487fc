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
"""Read-only summaries behind the dashboard and history screens."""

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import List, Optional

from shared.types import DEFAULT_GOAL_CATEGORIES, Category, Goal, GoalStatus
from planner import installments

ALL_CATEGORIES = "all"
MAX_TODOS = 5


@dataclass
class ChartSlice:
    name: str
    value: float


@dataclass
class DashboardSummary:
    currency: str
    total_target: float
    total_paid: float
    progress_percent: int
    active_goal_count: int
    chart_data: List[ChartSlice] = field(default_factory=list)


@dataclass
class DailyTodo:
    goal_id: str
    task: str
    due: str
    category: str
    currency: str
    is_subscription: bool


@dataclass
class NextDue:
    goal_id: str
    title: str
    date: str
    amount: float
    currency: str
    label: str


@dataclass
class GoalProgress:
    goal_id: str
    installment_value: float
    remaining_payments: int
    progress_percent: int


@dataclass
class HistorySummary:
    completed: List[Goal]
    failed: List[Goal]


def all_categories(custom: List[Category]) -> List[Category]:
    return [*DEFAULT_GOAL_CATEGORIES, *custom]


def active_goals(goals: List[Goal], category: str = ALL_CATEGORIES) -> List[Goal]:
    active = [g for g in goals if g.status == GoalStatus.ACTIVE]
    if category == ALL_CATEGORIES:
        return active
    return [g for g in active if g.category == category]


def summarize(goals: List[Goal], currency: str) -> DashboardSummary:
    # Goals may use different currencies; totals are reported in the
    # profile currency without conversion.
    active = active_goals(goals)
    total_target = sum(g.total_amount for g in active)
    total_paid = sum(g.paid_amount for g in active)
    progress = round(total_paid / total_target * 100) if total_target > 0 else 0
    return DashboardSummary(
        currency=currency,
        total_target=total_target,
        total_paid=total_paid,
        progress_percent=progress,
        active_goal_count=len(active),
        chart_data=[
            ChartSlice(name="Paid", value=total_paid or 0),
            ChartSlice(name="Remaining", value=max(0, total_target - total_paid) or 1),
        ],
    )


def _days_left(deadline: str, now: datetime) -> int:
    deadline_dt = datetime.combine(
        installments.parse_day(deadline), datetime.min.time(), tzinfo=now.tzinfo
    )
    return math.ceil((deadline_dt - now).total_seconds() / 86400)


def daily_todos(
    goals: List[Goal], now: datetime, category: str = ALL_CATEGORIES
) -> List[DailyTodo]:
    todos = []
    for goal in active_goals(goals, category)[:MAX_TODOS]:
        days_left = _days_left(goal.deadline, now)
        todos.append(
            DailyTodo(
                goal_id=goal.id,
                task=f"Deposit for {goal.title}",
                due="Overdue!" if days_left <= 0 else f"{days_left} days left",
                category=goal.category,
                currency=goal.currency,
                is_subscription=goal.is_subscription,
            )
        )
    return todos


def next_due(goals: List[Goal], today: date) -> Optional[NextDue]:
    """The active goal whose next installment comes first (earliest listed wins ties)."""
    earliest: Optional[Goal] = None
    earliest_date: Optional[date] = None
    for goal in active_goals(goals):
        candidate = installments.next_installment_date(goal, today)
        if earliest_date is None or candidate < earliest_date:
            earliest, earliest_date = goal, candidate
    if earliest is None:
        return None

    days = installments.days_until(earliest_date, today)
    return NextDue(
        goal_id=earliest.id,
        title=earliest.title,
        date=earliest_date.isoformat(),
        amount=installments.installment_amount(earliest),
        currency=earliest.currency,
        label=f"{days} days left" if days > 0 else "Due today!",
    )


def goal_progress(goal: Goal) -> GoalProgress:
    total = max(1, goal.total_installments)
    return GoalProgress(
        goal_id=goal.id,
        installment_value=installments.installment_amount(goal),
        remaining_payments=installments.remaining_installments(goal),
        progress_percent=round(goal.paid_installments / total * 100),
    )


def _created_at(goal: Goal) -> datetime:
    created = datetime.fromisoformat(goal.created_at)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created


def merge_history(goals: List[Goal], history: List[Goal]) -> HistorySummary:
    finished_in_session = [
        g for g in goals if g.status in (GoalStatus.COMPLETED, GoalStatus.FAILED)
    ]
    seen = set()
    unique: List[Goal] = []
    for goal in [*history, *finished_in_session]:
        if goal.id in seen:
            continue
        seen.add(goal.id)
        unique.append(goal)

    unique.sort(key=_created_at, reverse=True)
    return HistorySummary(
        completed=[g for g in unique if g.status == GoalStatus.COMPLETED],
        failed=[g for g in unique if g.status == GoalStatus.FAILED],
    )
