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
"""
Installment schedule rules for savings goals.

Every function here is pure: goals are never mutated in place, and the current
time is always passed in so the rules stay deterministic under test.
"""

import math
import re
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Tuple

from shared.types import (
    Goal,
    GoalDraft,
    GoalStatus,
    InstallmentLog,
    InstallmentStatus,
    InstallmentType,
)
from shared.utils import day_string, get_unique_id
from planner.errors import GoalAlreadyCompletedError

DAYS_PER_WEEK = 7
DAYS_PER_MONTH = 30.44
DAYS_PER_YEAR = 365.25

BUFFER_MULTIPLIER = 1.05
EARLY_FINISH_DAYS = 3

WAIT_EXTENSION = timedelta(hours=2)
LATEST_WAIT_TIME = "23:58"

_REMINDER_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


@dataclass
class InstallmentPlan:
    total_periods: int
    period_amount: float
    total_calculated: float


def parse_day(value: str) -> date:
    """Parses YYYY-MM-DD, tolerating a trailing time component."""
    return date.fromisoformat(value[:10])


def parse_reminder_time(value: str) -> Tuple[int, int]:
    match = _REMINDER_TIME_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Reminder time must be HH:mm, got {value!r}")
    return int(match.group(1)), int(match.group(2))


def weekday_index(day: date) -> int:
    """Day of week with Sunday as 0, as the clients store reminder days."""
    return (day.weekday() + 1) % 7


def count_installments(
    installment_type: InstallmentType, start: date, end: date
) -> int:
    diff_days = max(1, (end - start).days)
    if installment_type == InstallmentType.DAILY:
        return diff_days
    if installment_type == InstallmentType.WEEKLY:
        return max(1, math.ceil(diff_days / DAYS_PER_WEEK))
    if installment_type == InstallmentType.MONTHLY:
        return max(1, math.ceil(diff_days / DAYS_PER_MONTH))
    if installment_type == InstallmentType.YEARLY:
        return max(1, math.ceil(diff_days / DAYS_PER_YEAR))
    raise ValueError(f"Unknown installment type: {installment_type}")


def _start_day(draft: GoalDraft, today: date) -> date:
    return parse_day(draft.start_date) if draft.start_date else today


def calculate_plan(draft: GoalDraft, today: date) -> InstallmentPlan:
    """
    Computes how many periods a goal needs and what each one costs.

    Weekly plans and subscriptions have a fixed per-period amount chosen by the
    user. Fixed goals split the target (plus the optional 5% buffer) evenly.
    """
    start = _start_day(draft, today)
    end = parse_day(draft.deadline)

    if draft.is_weekly_plan:
        total_periods = count_installments(InstallmentType.WEEKLY, start, end)
        period_amount = draft.weekly_amount or 0
    elif draft.is_subscription:
        total_periods = count_installments(InstallmentType.MONTHLY, start, end)
        period_amount = draft.monthly_amount or 0
    else:
        total_periods = count_installments(draft.installment_type, start, end)
        multiplier = BUFFER_MULTIPLIER if draft.use_buffer else 1
        period_amount = math.ceil(
            (draft.total_amount or 0) * multiplier / max(1, total_periods)
        )

    return InstallmentPlan(
        total_periods=total_periods,
        period_amount=period_amount,
        total_calculated=period_amount * total_periods,
    )


def validate_draft(draft: GoalDraft, today: date) -> None:
    if not draft.title or not draft.title.strip():
        raise ValueError("Goal title must not be empty.")
    if draft.installment_type not in set(InstallmentType):
        raise ValueError(f"Unknown installment type: {draft.installment_type}")
    parse_reminder_time(draft.reminder_time)
    if not 0 <= draft.reminder_day <= 6:
        raise ValueError("Reminder day must be between 0 (Sunday) and 6.")
    if parse_day(draft.deadline) <= _start_day(draft, today):
        raise ValueError("Deadline must be after the start date.")
    if draft.is_weekly_plan:
        if draft.weekly_amount <= 0:
            raise ValueError("Weekly amount must be positive.")
    elif draft.is_subscription:
        if draft.monthly_amount <= 0:
            raise ValueError("Monthly amount must be positive.")
    elif draft.total_amount <= 0:
        raise ValueError("Target amount must be positive.")


def validate_goal(goal: Goal) -> None:
    """Checks the schedule fields of a goal that came from a client sync."""
    if goal.installment_type not in set(InstallmentType):
        raise ValueError(
            f"Goal {goal.id}: unknown installment type {goal.installment_type!r}"
        )
    try:
        parse_reminder_time(goal.reminder_time)
        parse_day(goal.deadline)
        if goal.start_date:
            parse_day(goal.start_date)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Goal {goal.id}: {e}") from e
    if not isinstance(goal.reminder_day, int) or not 0 <= goal.reminder_day <= 6:
        raise ValueError(f"Goal {goal.id}: reminder day must be between 0 and 6.")


def create_goal(draft: GoalDraft, now: datetime) -> Goal:
    """Builds an active goal with its schedule computed from the draft."""
    today = now.date()
    validate_draft(draft, today)
    plan = calculate_plan(draft, today)
    start = _start_day(draft, today)

    total = (
        plan.total_calculated
        if draft.is_weekly_plan or draft.is_subscription
        else draft.total_amount
    )

    # Buffered goals aim to finish a few days before the real deadline.
    deadline = parse_day(draft.deadline)
    if draft.use_buffer:
        deadline = max(start, deadline - timedelta(days=EARLY_FINISH_DAYS))

    return Goal(
        id=get_unique_id(),
        title=draft.title.strip(),
        category=draft.category or "savings",
        total_amount=total,
        currency=draft.currency,
        deadline=day_string(deadline),
        created_at=now.isoformat(),
        installment_type=InstallmentType(draft.installment_type),
        total_installments=plan.total_periods,
        installment_amount=plan.period_amount,
        reminder_time=draft.reminder_time,
        reminder_day=draft.reminder_day,
        use_buffer=draft.use_buffer,
        is_subscription=draft.is_subscription,
        is_weekly_plan=draft.is_weekly_plan,
        monthly_amount=draft.monthly_amount,
        weekly_amount=draft.weekly_amount,
        start_date=day_string(start),
    )


def unpaid_amount(goal: Goal) -> float:
    return max(0, goal.total_amount - goal.paid_amount)


def remaining_installments(goal: Goal) -> int:
    return max(0, goal.total_installments - goal.paid_installments)


def installment_amount(goal: Goal) -> float:
    if goal.installment_amount:
        return goal.installment_amount
    return math.ceil(goal.total_amount / max(1, goal.total_installments))


def catch_up_amount(goal: Goal) -> float:
    """Unpaid balance spread over the installments that are still left."""
    unpaid = unpaid_amount(goal)
    if unpaid <= 0:
        return 0
    return math.ceil(unpaid / max(1, remaining_installments(goal)))


def amount_due(goal: Goal) -> float:
    return min(unpaid_amount(goal), max(installment_amount(goal), catch_up_amount(goal)))


def is_complete(goal: Goal) -> bool:
    return (
        goal.paid_installments >= goal.total_installments
        or goal.paid_amount >= goal.total_amount
    )


def is_due_on(goal: Goal, day: date) -> bool:
    if goal.installment_type == InstallmentType.DAILY:
        return True
    if goal.installment_type == InstallmentType.WEEKLY:
        return weekday_index(day) == goal.reminder_day
    if goal.installment_type == InstallmentType.MONTHLY:
        return day.day == 1
    if goal.installment_type == InstallmentType.YEARLY:
        return day.day == 1 and day.month == 1
    return False


def has_log_on(goal: Goal, day: date) -> bool:
    day_str = day_string(day)
    return any(log.due_date.startswith(day_str) for log in goal.installment_logs)


def apply_payment(goal: Goal, now: datetime) -> Goal:
    """Confirms one installment, completing the goal when nothing is left."""
    if goal.status != GoalStatus.ACTIVE or is_complete(goal):
        raise GoalAlreadyCompletedError(goal.id)

    amount = amount_due(goal)
    log = InstallmentLog(
        id=get_unique_id(),
        due_date=day_string(now),
        status=InstallmentStatus.CONFIRMED,
        amount=amount,
        confirmed_at=now.isoformat(),
    )
    updated = replace(
        goal,
        paid_amount=min(goal.paid_amount + amount, goal.total_amount),
        paid_installments=goal.paid_installments + 1,
        installment_logs=[*goal.installment_logs, log],
    )
    if is_complete(updated):
        updated = replace(updated, status=GoalStatus.COMPLETED)
    return updated


def record_missed(goal: Goal, day: date) -> Goal:
    log = InstallmentLog(
        id=f"missed-{get_unique_id()}",
        due_date=day_string(day),
        status=InstallmentStatus.FAILED,
        amount=0,
    )
    return replace(goal, installment_logs=[*goal.installment_logs, log])


def postpone_reminder(goal: Goal, now: datetime) -> Goal:
    """Pushes today's reminder two hours out, but never past midnight."""
    target = now + WAIT_EXTENSION
    if target.date() != now.date():
        reminder_time = LATEST_WAIT_TIME
    else:
        reminder_time = target.strftime("%H:%M")
    return replace(goal, reminder_time=reminder_time)


def next_installment_date(goal: Goal, today: date) -> date:
    if goal.installment_type == InstallmentType.WEEKLY:
        days_ahead = (goal.reminder_day - weekday_index(today)) % 7
        return today + timedelta(days=days_ahead)
    if goal.installment_type == InstallmentType.MONTHLY:
        if today.day == 1:
            return today
        if today.month == 12:
            return date(today.year + 1, 1, 1)
        return date(today.year, today.month + 1, 1)
    if goal.installment_type == InstallmentType.YEARLY:
        if today.day == 1 and today.month == 1:
            return today
        return date(today.year + 1, 1, 1)
    return today


def days_until(day: date, today: date) -> int:
    return (day - today).days
