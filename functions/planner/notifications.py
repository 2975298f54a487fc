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
Guardian alerts: pre-payment reminders, due prompts and missed-payment
reconciliation.
"""

import logging
import math
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple

from shared.types import (
    DISMISS_ACTION,
    AlertButton,
    AlertType,
    Goal,
    GoalStatus,
    GuardianAlert,
    InstallmentStatus,
)
from shared.utils import day_string, millis
from planner import installments

logger = logging.getLogger(__name__)

REMINDER_COUNT = 5
REMINDER_INTERVAL_MINUTES = 60
REMINDER_WINDOW_MINUTES = REMINDER_COUNT * REMINDER_INTERVAL_MINUTES


def format_amount(amount: float) -> str:
    if float(amount).is_integer():
        return str(int(amount))
    return f"{amount:.2f}"


def _minutes_of_day(now: datetime) -> int:
    return now.hour * 60 + now.minute


def _goal_started_by(goal: Goal, day: date) -> bool:
    first_day = goal.start_date or goal.created_at
    if not first_day:
        return True
    return installments.parse_day(first_day) <= day


def _reminder_alert(goal: Goal, index: int, now: datetime) -> GuardianAlert:
    return GuardianAlert(
        id=f"rem-{goal.id}-{index}-{millis(now)}",
        goal_id=goal.id,
        title="Guardian Alert",
        message=(
            f"Reminder {index}/{REMINDER_COUNT}: Your {goal.installment_type} "
            f'installment for "{goal.title}" is due in {REMINDER_COUNT - index} hours.'
        ),
        type=AlertType.REMINDER,
        timestamp=millis(now),
        buttons=[AlertButton(label="I am ready", action=DISMISS_ACTION)],
    )


def _due_alert(goal: Goal, now: datetime) -> GuardianAlert:
    amount = format_amount(installments.amount_due(goal))
    return GuardianAlert(
        id=f"due-{goal.id}-{millis(now)}",
        goal_id=goal.id,
        title="Guardian Payment Due",
        message=(
            f'Your {goal.installment_type} plan for "{goal.title}" requires '
            f"confirmation now. Pay {goal.currency}{amount} to stay on track."
        ),
        type=AlertType.DUE,
        timestamp=millis(now),
        buttons=[
            AlertButton(label="Confirm", action=InstallmentStatus.CONFIRMED),
            AlertButton(label="Wait (2hr)", action=InstallmentStatus.WAITED),
            AlertButton(label="Fail", action=InstallmentStatus.FAILED),
        ],
    )


def _missed_alert(goal: Goal, now: datetime) -> GuardianAlert:
    amount = format_amount(installments.catch_up_amount(goal))
    return GuardianAlert(
        id=f"missed-{goal.id}-{millis(now)}",
        goal_id=goal.id,
        title="Missed Payment",
        message=(
            f"You missed an installment for {goal.title}. We've redistributed "
            f"the remaining amount. Pay {goal.currency}{amount} per installment "
            "to catch up."
        ),
        type=AlertType.REMINDER,
        timestamp=millis(now),
        buttons=[AlertButton(label="Acknowledge", action=DISMISS_ACTION)],
    )


def _alerts_for_minute(
    goal: Goal, today: date, current: int, now: datetime
) -> List[GuardianAlert]:
    if not installments.is_due_on(goal, today):
        return []

    hour, minute = installments.parse_reminder_time(goal.reminder_time)
    target = hour * 60 + minute
    reminder_start = target - REMINDER_WINDOW_MINUTES

    alerts = []
    for index in range(1, REMINDER_COUNT + 1):
        scheduled = reminder_start + index * REMINDER_INTERVAL_MINUTES
        if current == scheduled and scheduled < target:
            alerts.append(_reminder_alert(goal, index, now))

    if current == target and not installments.has_log_on(goal, today):
        alerts.append(_due_alert(goal, now))
    return alerts


def check_installment_status(goals: List[Goal], now: datetime) -> List[GuardianAlert]:
    """
    Returns the alerts that fire at this exact minute.

    Meant to be evaluated once per wall-clock minute. Reminders run hourly in
    the five hours before a goal's reminder time; the due prompt fires at the
    reminder time unless something was already logged for today.
    """
    alerts: List[GuardianAlert] = []
    today = now.date()
    current = _minutes_of_day(now)

    for goal in goals:
        if goal.status != GoalStatus.ACTIVE:
            continue
        try:
            alerts.extend(_alerts_for_minute(goal, today, current, now))
        except (TypeError, ValueError) as e:
            logger.warning("Skipping goal %s: %s", goal.id, e)

    return alerts


def _reconcile_goal(
    goal: Goal, yesterday: date, now: datetime
) -> Tuple[Goal, Optional[GuardianAlert]]:
    yesterday_str = day_string(yesterday)
    if (
        goal.status != GoalStatus.ACTIVE
        or not installments.is_due_on(goal, yesterday)
        or not _goal_started_by(goal, yesterday)
        or any(log.due_date == yesterday_str for log in goal.installment_logs)
    ):
        return goal, None

    deadline = datetime.combine(
        installments.parse_day(goal.deadline), time(), tzinfo=now.tzinfo
    )
    updated = installments.record_missed(goal, yesterday)
    remaining_days = math.ceil((deadline - now).total_seconds() / 86400)
    if remaining_days > 0 and installments.remaining_installments(updated) > 0:
        return updated, _missed_alert(updated, now)
    return updated, None


def handle_missed_payments(
    goals: List[Goal], now: datetime
) -> Tuple[List[Goal], List[GuardianAlert]]:
    """
    Logs a failed installment for every goal that was due yesterday but saw no
    action, and tells the user the new per-installment amount.
    """
    yesterday = now.date() - timedelta(days=1)
    alerts: List[GuardianAlert] = []
    updated_goals: List[Goal] = []

    for goal in goals:
        try:
            updated, alert = _reconcile_goal(goal, yesterday, now)
        except (TypeError, ValueError) as e:
            logger.warning("Skipping goal %s: %s", goal.id, e)
            updated, alert = goal, None
        updated_goals.append(updated)
        if alert:
            alerts.append(alert)

    return updated_goals, alerts


def count_missed(goals: List[Goal]) -> int:
    return sum(
        1
        for goal in goals
        for log in goal.installment_logs
        if log.status == InstallmentStatus.FAILED
    )
