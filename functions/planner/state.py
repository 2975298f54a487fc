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
"""Operations on a user's AppState: goals, categories, profile and alerts."""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import List, Optional, Tuple

from shared.constants import (
    DEFAULT_AVATAR_URL,
    DEFAULT_CURRENCY,
    MAX_CATEGORY_LABEL_LENGTH,
    SUPPORTED_CURRENCIES,
)
from shared.types import (
    DISMISS_ACTION,
    AppState,
    Category,
    Goal,
    GoalStatus,
    GuardianAlert,
    InstallmentStatus,
    UserProfile,
)
from shared.utils import millis
from planner import installments, notifications
from planner.errors import GoalNotFoundError, UnknownAlertActionError

CLEANUP_HOUR = 0
CLEANUP_MINUTE = 1

PAYMENT_CONFIRMED_MESSAGE = "Payment deducted from mission timeline. Well done!"
PAYMENT_FAILED_MESSAGE = "Installment marked as missed. Your Guardian is still with you."


@dataclass
class AlertActionResult:
    state: AppState
    spoken_message: Optional[str] = None


def new_app_state(email: str, name: str) -> AppState:
    return AppState(
        current_user=UserProfile(
            email=email,
            name=name,
            currency=DEFAULT_CURRENCY,
            avatar=DEFAULT_AVATAR_URL.format(email=email),
        ),
    )


def find_goal(state: AppState, goal_id: str) -> Goal:
    for goal in state.goals:
        if goal.id == goal_id:
            return goal
    raise GoalNotFoundError(goal_id)


def add_goal(state: AppState, goal: Goal) -> AppState:
    return replace(state, goals=[goal, *state.goals])


def add_category(state: AppState, label: str, icon: str, now: datetime) -> AppState:
    label = (label or "").strip()
    if not label:
        raise ValueError("Category label must not be empty.")
    if len(label) > MAX_CATEGORY_LABEL_LENGTH:
        raise ValueError("Category label is too long.")
    category = Category(id=f"custom-{millis(now)}", label=label, icon=icon or "✨")
    return replace(state, custom_categories=[*state.custom_categories, category])


def update_goal(state: AppState, goal: Goal, finished: bool = False) -> AppState:
    """Replaces a goal; finished goals move from the active list into history."""
    goals = [goal if g.id == goal.id else g for g in state.goals]
    if not finished:
        return replace(state, goals=goals)
    return replace(
        state,
        goals=[g for g in goals if g.id != goal.id],
        history=[goal, *state.history],
    )


def update_profile(state: AppState, profile: UserProfile) -> AppState:
    if profile.currency not in SUPPORTED_CURRENCIES:
        raise ValueError(f"Unsupported currency: {profile.currency}")
    if state.current_user and profile.email != state.current_user.email:
        raise ValueError("Profile email cannot be changed.")
    return replace(state, current_user=profile)


def validate_state(state: AppState) -> None:
    """Raises ValueError when a synced state holds a goal the engine cannot schedule."""
    for goal in state.goals:
        installments.validate_goal(goal)


def complete_onboarding(state: AppState) -> AppState:
    return replace(state, has_seen_onboarding=True)


def pay_installment(state: AppState, goal_id: str, now: datetime) -> Tuple[AppState, Goal]:
    goal = installments.apply_payment(find_goal(state, goal_id), now)
    finished = goal.status == GoalStatus.COMPLETED
    return update_goal(state, goal, finished), goal


def apply_alert_action(
    state: AppState, alert: GuardianAlert, action: str, now: datetime
) -> AlertActionResult:
    """Resolves the user's answer to a guardian alert."""
    if action not in {button.action for button in alert.buttons}:
        raise UnknownAlertActionError(action)
    if action == DISMISS_ACTION:
        return AlertActionResult(state=state)

    if action == InstallmentStatus.WAITED:
        goal = installments.postpone_reminder(find_goal(state, alert.goal_id), now)
        return AlertActionResult(
            state=update_goal(state, goal),
            spoken_message=f"Extension granted to {goal.reminder_time}.",
        )

    if action == InstallmentStatus.CONFIRMED:
        updated_state, _ = pay_installment(state, alert.goal_id, now)
        return AlertActionResult(
            state=updated_state, spoken_message=PAYMENT_CONFIRMED_MESSAGE
        )

    if action == InstallmentStatus.FAILED:
        goal = installments.record_missed(find_goal(state, alert.goal_id), now.date())
        return AlertActionResult(
            state=update_goal(state, goal), spoken_message=PAYMENT_FAILED_MESSAGE
        )

    raise UnknownAlertActionError(action)


def is_reconciliation_due(now: datetime) -> bool:
    """True from 00:01 onward; yesterday's misses are reconciled at most once."""
    return (now.hour, now.minute) >= (CLEANUP_HOUR, CLEANUP_MINUTE)


def run_alert_cycle(
    state: AppState, now: datetime
) -> Tuple[AppState, List[GuardianAlert]]:
    """One tick of the guardian engine for a single user."""
    alerts = notifications.check_installment_status(state.goals, now)
    if is_reconciliation_due(now):
        goals, missed_alerts = notifications.handle_missed_payments(state.goals, now)
        if goals != state.goals:
            state = replace(state, goals=goals)
        alerts.extend(missed_alerts)
    return state, alerts
