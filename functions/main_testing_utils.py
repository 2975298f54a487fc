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
"""Builders for the planner objects used across main.py tests."""

from shared.types import (
    DISMISS_ACTION,
    AlertButton,
    AlertType,
    AppState,
    Goal,
    GoalDraft,
    GuardianAlert,
    InstallmentLog,
    InstallmentType,
    InstallmentStatus,
    UserProfile,
)

MOCK_EMAIL = "ada@example.com"


def create_mock_goal(
    goal_id: str = "goal1",
    installment_type: InstallmentType = InstallmentType.DAILY,
    **overrides,
) -> Goal:
    goal = Goal(
        id=goal_id,
        title="New Laptop",
        category="tech",
        total_amount=100,
        currency="USD",
        deadline="2026-02-10",
        created_at="2026-01-01T09:00:00+00:00",
        installment_type=installment_type,
        total_installments=10,
        installment_amount=10,
        reminder_time="18:00",
        reminder_day=1,
        start_date="2026-01-01",
    )
    for name, value in overrides.items():
        setattr(goal, name, value)
    return goal


def create_mock_draft(**overrides) -> GoalDraft:
    draft = GoalDraft(
        title="Trip to Accra",
        total_amount=300,
        deadline="2026-02-15",
        category="travel",
        use_buffer=False,
    )
    for name, value in overrides.items():
        setattr(draft, name, value)
    return draft


def create_mock_state(email: str = MOCK_EMAIL, goals=None) -> AppState:
    return AppState(
        current_user=UserProfile(email=email, name="Ada", currency="USD"),
        goals=list(goals or []),
        has_seen_onboarding=True,
    )


def create_mock_due_alert(goal_id: str = "goal1") -> GuardianAlert:
    return GuardianAlert(
        id=f"due-{goal_id}-1768500000000",
        goal_id=goal_id,
        title="Guardian Payment Due",
        message="Pay now.",
        type=AlertType.DUE,
        timestamp=1768500000000,
        buttons=[
            AlertButton(label="Confirm", action=InstallmentStatus.CONFIRMED),
            AlertButton(label="Wait (2hr)", action=InstallmentStatus.WAITED),
            AlertButton(label="Fail", action=InstallmentStatus.FAILED),
        ],
    )


def create_mock_reminder_alert(goal_id: str = "goal1") -> GuardianAlert:
    return GuardianAlert(
        id=f"rem-{goal_id}-1-1768485600000",
        goal_id=goal_id,
        title="Guardian Alert",
        message="Reminder 1/5",
        type=AlertType.REMINDER,
        timestamp=1768485600000,
        buttons=[AlertButton(label="I am ready", action=DISMISS_ACTION)],
    )


def create_mock_paid_log(due_date: str) -> InstallmentLog:
    return InstallmentLog(
        id=f"log-{due_date}",
        due_date=due_date,
        status=InstallmentStatus.CONFIRMED,
        amount=10,
    )
