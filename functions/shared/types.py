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

from dataclasses import dataclass, field
from enum import StrEnum
from typing import List, Optional


class InstallmentType(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class InstallmentStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    WAITED = "waited"
    FAILED = "failed"


class GoalStatus(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class AlertType(StrEnum):
    REMINDER = "reminder"
    DUE = "due"
    ENCOURAGEMENT = "encouragement"


# Alert buttons carry either an InstallmentStatus value or this.
DISMISS_ACTION = "dismiss"


@dataclass
class InstallmentLog:
    id: str
    due_date: str  # YYYY-MM-DD
    status: InstallmentStatus
    amount: float
    confirmed_at: Optional[str] = None


@dataclass
class Category:
    id: str
    label: str
    icon: str


DEFAULT_GOAL_CATEGORIES: List[Category] = [
    Category(id="savings", label="Savings", icon="💰"),
    Category(id="travel", label="Travel", icon="✈️"),
    Category(id="tech", label="Gadgets/Tech", icon="📱"),
    Category(id="education", label="Education", icon="📚"),
    Category(id="home", label="Home/Rent", icon="🏠"),
    Category(id="emergency", label="Emergency", icon="🚨"),
    Category(id="other", label="Other", icon="✨"),
]


@dataclass
class GoalDraft:
    """User input for a new goal, before any schedule fields are computed."""

    title: str
    total_amount: float
    deadline: str  # YYYY-MM-DD
    category: str = "savings"
    currency: str = "USD"
    installment_type: InstallmentType = InstallmentType.DAILY
    use_buffer: bool = True
    is_subscription: bool = False
    is_weekly_plan: bool = False
    monthly_amount: float = 0
    weekly_amount: float = 0
    start_date: Optional[str] = None
    reminder_time: str = "18:00"
    reminder_day: int = 1


@dataclass
class Goal:
    id: str
    title: str
    category: str
    total_amount: float
    currency: str
    deadline: str  # YYYY-MM-DD
    created_at: str  # ISO timestamp
    installment_type: InstallmentType
    total_installments: int
    reminder_time: str  # HH:mm
    reminder_day: int  # 0-6, Sunday first
    paid_amount: float = 0
    paid_installments: int = 0
    installment_amount: float = 0
    use_buffer: bool = True
    status: GoalStatus = GoalStatus.ACTIVE
    is_subscription: bool = False
    is_weekly_plan: bool = False
    monthly_amount: float = 0
    weekly_amount: float = 0
    start_date: Optional[str] = None
    installment_logs: List[InstallmentLog] = field(default_factory=list)


@dataclass
class UserProfile:
    email: str
    name: str
    currency: str = "USD"
    avatar: str = ""


@dataclass
class AppState:
    current_user: Optional[UserProfile] = None
    goals: List[Goal] = field(default_factory=list)
    history: List[Goal] = field(default_factory=list)
    has_seen_onboarding: bool = False
    custom_categories: List[Category] = field(default_factory=list)


@dataclass
class AlertButton:
    label: str
    action: str  # InstallmentStatus value or DISMISS_ACTION


@dataclass
class GuardianAlert:
    id: str
    goal_id: str
    title: str
    message: str
    type: AlertType
    timestamp: int  # epoch millis
    buttons: List[AlertButton] = field(default_factory=list)


@dataclass
class ChatMessage:
    role: str  # "user" | "model"
    text: str
    timestamp: Optional[str] = None
