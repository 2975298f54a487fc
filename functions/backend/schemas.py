"""
Pydantic schemas for the planner FastAPI backend.

Request bodies use snake_case. User state, goals and alerts are returned in
the camelCase document form the clients store and sync.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from shared.constants import (
    MAX_CATEGORY_LABEL_LENGTH,
    MAX_CHAT_HISTORY,
    MAX_CHAT_MESSAGE_LENGTH,
    MAX_EMAIL_LENGTH,
    MAX_GOAL_TITLE_LENGTH,
    MAX_NAME_LENGTH,
    MAX_PASSCODE_LENGTH,
    MAX_SPEECH_TEXT_LENGTH,
)


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=MAX_EMAIL_LENGTH)
    passcode: str = Field(..., min_length=1, max_length=MAX_PASSCODE_LENGTH)
    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)


class LoginRequest(BaseModel):
    email: str = Field(..., max_length=MAX_EMAIL_LENGTH)
    passcode: str = Field(..., min_length=1, max_length=MAX_PASSCODE_LENGTH)


class PasscodeLoginRequest(BaseModel):
    passcode: str = Field(..., min_length=1, max_length=MAX_PASSCODE_LENGTH)


class StateResponse(BaseModel):
    state: dict


class GoalDraftPayload(BaseModel):
    title: str = Field(..., max_length=MAX_GOAL_TITLE_LENGTH)
    total_amount: float = Field(default=0, ge=0)
    deadline: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}")
    category: str = "savings"
    currency: str = "USD"
    installment_type: Literal["daily", "weekly", "monthly", "yearly"] = "daily"
    use_buffer: bool = True
    is_subscription: bool = False
    is_weekly_plan: bool = False
    monthly_amount: float = Field(default=0, ge=0)
    weekly_amount: float = Field(default=0, ge=0)
    start_date: Optional[str] = Field(default=None, pattern=r"^\d{4}-\d{2}-\d{2}")
    reminder_time: str = Field(default="18:00", pattern=r"^\d{2}:\d{2}$")
    reminder_day: int = Field(default=1, ge=0, le=6)


class PlanPreviewResponse(BaseModel):
    total_periods: int
    period_amount: float
    total_calculated: float


class GoalResponse(BaseModel):
    goal: dict


class CategoryRequest(BaseModel):
    label: str = Field(..., min_length=1, max_length=MAX_CATEGORY_LABEL_LENGTH)
    icon: str = Field(default="✨", max_length=8)


class ProfileRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    currency: str
    avatar: Optional[str] = None


class AlertsResponse(BaseModel):
    alerts: list[dict]


class AlertActionRequest(BaseModel):
    action: Literal["confirmed", "waited", "failed", "dismiss"]


class AlertActionResponse(BaseModel):
    state: dict
    spoken_message: Optional[str] = None


class DashboardResponse(BaseModel):
    summary: dict
    todos: list[dict]
    next_due: Optional[dict] = None
    goal_progress: list[dict]
    categories: list[dict]


class HistoryResponse(BaseModel):
    completed: list[dict]
    failed: list[dict]


class ChatMessagePayload(BaseModel):
    role: Literal["user", "model"]
    text: str = Field(..., max_length=MAX_CHAT_MESSAGE_LENGTH)
    timestamp: Optional[str] = None


class ChatRequest(BaseModel):
    email: str
    messages: list[ChatMessagePayload] = Field(..., max_length=MAX_CHAT_HISTORY)


class ChatResponse(BaseModel):
    message: dict


class SpeakRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=MAX_SPEECH_TEXT_LENGTH)


class SignUrlResponse(BaseModel):
    url: str


class AvatarUploadResponse(BaseModel):
    avatar: str
    url: str


class StatusResponse(BaseModel):
    status: Literal["ok"]
