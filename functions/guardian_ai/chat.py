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
"""Conversations with the Financial Guardian assistant."""

import logging
from datetime import datetime, timezone
from typing import List

from models import gemini
from models import prompts
from shared.constants import (
    DEVELOPER_EMAIL,
    DEVELOPER_NAME,
    DEVELOPER_PHONES,
    MAX_CHAT_HISTORY,
)
from shared.types import AppState, ChatMessage
from planner import notifications

logger = logging.getLogger(__name__)

USER_ROLE = "user"
MODEL_ROLE = "model"

DEVELOPER_KEYWORDS = ("developer", "who made", "contact")
ENCOURAGEMENT_KEYWORDS = ("missed", "failed", "encourage")


def _model_message(text: str) -> ChatMessage:
    return ChatMessage(
        role=MODEL_ROLE, text=text, timestamp=datetime.now(timezone.utc).isoformat()
    )


def greeting() -> ChatMessage:
    return _model_message(prompts.GUARDIAN_GREETING)


def build_system_instruction(state: AppState) -> str:
    user_name = state.current_user.name if state.current_user else "Guest"
    return prompts.GUARDIAN_SYSTEM_INSTRUCTION.format(
        user_name=user_name,
        active_goals=len(state.goals),
        history_count=len(state.history),
        total_missed=notifications.count_missed(state.goals),
        developer_phones="/".join(DEVELOPER_PHONES),
        developer_email=DEVELOPER_EMAIL,
    )


def offline_reply(query: str) -> str:
    """Keyword answers used whenever the model is unreachable."""
    q = query.lower()
    if any(keyword in q for keyword in DEVELOPER_KEYWORDS):
        return prompts.OFFLINE_DEVELOPER_RESPONSE.format(
            developer_name=DEVELOPER_NAME,
            developer_phones=" or ".join(DEVELOPER_PHONES),
            developer_email=DEVELOPER_EMAIL,
        )
    if any(keyword in q for keyword in ENCOURAGEMENT_KEYWORDS):
        return prompts.OFFLINE_ENCOURAGEMENT_RESPONSE
    return prompts.OFFLINE_DEFAULT_RESPONSE


def _conversation_for_model(messages: List[ChatMessage]) -> List[ChatMessage]:
    recent = messages[-MAX_CHAT_HISTORY:]
    # Gemini expects the conversation to open with a user turn.
    while recent and recent[0].role != USER_ROLE:
        recent = recent[1:]
    return recent


def generate_guardian_reply(
    state: AppState, messages: List[ChatMessage], api_key: str | None = None
) -> ChatMessage:
    """
    Answers the last user message in the conversation.

    Falls back to the offline keyword replies when no API key is configured or
    the model call fails.
    """
    if not messages or messages[-1].role != USER_ROLE:
        raise ValueError("Conversation must end with a user message.")
    query = messages[-1].text

    if not gemini.has_api_key(api_key):
        return _model_message(offline_reply(query))

    try:
        text = gemini.call_chat(
            _conversation_for_model(messages),
            build_system_instruction(state),
            api_key=api_key,
        )
    except Exception as e:
        logger.warning("Guardian model call failed, answering offline: %s", e)
        return _model_message(offline_reply(query))

    return _model_message(text or prompts.GUARDIAN_EMPTY_RESPONSE)
