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

# Cloud functions for the Smart Planner backend - accounts, goals, guardian
# alerts and the guardian assistant.
#
# This file containing Python cloud functions must be named main.py.
# See https://cloud.google.com/run/docs/write-functions#python for more info.

# Standard library imports
import base64
import os
from datetime import datetime, timedelta, timezone
from typing import Callable, Tuple, TypeVar
from zoneinfo import ZoneInfo

# Third-party library imports
from firebase_admin import initialize_app, firestore
from firebase_functions import https_fn, logger, options, scheduler_fn
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.api_core import exceptions

# Local application imports
from guardian_ai import chat, tts
from planner import installments
from planner import state as app_state
from planner.errors import (
    GoalAlreadyCompletedError,
    GoalNotFoundError,
    UnknownAlertActionError,
)
from shared.constants import (
    CHAT_LOG_RETENTION_DAYS,
    MAX_CHAT_HISTORY,
    MAX_CHAT_MESSAGE_LENGTH,
    MAX_EMAIL_LENGTH,
    MAX_NAME_LENGTH,
    MAX_PASSCODE_LENGTH,
    MAX_SPEECH_TEXT_LENGTH,
)
from shared.firebase_constants import (
    ALERTS_COLLECTION,
    CHAT_LOGS_COLLECTION,
    USERS_COLLECTION,
)
from shared.json_utils import from_camel_dict, to_camel_dict
from shared.passcodes import check_passcode, hash_passcode
from shared.types import AppState, ChatMessage, GoalDraft, GuardianAlert

PLANNER_TIMEZONE = os.environ.get("TIMEZONE", "UTC")

T = TypeVar("T")

initialize_app()


def _is_locally_emulated() -> bool:
    """Returns True if the function is running in the local emulator."""
    return os.environ.get("FUNCTIONS_EMULATOR") == "true"


def _now() -> datetime:
    return datetime.now(ZoneInfo(PLANNER_TIMEZONE))


def _scheduled_now(event: scheduler_fn.ScheduledEvent) -> datetime:
    """The minute the job was scheduled for, which may lag behind execution."""
    scheduled = event.schedule_time
    if scheduled is None:
        return _now()
    if scheduled.tzinfo is None:
        scheduled = scheduled.replace(tzinfo=timezone.utc)
    return scheduled.astimezone(ZoneInfo(PLANNER_TIMEZONE))


def _invalid_argument(message: str) -> https_fn.HttpsError:
    return https_fn.HttpsError(https_fn.FunctionsErrorCode.INVALID_ARGUMENT, message)


def _require_string(data: dict, name: str, max_length: int) -> str:
    value = data.get(name)
    if not value or not isinstance(value, str):
        raise _invalid_argument(f"Must specify {name} parameter.")
    if len(value) > max_length:
        raise _invalid_argument(f"Incorrect {name} length.")
    return value


def _user_ref(db, email: str):
    return db.collection(USERS_COLLECTION).document(email)


def _load_state(email: str) -> AppState:
    db = firestore.client()
    snapshot = _user_ref(db, email).get()
    if not snapshot.exists:
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.NOT_FOUND, "User not found."
        )
    return from_camel_dict(AppState, snapshot.to_dict()["state"])


def _update_state(email: str, mutate: Callable[[AppState], Tuple[AppState, T]]) -> T:
    """
    Read-modify-write of a user's state inside a Firestore transaction.

    `mutate` returns the new state and a result for the caller; the document
    is only written when the state object changed.
    """
    db = firestore.client()
    transaction = db.transaction()
    user_ref = _user_ref(db, email)

    @firestore.transactional
    def _update_transaction(transaction, doc_ref):
        snapshot = doc_ref.get(transaction=transaction)
        if not snapshot.exists:
            raise https_fn.HttpsError(
                https_fn.FunctionsErrorCode.NOT_FOUND, "User not found."
            )
        state = from_camel_dict(AppState, snapshot.to_dict()["state"])
        updated, result = mutate(state)
        if updated is not state:
            transaction.update(doc_ref, {"state": to_camel_dict(updated)})
        return result

    return _update_transaction(transaction, user_ref)


@https_fn.on_call(memory=options.MemoryOption.MB_512)
def register_user(req: https_fn.CallableRequest) -> dict:
    """
    Creates an account with a fresh planner state.

    Args:
        req (https_fn.CallableRequest): The request, containing email, passcode and name.

    Returns:
        The new AppState in camelCase form.
    """
    email = _require_string(req.data, "email", MAX_EMAIL_LENGTH)
    passcode = _require_string(req.data, "passcode", MAX_PASSCODE_LENGTH)
    name = _require_string(req.data, "name", MAX_NAME_LENGTH)

    state = app_state.new_app_state(email, name)
    db = firestore.client()
    try:
        _user_ref(db, email).create(
            {
                "passcode": hash_passcode(passcode),
                "state": to_camel_dict(state),
                "createdTimestamp": SERVER_TIMESTAMP,
            }
        )
    except exceptions.AlreadyExists:
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.ALREADY_EXISTS,
            "Email already exists in vault.",
        )

    logger.info(f"User registered successfully: {email}")
    return to_camel_dict(state)


@https_fn.on_call(memory=options.MemoryOption.MB_512)
def login_user(req: https_fn.CallableRequest) -> dict:
    email = _require_string(req.data, "email", MAX_EMAIL_LENGTH)
    passcode = _require_string(req.data, "passcode", MAX_PASSCODE_LENGTH)

    db = firestore.client()
    snapshot = _user_ref(db, email).get()
    user_data = snapshot.to_dict() if snapshot.exists else None
    if not user_data or not check_passcode(passcode, user_data.get("passcode", "")):
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.UNAUTHENTICATED, "Invalid credentials."
        )
    return user_data["state"]


@https_fn.on_call(memory=options.MemoryOption.MB_512)
def sync_user_data(req: https_fn.CallableRequest) -> dict:
    """Replaces the stored state with the client's copy."""
    state_dict = req.data.get("state")
    if not state_dict:
        raise _invalid_argument("Must specify state parameter.")
    try:
        state = from_camel_dict(AppState, state_dict)
    except Exception as e:
        raise _invalid_argument(f"Invalid state: {e}")
    if not state.current_user:
        raise _invalid_argument("State has no current user.")
    try:
        app_state.validate_state(state)
    except ValueError as e:
        raise _invalid_argument(f"Invalid state: {e}")

    return _update_state(
        state.current_user.email, lambda _: (state, to_camel_dict(state))
    )


@https_fn.on_call(memory=options.MemoryOption.MB_512)
def create_goal(req: https_fn.CallableRequest) -> dict:
    """
    Creates a goal with its installment schedule computed server-side.

    Args:
        req (https_fn.CallableRequest): The request, containing email and the goal draft.

    Returns:
        The created Goal in camelCase form.
    """
    email = _require_string(req.data, "email", MAX_EMAIL_LENGTH)
    draft_dict = req.data.get("goal")
    if not draft_dict:
        raise _invalid_argument("Must specify goal parameter.")
    try:
        draft = from_camel_dict(GoalDraft, draft_dict)
    except Exception as e:
        raise _invalid_argument(f"Invalid goal: {e}")

    now = _now()

    def _add_goal(state: AppState):
        try:
            goal = installments.create_goal(draft, now)
        except ValueError as e:
            raise _invalid_argument(str(e))
        return app_state.add_goal(state, goal), goal

    goal = _update_state(email, _add_goal)
    return to_camel_dict(goal)


@https_fn.on_call(memory=options.MemoryOption.MB_512)
def mark_installment_paid(req: https_fn.CallableRequest) -> dict:
    email = _require_string(req.data, "email", MAX_EMAIL_LENGTH)
    goal_id = _require_string(req.data, "goalId", 64)
    now = _now()

    def _pay(state: AppState):
        try:
            return app_state.pay_installment(state, goal_id, now)
        except GoalNotFoundError as e:
            raise https_fn.HttpsError(https_fn.FunctionsErrorCode.NOT_FOUND, str(e))
        except GoalAlreadyCompletedError as e:
            raise https_fn.HttpsError(
                https_fn.FunctionsErrorCode.FAILED_PRECONDITION, str(e)
            )

    goal = _update_state(email, _pay)
    return to_camel_dict(goal)


@https_fn.on_call(memory=options.MemoryOption.MB_512)
def list_alerts(req: https_fn.CallableRequest) -> dict:
    email = _require_string(req.data, "email", MAX_EMAIL_LENGTH)
    db = firestore.client()
    alerts = [
        snapshot.to_dict()
        for snapshot in _user_ref(db, email).collection(ALERTS_COLLECTION).stream()
    ]
    alerts.sort(key=lambda alert: alert.get("timestamp", 0))
    return {"alerts": alerts}


@https_fn.on_call(memory=options.MemoryOption.MB_512)
def handle_alert_action(req: https_fn.CallableRequest) -> dict:
    """
    Applies the user's answer (confirm, wait, fail or dismiss) to an alert.

    Args:
        req (https_fn.CallableRequest): The request, containing email, alertId and action.

    Returns:
        The updated state and the message to speak back, if any.
    """
    email = _require_string(req.data, "email", MAX_EMAIL_LENGTH)
    alert_id = _require_string(req.data, "alertId", 128)
    action = _require_string(req.data, "action", 16)

    db = firestore.client()
    transaction = db.transaction()
    user_ref = _user_ref(db, email)
    alert_ref = user_ref.collection(ALERTS_COLLECTION).document(alert_id)
    now = _now()

    # An alert is answered at most once: it is read and deleted in the state
    # transaction.
    @firestore.transactional
    def _resolve_transaction(transaction):
        alert_snapshot = alert_ref.get(transaction=transaction)
        if not alert_snapshot.exists:
            raise https_fn.HttpsError(
                https_fn.FunctionsErrorCode.NOT_FOUND, "Alert not found."
            )
        user_snapshot = user_ref.get(transaction=transaction)
        if not user_snapshot.exists:
            raise https_fn.HttpsError(
                https_fn.FunctionsErrorCode.NOT_FOUND, "User not found."
            )
        alert = from_camel_dict(GuardianAlert, alert_snapshot.to_dict())
        state = from_camel_dict(AppState, user_snapshot.to_dict()["state"])
        try:
            result = app_state.apply_alert_action(state, alert, action, now)
        except UnknownAlertActionError as e:
            raise _invalid_argument(str(e))
        except (GoalNotFoundError, GoalAlreadyCompletedError) as e:
            raise https_fn.HttpsError(
                https_fn.FunctionsErrorCode.FAILED_PRECONDITION, str(e)
            )
        if result.state is not state:
            transaction.update(user_ref, {"state": to_camel_dict(result.state)})
        transaction.delete(alert_ref)
        return result

    result = _resolve_transaction(transaction)

    return {
        "state": to_camel_dict(result.state),
        "spokenMessage": result.spoken_message,
    }


def _log_guardian_chat(email: str, message_count: int, reply: ChatMessage):
    """
    Logs a guardian conversation turn to the `guardian_chat_logs` collection.
    """
    try:
        db = firestore.client()
        expire_timestamp = datetime.now(timezone.utc) + timedelta(
            days=CHAT_LOG_RETENTION_DAYS
        )
        chat_log = {
            "createdTimestamp": SERVER_TIMESTAMP,
            "expireTimestamp": expire_timestamp,
            "email": email,
            "messageCount": message_count,
            "reply": to_camel_dict(reply),
        }
        db.collection(CHAT_LOGS_COLLECTION).add(chat_log)
        logger.info(f"Logged guardian chat for {email}")
    except Exception as e:
        logger.error(f"Failed to log guardian chat for {email}: {e}")


@https_fn.on_call(timeout_sec=120, memory=options.MemoryOption.MB_512)
def get_guardian_response(req: https_fn.CallableRequest) -> dict:
    """
    Answers the user's latest message as the Financial Guardian.

    Args:
        req (https_fn.CallableRequest): The request, containing email, messages and an optional apiKey.

    Returns:
        The reply ChatMessage in camelCase form.
    """
    email = _require_string(req.data, "email", MAX_EMAIL_LENGTH)
    messages_list = req.data.get("messages")
    api_key = req.data.get("apiKey")

    if not messages_list:
        raise _invalid_argument("Must specify messages parameter.")
    if len(messages_list) > MAX_CHAT_HISTORY:
        raise _invalid_argument("Too many messages.")

    messages = [from_camel_dict(ChatMessage, m) for m in messages_list]
    if any(len(m.text or "") > MAX_CHAT_MESSAGE_LENGTH for m in messages):
        raise _invalid_argument("Message exceeds max length.")

    state = _load_state(email)
    try:
        reply = chat.generate_guardian_reply(state, messages, api_key)
    except ValueError as e:
        raise _invalid_argument(str(e))

    if not _is_locally_emulated():
        _log_guardian_chat(email, len(messages), reply)

    return to_camel_dict(reply)


@https_fn.on_call(timeout_sec=120, memory=options.MemoryOption.MB_512)
def get_speech(req: https_fn.CallableRequest) -> dict:
    """Returns base64 WAV audio of the given text."""
    text = _require_string(req.data, "text", MAX_SPEECH_TEXT_LENGTH)
    api_key = req.data.get("apiKey")

    try:
        audio = tts.synthesize_speech(text, api_key)
    except ValueError as e:
        raise _invalid_argument(str(e))
    except exceptions.TooManyRequests as e:
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.RESOURCE_EXHAUSTED,
            f"Gemini quota exceeded: {e}",
        )
    except Exception as e:
        raise https_fn.HttpsError(
            https_fn.FunctionsErrorCode.UNAVAILABLE,
            f"Speech call failed: {e}",
        )

    return {
        "audio": base64.b64encode(audio).decode("ascii"),
        "mimeType": "audio/wav",
    }


def _run_user_alert_cycle(db, email: str, now: datetime) -> int:
    alerts = _update_state(
        email, lambda state: app_state.run_alert_cycle(state, now)
    )
    alerts_ref = _user_ref(db, email).collection(ALERTS_COLLECTION)
    for alert in alerts:
        alerts_ref.document(alert.id).set(to_camel_dict(alert))
    return len(alerts)


@scheduler_fn.on_schedule(schedule="every 1 minutes", memory=options.MemoryOption.MB_512)
def run_guardian_alerts(event: scheduler_fn.ScheduledEvent) -> None:
    """
    Guardian engine: reminders, due prompts and, from 00:01 on,
    missed-payment reconciliation for every user.
    """
    db = firestore.client()
    now = _scheduled_now(event)
    raised = 0
    for snapshot in db.collection(USERS_COLLECTION).stream():
        try:
            raised += _run_user_alert_cycle(db, snapshot.id, now)
        except Exception as e:
            # Retried on the next minute.
            logger.error(f"Alert cycle failed for {snapshot.id}: {e}")
    if raised:
        logger.info(f"Guardian alert cycle raised {raised} alerts")
