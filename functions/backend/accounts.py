"""
User accounts and the load-modify-store helpers around a user's AppState.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from backend.db import DbClient, UserRecord
from backend.sessions import SessionCache
from planner import installments
from planner import state as app_state
from planner.errors import GoalAlreadyCompletedError, GoalNotFoundError
from shared.constants import MASTER_ACCOUNT_EMAIL, MASTER_ACCOUNT_NAME
from shared.json_utils import from_camel_dict, to_camel_dict
from shared.passcodes import check_passcode, hash_passcode
from shared.types import AppState, Goal, GoalDraft

logger = logging.getLogger(__name__)


def load_state(db: DbClient, email: str) -> Optional[AppState]:
    record = db.get_user(email)
    if not record:
        return None
    return from_camel_dict(AppState, record.state)


def store_state(db: DbClient, email: str, state: AppState) -> bool:
    return db.save_state(email, to_camel_dict(state))


def register_user(db: DbClient, email: str, passcode: str, name: str) -> bool:
    """Creates the account; returns False when the email is already taken."""
    if not email or not passcode or not name:
        raise ValueError("Complete all fields to register.")
    record = UserRecord(
        email=email,
        passcode_hash=hash_passcode(passcode),
        state=to_camel_dict(app_state.new_app_state(email, name)),
    )
    created = db.create_user(record)
    if created:
        logger.info("User registered successfully: %s", email)
    else:
        logger.info("User already exists: %s", email)
    return created


def login_user(db: DbClient, email: str, passcode: str) -> Optional[AppState]:
    record = db.get_user(email)
    if not record or not check_passcode(passcode, record.passcode_hash):
        return None
    return from_camel_dict(AppState, record.state)


def save_active_session(sessions: SessionCache, device_id: str, email: str) -> None:
    sessions.set_active(device_id, email)


def get_active_session_email(sessions: SessionCache, device_id: str) -> Optional[str]:
    return sessions.get_active(device_id)


def clear_local_session(sessions: SessionCache, device_id: str) -> None:
    sessions.clear(device_id)


def _login_with_master_passcode(
    db: DbClient,
    sessions: SessionCache,
    device_id: str,
    passcode: str,
    last_email: Optional[str],
) -> Optional[AppState]:
    if last_email:
        state = login_user(db, last_email, passcode)
        if state:
            return state

    first = db.first_user()
    if first and check_passcode(passcode, first.passcode_hash):
        save_active_session(sessions, device_id, first.email)
        return from_camel_dict(AppState, first.state)

    if register_user(db, MASTER_ACCOUNT_EMAIL, passcode, MASTER_ACCOUNT_NAME):
        save_active_session(sessions, device_id, MASTER_ACCOUNT_EMAIL)
        return login_user(db, MASTER_ACCOUNT_EMAIL, passcode)
    return None


def login_with_passcode_only(
    db: DbClient,
    sessions: SessionCache,
    device_id: str,
    passcode: str,
    master_passcode: Optional[str] = None,
) -> Optional[AppState]:
    """
    Unlocks the account last used on this device with just its passcode.

    When a master passcode is configured it also opens the first account, or
    creates the master account on an empty database.
    """
    last_email = get_active_session_email(sessions, device_id)

    if master_passcode and passcode == master_passcode:
        state = _login_with_master_passcode(
            db, sessions, device_id, passcode, last_email
        )
        if state:
            return state

    if last_email:
        state = login_user(db, last_email, passcode)
        if state:
            save_active_session(sessions, device_id, last_email)
            return state
    return None


def sync_user_data(db: DbClient, state: AppState) -> bool:
    """Stores a client-side state; False when it has no known owner."""
    if not state.current_user:
        return False
    saved = store_state(db, state.current_user.email, state)
    if not saved:
        logger.warning("Sync skipped for unknown user %s", state.current_user.email)
    return saved


def create_goal_with_installments(
    db: DbClient, email: str, draft: GoalDraft, now: datetime
) -> Optional[Goal]:
    state = load_state(db, email)
    if state is None:
        return None
    goal = installments.create_goal(draft, now)
    store_state(db, email, app_state.add_goal(state, goal))
    return goal


def mark_installment_paid(
    db: DbClient, email: str, goal_id: str, now: datetime
) -> Optional[Goal]:
    """
    Confirms the next installment of a goal; None for an unknown user.

    Raises GoalNotFoundError or GoalAlreadyCompletedError when the goal cannot
    take a payment.
    """
    state = load_state(db, email)
    if state is None:
        return None
    try:
        updated_state, goal = app_state.pay_installment(state, goal_id, now)
    except (GoalNotFoundError, GoalAlreadyCompletedError) as e:
        logger.info("Payment rejected for %s: %s", email, e)
        raise
    store_state(db, email, updated_state)
    return goal
