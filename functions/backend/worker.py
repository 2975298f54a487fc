"""
Guardian alert engine.

Evaluates every user's goals once per wall-clock minute: reminders and due
prompts during the day, and missed-payment reconciliation on the first
cycle from 00:01 on.
A failure for one user is logged and retried on the next minute.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterator, List, Optional

from backend import accounts
from backend.config import get_settings
from backend.db import DbClient
from backend.dependencies import get_db_client, get_storage_client
from backend.storage import StorageClient
from guardian_ai import tts
from planner import state as app_state
from shared.json_utils import from_camel_dict, to_camel_dict
from shared.types import GuardianAlert

logger = logging.getLogger(__name__)

USER_PAGE_SIZE = 1000


@dataclass
class AlertResolution:
    alert: GuardianAlert
    result: app_state.AlertActionResult


def process_user(
    db: DbClient,
    email: str,
    now: datetime,
    storage: Optional[StorageClient] = None,
    api_key: str | None = None,
) -> List[GuardianAlert]:
    """Runs one alert cycle for one user and persists what changed."""
    state = accounts.load_state(db, email)
    if state is None:
        return []

    updated, alerts = app_state.run_alert_cycle(state, now)
    if updated is not state:
        accounts.store_state(db, email, updated)
    if alerts:
        db.add_alerts(email, [to_camel_dict(alert) for alert in alerts])
        logger.info("[%s] %d new guardian alerts", email, len(alerts))
        if storage is not None:
            tts.speak_alerts(alerts, storage, api_key)
    return alerts


def iter_user_emails(db: DbClient, page_size: int = USER_PAGE_SIZE) -> Iterator[str]:
    offset = 0
    while True:
        page = db.list_user_emails(limit=page_size, offset=offset)
        yield from page
        if len(page) < page_size:
            return
        offset += page_size


def run_once(
    db: DbClient,
    now: datetime,
    storage: Optional[StorageClient] = None,
    api_key: str | None = None,
) -> int:
    """Processes every user; returns the number of alerts raised."""
    total = 0
    for email in iter_user_emails(db):
        try:
            total += len(process_user(db, email, now, storage, api_key))
        except Exception as exc:
            logger.exception("[%s] Alert cycle failed: %s", email, exc)
    return total


def resolve_alert(
    db: DbClient, email: str, alert_id: str, action: str, now: datetime
) -> Optional[AlertResolution]:
    """Applies the user's answer to a pending alert; None if it is unknown."""
    state = accounts.load_state(db, email)
    if state is None:
        return None
    payload = db.pop_alert(email, alert_id)
    if payload is None:
        return None

    alert = from_camel_dict(GuardianAlert, payload)
    try:
        result = app_state.apply_alert_action(state, alert, action, now)
    except Exception:
        db.add_alerts(email, [payload])
        raise
    if result.state is not state:
        accounts.store_state(db, email, result.state)
    return AlertResolution(alert=alert, result=result)


def run_forever(
    db: Optional[DbClient] = None,
    poll_seconds: Optional[int] = None,
    clock: Optional[Callable[[], datetime]] = None,
    max_ticks: Optional[int] = None,
) -> None:
    """
    Polls every `poll_seconds` and runs the engine once per new minute.
    """
    settings = get_settings()
    db = db or get_db_client()
    poll_seconds = poll_seconds or settings.alert_poll_seconds
    clock = clock or settings.now
    storage = get_storage_client() if settings.speak_alerts else None

    last_checked_minute: Optional[datetime] = None
    ticks = 0
    while max_ticks is None or ticks < max_ticks:
        ticks += 1
        now = clock()
        minute = now.replace(second=0, microsecond=0)
        if minute != last_checked_minute:
            last_checked_minute = minute
            raised = run_once(db, now, storage, settings.gemini_api_key)
            if raised:
                logger.info("Alert cycle at %s raised %d alerts", minute, raised)
        if max_ticks is None or ticks < max_ticks:
            time.sleep(poll_seconds)
