"""
HTTP routes for the planner backend API.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Callable
from uuid import uuid4

from fastapi import (
    APIRouter,
    Depends,
    File,
    Header,
    HTTPException,
    Query,
    Response,
    UploadFile,
)

from backend import accounts
from backend import worker
from backend.config import get_settings
from backend.db import DbClient
from backend.dependencies import (
    get_clock,
    get_db_client,
    get_session_cache,
    get_storage_client,
)
from backend.schemas import (
    AlertActionRequest,
    AlertActionResponse,
    AlertsResponse,
    AvatarUploadResponse,
    CategoryRequest,
    ChatRequest,
    ChatResponse,
    DashboardResponse,
    GoalDraftPayload,
    GoalResponse,
    HistoryResponse,
    LoginRequest,
    PasscodeLoginRequest,
    PlanPreviewResponse,
    ProfileRequest,
    RegisterRequest,
    SignUrlResponse,
    SpeakRequest,
    StateResponse,
    StatusResponse,
)
from backend.sessions import SessionCache
from backend.storage import StorageClient
from guardian_ai import chat, tts
from planner import dashboard, installments
from planner import state as app_state
from planner.errors import (
    GoalAlreadyCompletedError,
    GoalNotFoundError,
    UnknownAlertActionError,
)
from shared.json_utils import from_camel_dict, to_camel_dict
from shared.types import AppState, ChatMessage, GoalDraft, UserProfile

logger = logging.getLogger(__name__)

router = APIRouter()

AVATAR_MAX_BYTES = 2 * 1024 * 1024


def _load_state_or_404(db: DbClient, email: str) -> AppState:
    state = accounts.load_state(db, email)
    if state is None:
        raise HTTPException(status_code=404, detail="User not found")
    return state


def _state_response(state: AppState) -> StateResponse:
    return StateResponse(state=to_camel_dict(state))


@router.post("/register", response_model=StateResponse, status_code=201)
def register(
    payload: RegisterRequest,
    x_device_id: str = Header(default="default"),
    db: DbClient = Depends(get_db_client),
    sessions: SessionCache = Depends(get_session_cache),
):
    if not accounts.register_user(db, payload.email, payload.passcode, payload.name):
        raise HTTPException(status_code=409, detail="Email already exists in vault.")
    accounts.save_active_session(sessions, x_device_id, payload.email)
    return _state_response(_load_state_or_404(db, payload.email))


@router.post("/login", response_model=StateResponse)
def login(
    payload: LoginRequest,
    x_device_id: str = Header(default="default"),
    db: DbClient = Depends(get_db_client),
    sessions: SessionCache = Depends(get_session_cache),
):
    state = accounts.login_user(db, payload.email, payload.passcode)
    if state is None:
        raise HTTPException(status_code=401, detail="Recovery failed. Invalid credentials.")
    accounts.save_active_session(sessions, x_device_id, payload.email)
    return _state_response(state)


@router.post("/login/passcode", response_model=StateResponse)
def login_with_passcode(
    payload: PasscodeLoginRequest,
    x_device_id: str = Header(default="default"),
    db: DbClient = Depends(get_db_client),
    sessions: SessionCache = Depends(get_session_cache),
):
    state = accounts.login_with_passcode_only(
        db,
        sessions,
        x_device_id,
        payload.passcode,
        master_passcode=get_settings().master_passcode,
    )
    if state is None:
        raise HTTPException(status_code=401, detail="Access Denied. Incorrect Passcode.")
    return _state_response(state)


@router.post("/logout", response_model=StatusResponse)
def logout(
    x_device_id: str = Header(default="default"),
    sessions: SessionCache = Depends(get_session_cache),
):
    accounts.clear_local_session(sessions, x_device_id)
    return StatusResponse(status="ok")


@router.get("/state/{email}", response_model=StateResponse)
def get_state(email: str, db: DbClient = Depends(get_db_client)):
    return _state_response(_load_state_or_404(db, email))


@router.put("/state/{email}", response_model=StateResponse)
def sync_state(
    email: str, payload: StateResponse, db: DbClient = Depends(get_db_client)
):
    try:
        state = from_camel_dict(AppState, payload.state)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Invalid state: {e}")
    if not state.current_user or state.current_user.email != email:
        raise HTTPException(status_code=400, detail="State does not belong to user")
    try:
        app_state.validate_state(state)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid state: {e}")
    if not accounts.sync_user_data(db, state):
        raise HTTPException(status_code=404, detail="User not found")
    return _state_response(state)


@router.post("/goals/preview", response_model=PlanPreviewResponse)
def preview_goal(
    payload: GoalDraftPayload,
    clock: Callable[[], datetime] = Depends(get_clock),
):
    draft = GoalDraft(**payload.model_dump())
    today = clock().date()
    try:
        installments.validate_draft(draft, today)
        plan = installments.calculate_plan(draft, today)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PlanPreviewResponse(**asdict(plan))


@router.post("/goals/{email}", response_model=GoalResponse, status_code=201)
def create_goal(
    email: str,
    payload: GoalDraftPayload,
    db: DbClient = Depends(get_db_client),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    try:
        goal = accounts.create_goal_with_installments(
            db, email, GoalDraft(**payload.model_dump()), clock()
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if goal is None:
        raise HTTPException(status_code=404, detail="User not found")
    return GoalResponse(goal=to_camel_dict(goal))


@router.post("/goals/{email}/{goal_id}/pay", response_model=GoalResponse)
def pay_installment(
    email: str,
    goal_id: str,
    db: DbClient = Depends(get_db_client),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    try:
        goal = accounts.mark_installment_paid(db, email, goal_id, clock())
    except GoalNotFoundError:
        raise HTTPException(status_code=404, detail="Goal not found")
    except GoalAlreadyCompletedError:
        raise HTTPException(status_code=409, detail="Goal is already completed")
    if goal is None:
        raise HTTPException(status_code=404, detail="User not found")
    return GoalResponse(goal=to_camel_dict(goal))


@router.post("/categories/{email}", response_model=StateResponse, status_code=201)
def add_category(
    email: str,
    payload: CategoryRequest,
    db: DbClient = Depends(get_db_client),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    state = _load_state_or_404(db, email)
    try:
        state = app_state.add_category(state, payload.label, payload.icon, clock())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    accounts.store_state(db, email, state)
    return _state_response(state)


@router.put("/profile/{email}", response_model=StateResponse)
def update_profile(
    email: str, payload: ProfileRequest, db: DbClient = Depends(get_db_client)
):
    state = _load_state_or_404(db, email)
    current_avatar = state.current_user.avatar if state.current_user else ""
    profile = UserProfile(
        email=email,
        name=payload.name,
        currency=payload.currency,
        avatar=payload.avatar or current_avatar,
    )
    try:
        state = app_state.update_profile(state, profile)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    accounts.store_state(db, email, state)
    return _state_response(state)


@router.post("/profile/{email}/avatar", response_model=AvatarUploadResponse)
async def upload_avatar(
    email: str,
    file: UploadFile = File(...),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="Image file required")
    data = await file.read()
    if len(data) > AVATAR_MAX_BYTES:
        raise HTTPException(status_code=400, detail="Image is too large")

    state = _load_state_or_404(db, email)
    path = f"avatars/{email}/{uuid4().hex}"
    storage.upload_bytes(path, data, content_type=file.content_type)
    profile = UserProfile(**asdict(state.current_user))
    profile.avatar = path
    accounts.store_state(db, email, app_state.update_profile(state, profile))
    return AvatarUploadResponse(avatar=path, url=storage.presign_get(path))


@router.post("/onboarding/{email}", response_model=StateResponse)
def complete_onboarding(email: str, db: DbClient = Depends(get_db_client)):
    state = app_state.complete_onboarding(_load_state_or_404(db, email))
    accounts.store_state(db, email, state)
    return _state_response(state)


@router.get("/alerts/{email}", response_model=AlertsResponse)
def list_alerts(email: str, db: DbClient = Depends(get_db_client)):
    _load_state_or_404(db, email)
    return AlertsResponse(alerts=db.list_alerts(email))


@router.post(
    "/alerts/{email}/{alert_id}/action", response_model=AlertActionResponse
)
def answer_alert(
    email: str,
    alert_id: str,
    payload: AlertActionRequest,
    db: DbClient = Depends(get_db_client),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    try:
        resolution = worker.resolve_alert(db, email, alert_id, payload.action, clock())
    except UnknownAlertActionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (GoalNotFoundError, GoalAlreadyCompletedError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    if resolution is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    return AlertActionResponse(
        state=to_camel_dict(resolution.result.state),
        spoken_message=resolution.result.spoken_message,
    )


@router.get("/dashboard/{email}", response_model=DashboardResponse)
def get_dashboard(
    email: str,
    category: str = Query(dashboard.ALL_CATEGORIES),
    db: DbClient = Depends(get_db_client),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    state = _load_state_or_404(db, email)
    now = clock()
    currency = state.current_user.currency if state.current_user else "USD"
    next_due = dashboard.next_due(state.goals, now.date())
    return DashboardResponse(
        summary=to_camel_dict(dashboard.summarize(state.goals, currency)),
        todos=[to_camel_dict(t) for t in dashboard.daily_todos(state.goals, now, category)],
        next_due=to_camel_dict(next_due) if next_due else None,
        goal_progress=[
            to_camel_dict(dashboard.goal_progress(g))
            for g in dashboard.active_goals(state.goals)
        ],
        categories=[
            to_camel_dict(c) for c in dashboard.all_categories(state.custom_categories)
        ],
    )


@router.get("/history/{email}", response_model=HistoryResponse)
def get_history(email: str, db: DbClient = Depends(get_db_client)):
    state = _load_state_or_404(db, email)
    history = dashboard.merge_history(state.goals, state.history)
    return HistoryResponse(
        completed=[to_camel_dict(g) for g in history.completed],
        failed=[to_camel_dict(g) for g in history.failed],
    )


@router.get("/guardian/greeting", response_model=ChatResponse)
def guardian_greeting():
    return ChatResponse(message=to_camel_dict(chat.greeting()))


@router.post("/guardian/chat", response_model=ChatResponse)
def guardian_chat(payload: ChatRequest, db: DbClient = Depends(get_db_client)):
    state = _load_state_or_404(db, payload.email)
    messages = [ChatMessage(**m.model_dump()) for m in payload.messages]
    try:
        reply = chat.generate_guardian_reply(
            state, messages, api_key=get_settings().gemini_api_key
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ChatResponse(message=to_camel_dict(reply))


@router.post("/guardian/speak")
def guardian_speak(payload: SpeakRequest):
    try:
        audio = tts.synthesize_speech(
            payload.text, api_key=get_settings().gemini_api_key
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.warning("Speech synthesis failed: %s", e)
        raise HTTPException(status_code=503, detail="Speech is unavailable")
    return Response(content=audio, media_type="audio/wav")


@router.get("/sign-url", response_model=SignUrlResponse)
def sign_url(
    path: str = Query(..., description="Object path in storage"),
    op: str = Query("get", pattern="^(get|put)$"),
    expires_in: int = Query(3600, ge=60, le=86400),
    storage: StorageClient = Depends(get_storage_client),
):
    if op == "get":
        url = storage.presign_get(path, expires_in=expires_in)
    else:
        url = storage.presign_put(path, expires_in=expires_in)
    return SignUrlResponse(url=url)
