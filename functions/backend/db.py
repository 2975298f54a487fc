"""
Database abstraction for Postgres and an in-memory test implementation.

Each user is one record: the bcrypt passcode hash plus the camelCase AppState
document the clients sync. Pending guardian alerts are kept per user until the
user answers them.
"""

from __future__ import annotations

import copy
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from sqlalchemy import JSON, Column, Float, String, create_engine, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker


class DbClient(Protocol):
    """Interface for database access."""

    def create_user(self, record: "UserRecord") -> bool:
        ...

    def get_user(self, email: str) -> Optional["UserRecord"]:
        ...

    def first_user(self) -> Optional["UserRecord"]:
        ...

    def list_user_emails(self, limit: int = 1000, offset: int = 0) -> list[str]:
        ...

    def save_state(self, email: str, state_json: dict) -> bool:
        ...

    def add_alerts(self, email: str, alerts: list[dict]) -> None:
        ...

    def list_alerts(self, email: str) -> list[dict]:
        ...

    def pop_alert(self, email: str, alert_id: str) -> Optional[dict]:
        ...


@dataclass
class UserRecord:
    email: str
    passcode_hash: str
    state: dict
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.alerts: Dict[str, List[dict]] = {}

    def create_user(self, record: UserRecord) -> bool:
        if record.email in self.users:
            return False
        self.users[record.email] = copy.deepcopy(record)
        return True

    def get_user(self, email: str) -> Optional[UserRecord]:
        record = self.users.get(email)
        return copy.deepcopy(record) if record else None

    def first_user(self) -> Optional[UserRecord]:
        if not self.users:
            return None
        record = min(self.users.values(), key=lambda r: r.created_at)
        return copy.deepcopy(record)

    def list_user_emails(self, limit: int = 1000, offset: int = 0) -> list[str]:
        return list(self.users)[offset : offset + limit]

    def save_state(self, email: str, state_json: dict) -> bool:
        record = self.users.get(email)
        if not record:
            return False
        record.state = copy.deepcopy(state_json)
        record.updated_at = time.time()
        return True

    def add_alerts(self, email: str, alerts: list[dict]) -> None:
        self.alerts.setdefault(email, []).extend(copy.deepcopy(alerts))

    def list_alerts(self, email: str) -> list[dict]:
        return copy.deepcopy(self.alerts.get(email, []))

    def pop_alert(self, email: str, alert_id: str) -> Optional[dict]:
        pending = self.alerts.get(email, [])
        for index, alert in enumerate(pending):
            if alert.get("id") == alert_id:
                return pending.pop(index)
        return None

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.users.clear()
        self.alerts.clear()


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        return UserRecord(
            email=row.email,
            passcode_hash=row.passcode_hash,
            state=row.state,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def create_user(self, record: UserRecord) -> bool:
        with self.Session() as session:
            if session.get(UserRow, record.email):
                return False
            session.add(
                UserRow(
                    email=record.email,
                    passcode_hash=record.passcode_hash,
                    state=record.state,
                    created_at=record.created_at,
                    updated_at=record.updated_at,
                )
            )
            session.commit()
            return True

    def get_user(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, email)
            if not row:
                return None
            return self._to_user_record(row)

    def first_user(self) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).order_by(UserRow.created_at.asc()).limit(1)
            row = session.execute(stmt).scalar_one_or_none()
            if not row:
                return None
            return self._to_user_record(row)

    def list_user_emails(self, limit: int = 1000, offset: int = 0) -> list[str]:
        with self.Session() as session:
            stmt = (
                select(UserRow.email)
                .order_by(UserRow.email.asc())
                .offset(offset)
                .limit(limit)
            )
            return list(session.execute(stmt).scalars())

    def save_state(self, email: str, state_json: dict) -> bool:
        with self.Session() as session:
            row = session.get(UserRow, email)
            if not row:
                return False
            row.state = state_json
            row.updated_at = time.time()
            session.commit()
            return True

    def add_alerts(self, email: str, alerts: list[dict]) -> None:
        now = time.time()
        with self.Session() as session:
            for alert in alerts:
                session.add(
                    AlertRow(id=alert["id"], email=email, payload=alert, created_at=now)
                )
            session.commit()

    def list_alerts(self, email: str) -> list[dict]:
        with self.Session() as session:
            stmt = (
                select(AlertRow)
                .where(AlertRow.email == email)
                .order_by(AlertRow.created_at.asc())
            )
            return [row.payload for row in session.execute(stmt).scalars()]

    def pop_alert(self, email: str, alert_id: str) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(AlertRow, alert_id)
            if not row or row.email != email:
                return None
            payload = row.payload
            session.delete(row)
            session.commit()
            return payload


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    email = Column(String, primary_key=True)
    passcode_hash = Column(String, nullable=False)
    state = Column(JSON, nullable=False)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class AlertRow(Base):
    __tablename__ = "guardian_alerts"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, index=True)
    payload = Column(JSON, nullable=False)
    created_at = Column(Float, nullable=False)
