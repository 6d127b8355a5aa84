"""Pytest fixtures for benefit engine tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import date, datetime, timezone
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from benefit_engine.config import Settings
from benefit_engine.database import create_schema, get_engine, make_session_factory
from benefit_engine.models import Member, UserProfile
from benefit_engine.services import ClaimService, FeeService, PaymentService

# Claims in these tests are filed on 2024-10-01
FIXED_NOW = datetime(2024, 10, 1, 9, 30, 15, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


class RecordingNotificationSink:
    """Notification sink that keeps messages in memory."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    async def notify(
        self,
        user_id: str,
        title: str,
        message: str,
        kind: str,
        link_path: str | None = None,
    ) -> None:
        self.sent.append(
            {
                "user_id": user_id,
                "title": title,
                "message": message,
                "kind": kind,
                "link_path": link_path,
            }
        )

    def recipients(self, title: str) -> list[str]:
        return [n["user_id"] for n in self.sent if n["title"] == title]


class RecordingAuditSink:
    """Audit sink that keeps events in memory."""

    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []

    async def record(
        self,
        operation_type: str,
        target: str,
        details: dict[str, Any] | None,
        actor: str | None = None,
    ) -> None:
        self.events.append(
            {
                "operation_type": operation_type,
                "target": target,
                "details": details,
                "actor": actor,
            }
        )

    @property
    def operations(self) -> list[str]:
        return [e["operation_type"] for e in self.events]


class FailingSink:
    """Sink whose every call fails."""

    async def notify(self, *args: Any, **kwargs: Any) -> None:
        raise RuntimeError("notification backend down")

    async def record(self, *args: Any, **kwargs: Any) -> None:
        raise RuntimeError("audit backend down")


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a per-test SQLite file."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'benefit.db'}",
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
    )


@pytest_asyncio.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with the schema in place."""
    engine = get_engine(settings)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession], seeded: None
) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test, after seeding."""
    async with session_factory() as session:
        yield session


def make_member(member_id: str, company_code: str, **overrides: Any) -> Member:
    values: dict[str, Any] = {
        "member_id": member_id,
        "company_code": company_code,
        "company_name": COMPANY_NAMES[company_code],
        "last_name": "Test",
        "first_name": member_id,
        "enrollment_date": date(2018, 4, 1),
        "employment_status": "active",
        "fee_category": "general",
    }
    values.update(overrides)
    return Member(**values)


COMPANY_NAMES = {"C001": "Acme Corp", "C002": "Beta Ltd", "C003": "Gamma Inc"}


@pytest_asyncio.fixture
async def seeded(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Seed members and the user directory."""
    async with session_factory() as session:
        session.add_all(
            [
                make_member(
                    "M001",
                    "C001",
                    last_name="Yamada",
                    first_name="Taro",
                    enrollment_date=date(2018, 4, 1),
                    standard_monthly_remuneration=200_000,
                    bank_code="0001",
                    bank_name="First Bank",
                    branch_code="123",
                    branch_name="Main",
                    account_type="ordinary",
                    account_number="1234567",
                    account_holder="YAMADA TARO",
                ),
                make_member(
                    "M002",
                    "C001",
                    enrollment_date=date(2023, 1, 15),
                    fee_category="chief",
                ),
                make_member(
                    "M003",
                    "C002",
                    enrollment_date=date(2010, 4, 1),
                    fee_category="manager",
                    standard_monthly_remuneration=500_000,
                ),
                make_member("M004", "C002", employment_status="on_leave"),
                make_member("M005", "C002", employment_status="withdrawn"),
                make_member("M006", "C001", fee_category="manager"),
            ]
        )
        session.add_all(
            [
                UserProfile(user_id="admin-1", email="admin@example.com", role="admin"),
                UserProfile(
                    user_id="approver-c001",
                    email="approver1@example.com",
                    role="approver",
                    company_code="C001",
                ),
                UserProfile(
                    user_id="approver-c001-retired",
                    email="approver1-old@example.com",
                    role="approver",
                    company_code="C001",
                    is_active=False,
                ),
                UserProfile(
                    user_id="approver-c002",
                    email="approver2@example.com",
                    role="approver",
                    company_code="C002",
                ),
                UserProfile(
                    user_id="user-m001",
                    email="yamada@example.com",
                    role="member",
                    company_code="C001",
                    member_id="M001",
                ),
            ]
        )
        await session.commit()


@pytest.fixture
def notifier() -> RecordingNotificationSink:
    return RecordingNotificationSink()


@pytest.fixture
def auditor() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def claim_service(
    session: AsyncSession,
    settings: Settings,
    notifier: RecordingNotificationSink,
    auditor: RecordingAuditSink,
) -> ClaimService:
    return ClaimService(
        session,
        notifications=notifier,
        audit=auditor,
        settings=settings,
        clock=fixed_clock,
    )


@pytest.fixture
def payment_service(session: AsyncSession, auditor: RecordingAuditSink) -> PaymentService:
    return PaymentService(session, audit=auditor, clock=fixed_clock)


@pytest.fixture
def fee_service(session: AsyncSession, auditor: RecordingAuditSink) -> FeeService:
    return FeeService(session, audit=auditor, clock=fixed_clock)


@pytest.fixture
def failing_sink() -> FailingSink:
    return FailingSink()
