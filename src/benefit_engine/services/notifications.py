"""Notification and audit side effects.

Both sinks are fire-and-forget from the lifecycle's point of view: they run
after the primary write has committed, and a failing sink is logged without
affecting the operation's result.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from benefit_engine.models import AuditEvent, Notification, UserProfile, UserRole

logger = logging.getLogger(__name__)


@runtime_checkable
class NotificationSink(Protocol):
    """Delivers a message to one user."""

    async def notify(
        self,
        user_id: str,
        title: str,
        message: str,
        kind: str,
        link_path: str | None = None,
    ) -> None:
        ...


@runtime_checkable
class AuditSink(Protocol):
    """Records a state-changing operation."""

    async def record(
        self,
        operation_type: str,
        target: str,
        details: dict[str, Any] | None,
        actor: str | None = None,
    ) -> None:
        ...


class DatabaseNotificationSink:
    """Writes notifications to the inbox table in their own transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def notify(
        self,
        user_id: str,
        title: str,
        message: str,
        kind: str,
        link_path: str | None = None,
    ) -> None:
        async with self.session_factory() as session:
            session.add(
                Notification(
                    user_id=user_id,
                    title=title,
                    message=message,
                    kind=kind,
                    link=link_path,
                )
            )
            await session.commit()


class DatabaseAuditSink:
    """Appends audit events in their own transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def record(
        self,
        operation_type: str,
        target: str,
        details: dict[str, Any] | None,
        actor: str | None = None,
    ) -> None:
        async with self.session_factory() as session:
            session.add(
                AuditEvent(
                    operation_type=operation_type,
                    target=target,
                    details=details,
                    actor=actor,
                )
            )
            await session.commit()


async def run_isolated(action: Awaitable[Any], description: str) -> None:
    """Await a side effect, logging instead of raising on failure."""
    try:
        await action
    except Exception:
        logger.exception("Side effect failed: %s", description)


async def find_recipients(
    session: AsyncSession,
    *,
    role: UserRole | None = None,
    company_code: str | None = None,
    member_id: str | None = None,
) -> list[str]:
    """Active user ids matching the given directory filters."""
    query = select(UserProfile.user_id).where(UserProfile.is_active.is_(True))
    if role is not None:
        query = query.where(UserProfile.role == role.value)
    if company_code is not None:
        query = query.where(UserProfile.company_code == company_code)
    if member_id is not None:
        query = query.where(UserProfile.member_id == member_id)
    result = await session.execute(query.order_by(UserProfile.user_id))
    return list(result.scalars().all())
