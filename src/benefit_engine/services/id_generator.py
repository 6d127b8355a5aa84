"""Sequential identifier allocation with retry on conflict.

Identifiers are ``prefix + zero-padded sequence``. The next sequence is
derived from the number of rows already carrying the prefix; when a
concurrent writer takes the same value the insert fails on the primary key
and the next value is tried inside a fresh savepoint.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from benefit_engine.errors import IdGenerationExhaustedError, PersistenceError
from benefit_engine.models import Base

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

CLAIM_ID_PREFIX = "AP"
CLAIM_ID_WIDTH = 4
PAYMENT_ID_PREFIX = "PAY"
PAYMENT_ID_WIDTH = 2


def claim_id_prefix(on: datetime) -> str:
    return f"{CLAIM_ID_PREFIX}{on:%Y%m%d}"


def payment_id_prefix(at: datetime) -> str:
    return f"{PAYMENT_ID_PREFIX}{at:%Y%m%d%H%M%S}"


class IdentifierGenerator:
    """Allocates date-scoped sequential identifiers for new rows."""

    def __init__(self, session: AsyncSession, max_attempts: int = 5):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.session = session
        self.max_attempts = max_attempts

    async def next_sequence(self, id_column: InstrumentedAttribute, prefix: str) -> int:
        """First sequence number to try for a prefix."""
        result = await self.session.execute(
            select(func.count())
            .select_from(id_column.class_)
            .where(id_column.like(f"{prefix}%"))
        )
        return (result.scalar() or 0) + 1

    async def insert_with_id(
        self,
        id_column: InstrumentedAttribute,
        prefix: str,
        width: int,
        build: Callable[[str], ModelT],
    ) -> ModelT:
        """Insert the row built by ``build(candidate_id)`` under a fresh id.

        The insert is flushed but not committed. Raises
        IdGenerationExhaustedError once ``max_attempts`` candidates collided.
        """
        start = await self.next_sequence(id_column, prefix)

        for attempt in range(self.max_attempts):
            candidate = f"{prefix}{start + attempt:0{width}d}"
            row = build(candidate)
            try:
                async with self.session.begin_nested():
                    self.session.add(row)
                    await self.session.flush()
            except IntegrityError as exc:
                if not await self._id_taken(id_column, candidate):
                    # Some other constraint failed; retrying will not help
                    raise PersistenceError(
                        f"Could not store {row.__tablename__} row"
                    ) from exc
                logger.warning(
                    "Identifier %s already taken (attempt %d/%d)",
                    candidate,
                    attempt + 1,
                    self.max_attempts,
                )
                continue
            return row

        raise IdGenerationExhaustedError(prefix, self.max_attempts)

    async def _id_taken(self, id_column: InstrumentedAttribute, candidate: str) -> bool:
        result = await self.session.execute(
            select(func.count())
            .select_from(id_column.class_)
            .where(id_column == candidate)
        )
        return bool(result.scalar())
