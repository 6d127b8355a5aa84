"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from benefit_engine.config import Settings, get_settings
from benefit_engine.database import init_db
from benefit_engine.errors import AuthorizationDeniedError
from benefit_engine.models import UserRole
from benefit_engine.services import ClaimService, FeeService, PaymentService
from benefit_engine.services.notifications import DatabaseAuditSink, DatabaseNotificationSink


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the application engine."""
    _, factory = init_db()
    return factory


SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


async def get_db_session(factory: SessionFactory) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


@dataclass(frozen=True)
class Caller:
    """Identity asserted by the trusted gateway in front of the API."""

    user_id: str
    role: UserRole
    company_code: str | None = None
    member_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def can_access_company(self, company_code: str) -> bool:
        if self.is_admin:
            return True
        return self.role == UserRole.APPROVER and self.company_code == company_code

    def can_view(self, company_code: str, member_id: str) -> bool:
        """Admins see everything, approvers their company, members themselves."""
        if self.can_access_company(company_code):
            return True
        return self.member_id is not None and self.member_id == member_id


async def get_caller(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
    x_company_code: Annotated[str | None, Header()] = None,
    x_member_id: Annotated[str | None, Header()] = None,
) -> Caller:
    """Build the caller identity from request headers."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-ID header is required",
        )
    try:
        role = UserRole((x_user_role or UserRole.MEMBER.value).lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-User-Role value",
        )
    return Caller(
        user_id=x_user_id,
        role=role,
        company_code=x_company_code or None,
        member_id=x_member_id or None,
    )


def require_role(*roles: UserRole) -> Callable[..., Caller]:
    """Dependency factory rejecting callers outside ``roles``."""

    async def dependency(caller: Annotated[Caller, Depends(get_caller)]) -> Caller:
        if caller.role not in roles:
            raise AuthorizationDeniedError(
                f"Role '{caller.role.value}' may not perform this operation"
            )
        return caller

    return dependency


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
CurrentCaller = Annotated[Caller, Depends(get_caller)]
AdminCaller = Annotated[Caller, Depends(require_role(UserRole.ADMIN))]
ApproverCaller = Annotated[Caller, Depends(require_role(UserRole.ADMIN, UserRole.APPROVER))]
AppSettings = Annotated[Settings, Depends(get_settings)]


def get_claim_service(
    db: DbSession, factory: SessionFactory, settings: AppSettings
) -> ClaimService:
    return ClaimService(
        db,
        notifications=DatabaseNotificationSink(factory),
        audit=DatabaseAuditSink(factory),
        settings=settings,
    )


def get_payment_service(db: DbSession, factory: SessionFactory) -> PaymentService:
    return PaymentService(db, audit=DatabaseAuditSink(factory))


def get_fee_service(db: DbSession, factory: SessionFactory) -> FeeService:
    return FeeService(db, audit=DatabaseAuditSink(factory))


Claims = Annotated[ClaimService, Depends(get_claim_service)]
Payments = Annotated[PaymentService, Depends(get_payment_service)]
Fees = Annotated[FeeService, Depends(get_fee_service)]
