"""API route modules."""

from benefit_engine.api.routes.claims import router as claims_router
from benefit_engine.api.routes.fees import router as fees_router
from benefit_engine.api.routes.health import router as health_router
from benefit_engine.api.routes.payments import router as payments_router

__all__ = ["claims_router", "fees_router", "health_router", "payments_router"]
