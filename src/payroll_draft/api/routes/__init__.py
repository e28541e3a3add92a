"""API routes."""

from payroll_draft.api.routes.drafts import router as drafts_router
from payroll_draft.api.routes.health import router as health_router

__all__ = ["drafts_router", "health_router"]
