"""
API routes - combined router from all domain modules.

Shared infrastructure (limiter, client IP helper) lives here; every
sub-router imports what it needs from this package.
"""

from typing import Optional

from fastapi import APIRouter, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from pharaohs.config import get_settings

# ---------------------------------------------------------------------------
# Shared rate limiter
# ---------------------------------------------------------------------------
IS_TEST_ENV = get_settings().is_test
if IS_TEST_ENV:
    limiter = Limiter(key_func=get_remote_address)

    def no_op_limit(*args, **kwargs):
        """No-op decorator for test mode - doesn't apply any rate limiting."""
        def decorator(func):
            return func
        return decorator

    limiter.limit = lambda *args, **kwargs: no_op_limit()
else:
    limiter = Limiter(key_func=get_remote_address)


def client_ip(request: Request) -> Optional[str]:
    """Requester IP recorded in the audit log."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from pharaohs.api.routes.auth import router as auth_router  # noqa: E402
from pharaohs.api.routes.players import router as players_router  # noqa: E402
from pharaohs.api.routes.scouts import router as scouts_router  # noqa: E402
from pharaohs.api.routes.admin import router as admin_router  # noqa: E402
from pharaohs.api.routes.notifications import router as notifications_router  # noqa: E402

router = APIRouter()
router.include_router(auth_router)
router.include_router(players_router)
router.include_router(scouts_router)
router.include_router(admin_router)
router.include_router(notifications_router)
