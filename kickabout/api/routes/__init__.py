"""
API routes - combined router from all domain modules.

Shared infrastructure (limiter, rate limits) lives here; every sub-router
imports what it needs from this package.
"""

import os

from fastapi import APIRouter
from slowapi import Limiter
from slowapi.util import get_remote_address

# ---------------------------------------------------------------------------
# Shared rate limiter
# ---------------------------------------------------------------------------
IS_TEST_ENV = os.getenv("ENV", "").lower() == "test"
limiter = Limiter(key_func=get_remote_address, enabled=not IS_TEST_ENV)

FRIEND_REQUEST_RATE_LIMIT = os.getenv("FRIEND_REQUEST_RATE_LIMIT", "30/minute")
RATING_RATE_LIMIT = os.getenv("RATING_RATE_LIMIT", "60/minute")

# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from kickabout.api.routes.friends import router as friends_router  # noqa: E402
from kickabout.api.routes.blocks import router as blocks_router  # noqa: E402
from kickabout.api.routes.ratings import router as ratings_router  # noqa: E402

router = APIRouter()
router.include_router(friends_router)
router.include_router(blocks_router)
router.include_router(ratings_router)
