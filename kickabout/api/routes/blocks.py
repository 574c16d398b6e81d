"""Block route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from kickabout.database import db
from kickabout.database.db import get_db_session
from kickabout.services import block_service
from kickabout.services.errors import ServiceError
from kickabout.api.auth_dependencies import get_current_user_id
from kickabout.api.errors import service_error_to_http
from kickabout.models.schemas import BlockResponse, BlockStatusResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/blocks/{blocked_user_id}", response_model=BlockResponse)
async def block_user(
    blocked_user_id: int,
    user_id: int = Depends(get_current_user_id),
):
    """Block a user. Ends any friendship with them."""
    try:
        return await db.run_in_transaction(block_service.block_user, user_id, blocked_user_id)
    except ServiceError as e:
        raise service_error_to_http(e)
    except Exception as e:
        logger.error(f"Error blocking user: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error blocking user")


@router.delete("/api/blocks/{blocked_user_id}")
async def unblock_user(
    blocked_user_id: int,
    user_id: int = Depends(get_current_user_id),
):
    """Unblock a user. Friend requests are not restored."""
    try:
        removed = await db.run_in_transaction(
            block_service.unblock_user, user_id, blocked_user_id
        )
        return {"status": "ok", "removed": removed}
    except ServiceError as e:
        raise service_error_to_http(e)
    except Exception as e:
        logger.error(f"Error unblocking user: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error unblocking user")


@router.get("/api/blocks", response_model=List[BlockResponse])
async def list_blocked_users(
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """List users the current user has blocked."""
    try:
        return await block_service.list_blocked_users(session, user_id)
    except Exception as e:
        logger.error(f"Error fetching blocks: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching blocks")


@router.get("/api/blocks/{other_user_id}/status", response_model=BlockStatusResponse)
async def get_block_status(
    other_user_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Get block status between the current user and another user."""
    try:
        status = await block_service.get_block_status(session, user_id, other_user_id)
        return {"status": status}
    except Exception as e:
        logger.error(f"Error fetching block status: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching block status")
