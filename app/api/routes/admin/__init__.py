"""
Admin write routes.

Every route here requires X-Admin-Token (see app.core.auth).
"""
from fastapi import APIRouter, Depends

from app.api.routes.admin import content, games
from app.core.auth import validate_admin_token

router = APIRouter(dependencies=[Depends(validate_admin_token)])
router.include_router(games.router)
router.include_router(content.router)

__all__ = ["router"]
