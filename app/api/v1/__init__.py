"""API v1 routes. Auth and users routes sit behind the protection gate; health does not."""

from fastapi import APIRouter, Depends

from app.api.v1 import auth, health, users
from app.api.v1.protection import enforce_protection

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(
    auth.router,
    prefix="/auth",
    tags=["auth"],
    dependencies=[Depends(enforce_protection)],
)
router.include_router(
    users.router,
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(enforce_protection)],
)
