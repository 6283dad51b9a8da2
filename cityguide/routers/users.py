from __future__ import annotations

from fastapi import APIRouter, Depends

from cityguide.core.deps import get_current_user
from cityguide.models.users import UserAuth
from cityguide.routers.auth import _to_user_response
from cityguide.schemas.auth import UserMeResponse

router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserMeResponse)
def me(current: UserAuth = Depends(get_current_user)) -> UserMeResponse:
    return _to_user_response(current)
