"""us_user REST API: every endpoint resolves the caller from the bearer token.

The caller id (or None) is handed to the service, which raises 401/403.
"""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.us_common.database import get_db_session
from src.us_common.response import ApiResponse, success_response
from src.us_gateway.auth.dependencies import get_caller_id
from src.us_user.application.schemas import UserCreateRequest, UserUpdateRequest
from src.us_user.application.service import UserApplicationService

router = APIRouter(prefix="/users", tags=["users"])

_service = UserApplicationService()

CallerId = Annotated[str | None, Depends(get_caller_id)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create own user record")
async def create_user(
    body: UserCreateRequest,
    caller_id: CallerId,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _service.create(db, caller_id, body)
    return success_response(data.model_dump(mode="json"), request, "User created")


@router.post("/ids", summary="Batch lookup (only own records are returned)")
async def get_users_by_ids(
    caller_id: CallerId,
    db: DbSession,
    request: Request,
    user_ids: list[str] = Body(..., max_length=1000),
) -> ApiResponse:
    data = await _service.find_by_ids(db, caller_id, user_ids)
    return success_response([u.model_dump(mode="json") for u in data], request)


@router.get("/email/{email}")
async def get_user_by_email(
    email: str,
    caller_id: CallerId,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _service.find_by_email(db, caller_id, email)
    return success_response(data.model_dump(mode="json"), request)


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    caller_id: CallerId,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _service.find_by_id(db, caller_id, user_id)
    return success_response(data.model_dump(mode="json"), request)


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    body: UserUpdateRequest,
    caller_id: CallerId,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _service.update(db, caller_id, user_id, body)
    return success_response(data.model_dump(mode="json"), request, "User updated")


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    caller_id: CallerId,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    await _service.delete(db, caller_id, user_id)
    return success_response(None, request, "User deleted")
