"""us_card REST API: every endpoint resolves the caller from the bearer token."""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Path, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.us_card.application.schemas import (
    CARD_ID_MAX,
    CardCreateRequest,
    CardId,
    CardUpdateRequest,
)
from src.us_card.application.service import CardApplicationService
from src.us_common.database import get_db_session
from src.us_common.response import ApiResponse, success_response
from src.us_gateway.auth.dependencies import get_caller_id

router = APIRouter(prefix="/cards", tags=["cards"])

_service = CardApplicationService()

CallerId = Annotated[str | None, Depends(get_caller_id)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
# BIGSERIAL range; larger values would fail in the driver, not as a 404
CardIdPath = Annotated[int, Path(ge=1, le=CARD_ID_MAX)]


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a card for the caller")
async def create_card(
    body: CardCreateRequest,
    caller_id: CallerId,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _service.create(db, caller_id, body)
    return success_response(data.model_dump(mode="json"), request, "Card created")


@router.post("/ids", summary="Batch lookup (only own cards are returned)")
async def get_cards_by_ids(
    caller_id: CallerId,
    db: DbSession,
    request: Request,
    card_ids: list[CardId] = Body(..., max_length=1000),
) -> ApiResponse:
    data = await _service.find_by_ids(db, caller_id, card_ids)
    return success_response([c.model_dump(mode="json") for c in data], request)


@router.get("/{card_id}")
async def get_card(
    card_id: CardIdPath,
    caller_id: CallerId,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _service.find_by_id(db, caller_id, card_id)
    return success_response(data.model_dump(mode="json"), request)


@router.put("/{card_id}")
async def update_card(
    card_id: CardIdPath,
    body: CardUpdateRequest,
    caller_id: CallerId,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _service.update(db, caller_id, card_id, body)
    return success_response(data.model_dump(mode="json"), request, "Card updated")


@router.delete("/{card_id}")
async def delete_card(
    card_id: CardIdPath,
    caller_id: CallerId,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    await _service.delete(db, caller_id, card_id)
    return success_response(None, request, "Card deleted")
