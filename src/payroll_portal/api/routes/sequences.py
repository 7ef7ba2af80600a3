"""Sequence number endpoints."""

from typing import Any

from fastapi import APIRouter, status

from payroll_portal.api.dependencies import CurrentUser, Sequences
from payroll_portal.api.schemas import (
    ErrorResponse,
    SequenceCreateRequest,
    SequenceCreateResponse,
)

router = APIRouter(tags=["sequence-numbers"])


@router.post(
    "/create",
    response_model=SequenceCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_sequence(
    sequences: Sequences,
    user: CurrentUser,
    payload: SequenceCreateRequest,
) -> SequenceCreateResponse:
    seq_id = await sequences.create_sequence(
        payload.type,
        payload.prefix,
        payload.next_available_number,
        created_by=user.uid,
    )
    return SequenceCreateResponse(message="Sequence number created successfully", id=seq_id)


@router.get("/get")
async def list_sequences(sequences: Sequences, user: CurrentUser) -> list[dict[str, Any]]:
    return await sequences.list_sequences()
