"""Receiver configuration endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response, status

from post_emitter.api.v1.dependencies import ContextDep
from post_emitter.models import Receiver
from post_emitter.schemas.delivery import DeliveryResult
from post_emitter.schemas.receiver import ReceiverCreate, ReceiverResponse, ReceiverUpdate
from post_emitter.services.receivers import ReceiverNotFoundError
from post_emitter.services.validation import InvalidReceiverError

router = APIRouter(prefix="/receivers", tags=["receivers"])


def _to_response(receiver: Receiver) -> ReceiverResponse:
    return ReceiverResponse(
        id=receiver.id,
        name=receiver.name,
        url=receiver.url,
        status=receiver.status,
        has_token=bool(receiver.auth_token),
        created_at=receiver.created_at,
        updated_at=receiver.updated_at,
    )


@router.get("/", response_model=list[ReceiverResponse])
async def list_receivers(context: ContextDep) -> list[ReceiverResponse]:
    """List configured receivers without their tokens."""
    return [_to_response(receiver) for receiver in context.registry.records()]


@router.post("/", response_model=ReceiverResponse, status_code=status.HTTP_201_CREATED)
async def create_receiver(payload: ReceiverCreate, context: ContextDep) -> ReceiverResponse:
    try:
        receiver = context.registry.add(
            payload.name, payload.url, auth_token=payload.auth_token, status=payload.status
        )
    except InvalidReceiverError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    return _to_response(receiver)


@router.get("/{receiver_id}", response_model=ReceiverResponse)
async def get_receiver(receiver_id: int, context: ContextDep) -> ReceiverResponse:
    try:
        receiver = context.registry.get_record(receiver_id)
    except ReceiverNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _to_response(receiver)


@router.put("/{receiver_id}", response_model=ReceiverResponse)
async def update_receiver(
    receiver_id: int, payload: ReceiverUpdate, context: ContextDep
) -> ReceiverResponse:
    """Update a receiver; an empty ``auth_token`` keeps the stored one."""
    try:
        receiver = context.registry.update(
            receiver_id,
            name=payload.name,
            url=payload.url,
            auth_token=payload.auth_token,
            status=payload.status,
        )
    except ReceiverNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvalidReceiverError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    return _to_response(receiver)


@router.delete("/{receiver_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_receiver(receiver_id: int, context: ContextDep) -> Response:
    try:
        context.registry.remove(receiver_id)
    except ReceiverNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{receiver_id}/test", response_model=DeliveryResult)
async def test_receiver(receiver_id: int, context: ContextDep) -> DeliveryResult:
    """Check connectivity and token validity against the receiver."""
    receiver = context.registry.get_by_id(receiver_id)
    if receiver is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"Receiver {receiver_id} not found"
        )
    return await context.delivery.test_connection(receiver)
