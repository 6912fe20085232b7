"""
Connection endpoints (all require a bearer token):
  POST /connections/request        — send a request to another user
  POST /connections/accept         — receiver accepts a pending request
  POST /connections/reject         — receiver rejects a pending request
  GET  /connections/requests       — pending requests the caller received
  GET  /connections                — the caller's accepted connections
  GET  /connections/status/{id}    — how the caller relates to user {id}
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models import Connection
from app.schemas import (
    AcceptedConnectionResponse,
    ConnectionActionBody,
    ConnectionListResponse,
    ConnectionRequestBody,
    ConnectionResponse,
    ConnectionStatusResponse,
    PendingRequestListResponse,
    PendingRequestResponse,
    UserSummary,
)
from app.security import TokenPayload, get_current_user
from app.services.connections import ConnectionService

logger = logging.getLogger(__name__)
router = APIRouter()


def _connection_fields(connection: Connection) -> dict:
    return ConnectionResponse.model_validate(connection).model_dump()


@router.post(
    "/request",
    response_model=ConnectionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_connection(
    body: ConnectionRequestBody,
    caller: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    connection = await ConnectionService(db).request_connection(
        caller.user_id, body.connected_user_id
    )
    return ConnectionResponse.model_validate(connection)


@router.post("/accept", response_model=ConnectionResponse)
async def accept_connection(
    body: ConnectionActionBody,
    caller: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    connection = await ConnectionService(db).accept_connection(
        caller.user_id, body.connection_id
    )
    return ConnectionResponse.model_validate(connection)


@router.post("/reject", response_model=ConnectionResponse)
async def reject_connection(
    body: ConnectionActionBody,
    caller: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    connection = await ConnectionService(db).reject_connection(
        caller.user_id, body.connection_id
    )
    return ConnectionResponse.model_validate(connection)


@router.get("/requests", response_model=PendingRequestListResponse)
async def list_pending_requests(
    caller: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    pending = await ConnectionService(db).list_pending_received(caller.user_id)
    requests = [
        PendingRequestResponse(
            **_connection_fields(p.connection),
            requester=UserSummary.model_validate(p.requester) if p.requester else None,
        )
        for p in pending
    ]
    return PendingRequestListResponse(requests=requests, count=len(requests))


@router.get("/", response_model=ConnectionListResponse)
async def list_connections(
    caller: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    accepted = await ConnectionService(db).list_accepted(caller.user_id)
    connections = [
        AcceptedConnectionResponse(
            **_connection_fields(a.connection),
            connected_user=UserSummary.model_validate(a.other),
        )
        for a in accepted
    ]
    return ConnectionListResponse(connections=connections, count=len(connections))


@router.get("/status/{user_id}", response_model=ConnectionStatusResponse)
async def connection_status(
    user_id: int,
    caller: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    relation = await ConnectionService(db).get_status(caller.user_id, user_id)
    return ConnectionStatusResponse(user_id=user_id, status=relation)
