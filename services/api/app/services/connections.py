"""
Connection request lifecycle.

  NONE ──request──▶ PENDING ──accept──▶ ACCEPTED
                       │
                       └────reject──▶ REJECTED   (a new request starts a fresh row)

Rows are directed (requester → receiver) but every existence check works on
the unordered pair through Connection.active_pair, so A→B and B→A block each
other while either is pending or accepted.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from opentelemetry import trace
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import (
    AlreadyConnected,
    ConflictError,
    ConnectionNotFound,
    ConnectionNotPending,
    ConnectionPending,
    NotAuthorized,
    SelfConnectionNotAllowed,
    UserNotFound,
)
from app.models import Connection, ConnectionStatus, RelationStatus, User, pair_key
from app.telemetry import CONNECTION_TRANSITIONS_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class PendingRequest:
    connection: Connection
    requester: Optional[User]


@dataclass
class AcceptedConnection:
    connection: Connection
    other: User


class ConnectionService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _live_row(self, user_a: int, user_b: int) -> Optional[Connection]:
        result = await self.db.execute(
            select(Connection).where(Connection.active_pair == pair_key(user_a, user_b))
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _raise_for_live(connection: Connection) -> None:
        if connection.status == ConnectionStatus.ACCEPTED:
            raise AlreadyConnected()
        raise ConnectionPending()

    async def request_connection(self, requester_id: int, target_id: int) -> Connection:
        with tracer.start_as_current_span("request_connection") as span:
            span.set_attribute("connection.requester_id", requester_id)
            span.set_attribute("connection.target_id", target_id)

            if requester_id == target_id:
                raise SelfConnectionNotAllowed()

            if await self.db.get(User, target_id) is None:
                raise UserNotFound("Target user not found")

            existing = await self._live_row(requester_id, target_id)
            if existing is not None:
                self._raise_for_live(existing)

            connection = Connection(
                user_id=requester_id,
                connected_user_id=target_id,
                status=ConnectionStatus.PENDING,
                active_pair=pair_key(requester_id, target_id),
            )
            self.db.add(connection)
            try:
                await self.db.flush()
            except IntegrityError as exc:
                # Lost a race with a concurrent request for the same pair
                await self.db.rollback()
                existing = await self._live_row(requester_id, target_id)
                if existing is not None:
                    self._raise_for_live(existing)
                raise ConflictError(
                    "Connection state changed concurrently, retry the request"
                ) from exc

            CONNECTION_TRANSITIONS_TOTAL.labels(transition="requested").inc()
            logger.info(
                "Connection %s requested: %s → %s",
                connection.id, requester_id, target_id,
            )
            return connection

    async def _respond(
        self, caller_id: int, connection_id: int, new_status: ConnectionStatus
    ) -> Connection:
        connection = await self.db.get(Connection, connection_id)
        if connection is None:
            raise ConnectionNotFound()
        if connection.connected_user_id != caller_id:
            raise NotAuthorized()
        if connection.status != ConnectionStatus.PENDING:
            raise ConnectionNotPending()

        values = {"status": new_status}
        if new_status == ConnectionStatus.REJECTED:
            values["active_pair"] = None

        # Compare-and-set: only a row that is still pending may move
        result = await self.db.execute(
            update(Connection)
            .where(
                Connection.id == connection_id,
                Connection.status == ConnectionStatus.PENDING,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConnectionNotPending()

        await self.db.refresh(connection)
        CONNECTION_TRANSITIONS_TOTAL.labels(transition=new_status.value).inc()
        logger.info("Connection %s %s by user %s", connection_id, new_status.value, caller_id)
        return connection

    async def accept_connection(self, caller_id: int, connection_id: int) -> Connection:
        with tracer.start_as_current_span("accept_connection"):
            return await self._respond(caller_id, connection_id, ConnectionStatus.ACCEPTED)

    async def reject_connection(self, caller_id: int, connection_id: int) -> Connection:
        with tracer.start_as_current_span("reject_connection"):
            return await self._respond(caller_id, connection_id, ConnectionStatus.REJECTED)

    async def list_pending_received(self, user_id: int) -> list[PendingRequest]:
        """Pending requests addressed to user_id, newest first, with the requester."""
        rows = await self.db.execute(
            select(Connection, User)
            .outerjoin(User, User.id == Connection.user_id)
            .where(
                Connection.connected_user_id == user_id,
                Connection.status == ConnectionStatus.PENDING,
            )
            .order_by(Connection.created_at.desc(), Connection.id.desc())
        )
        return [PendingRequest(connection=c, requester=u) for c, u in rows.all()]

    async def list_accepted(self, user_id: int) -> list[AcceptedConnection]:
        """
        Accepted connections on either side of user_id, newest first.

        Each row carries the other party; rows whose other party no longer
        exists are dropped.
        """
        rows = await self.db.execute(
            select(Connection)
            .where(
                Connection.status == ConnectionStatus.ACCEPTED,
                or_(
                    Connection.user_id == user_id,
                    Connection.connected_user_id == user_id,
                ),
            )
            .order_by(Connection.created_at.desc(), Connection.id.desc())
        )
        connections = rows.scalars().all()

        other_ids = {c.other_party(user_id) for c in connections}
        others: dict[int, User] = {}
        if other_ids:
            users = await self.db.execute(select(User).where(User.id.in_(other_ids)))
            others = {u.id: u for u in users.scalars().all()}

        accepted: list[AcceptedConnection] = []
        for connection in connections:
            other = others.get(connection.other_party(user_id))
            if other is None:
                logger.debug("Skipping connection %s with dangling user", connection.id)
                continue
            accepted.append(AcceptedConnection(connection=connection, other=other))
        return accepted

    async def count_accepted(self, user_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Connection.id)).where(
                Connection.status == ConnectionStatus.ACCEPTED,
                or_(
                    Connection.user_id == user_id,
                    Connection.connected_user_id == user_id,
                ),
            )
        )
        return result.scalar_one()

    async def get_status(self, viewer_id: int, target_id: int) -> RelationStatus:
        if viewer_id == target_id:
            return RelationStatus.SELF

        connection = await self._live_row(viewer_id, target_id)
        if connection is None:
            return RelationStatus.NONE
        if connection.status == ConnectionStatus.ACCEPTED:
            return RelationStatus.CONNECTED
        if connection.user_id == viewer_id:
            return RelationStatus.PENDING_SENT
        return RelationStatus.PENDING_RECEIVED
