import datetime
from typing import Any, Callable, Sequence

from esdbclient import EventStoreDBClient, NewEvent, StreamState
from pydantic import BaseModel
from sqlmodel import Session, select

from carbon_registry.core.models.base import LedgerEventName
from carbon_registry.core.models.registry import LedgerEvent
from carbon_registry.logging_config import logger
from carbon_registry.settings import settings

LEDGER_EVENT_STREAM = "ledger-events"


class LedgerEventRead(BaseModel):
    id: int
    name: str
    subject: str
    payload: dict[str, Any]
    created_at: datetime.datetime


EventObserver = Callable[[LedgerEventRead], None]


def create_event(
    name: LedgerEventName,
    subject: Any,
    payload: dict[str, Any],
    session: Session,
) -> LedgerEvent:
    """Append a notification for an accepted transition.

    The row is written through the transition's own session, so it becomes
    durable only if the transition commits.
    """
    event = LedgerEvent(name=name.value, subject=str(subject), payload=payload)
    session.add(event)
    session.flush()
    logger.debug(f"Event {event.id} staged: {event.name} ({event.subject})")
    return event


def to_read(event: LedgerEvent) -> LedgerEventRead:
    return LedgerEventRead.model_validate(event, from_attributes=True)


def list_events(
    session: Session, after_id: int = 0, limit: int | None = None
) -> Sequence[LedgerEvent]:
    stmt = select(LedgerEvent).where(LedgerEvent.id > after_id).order_by(LedgerEvent.id)  # type: ignore
    if limit is not None:
        stmt = stmt.limit(limit)
    return session.exec(stmt).all()


class EventStoreDBPublisher:
    """Observer forwarding committed ledger events to an EventStoreDB stream."""

    def __init__(
        self,
        esdb_client: EventStoreDBClient,
        stream_name: str = LEDGER_EVENT_STREAM,
    ):
        self.esdb_client = esdb_client
        self.stream_name = stream_name

    def __call__(self, event: LedgerEventRead) -> None:
        self.esdb_client.append_event(
            stream_name=self.stream_name,
            event=NewEvent(type=event.name, data=event.model_dump_json().encode()),
            current_version=StreamState.ANY,
        )


def get_esdb_publisher() -> EventStoreDBPublisher | None:
    if not settings.ESDB_CONNECTION_STRING:
        return None
    logger.info("Publishing ledger events to EventStoreDB")
    return EventStoreDBPublisher(
        EventStoreDBClient(uri=settings.ESDB_CONNECTION_STRING)
    )
