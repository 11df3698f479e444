from datetime import datetime
from threading import Lock
from typing import Any, Dict, List, Optional, Protocol

from fastapi import BackgroundTasks
from loguru import logger
from sqlalchemy.engine import Engine
from sqlmodel import Session, func, select

from app.db.schema import EventType, NotificationEvent
from app.models.notification import NotificationRead


class NotificationSink(Protocol):
    """Anything that accepts delivered notifications, in commit order."""

    def deliver(self, event: NotificationRead) -> None:
        ...


class LoggingSink:
    """Default sink: one log line per notification."""

    def deliver(self, event: NotificationRead) -> None:
        logger.bind(event_id=event.id).info(
            f"Notification {event.event_type.value} product={event.product_id} "
            f"account={event.account} payload={event.payload}"
        )


def record_event(
    session: Session,
    event_type: EventType,
    *,
    product_id: Optional[int] = None,
    account: Optional[str] = None,
    **payload: Any
) -> NotificationEvent:
    """
    Stages a notification in the outbox.
    The caller commits it together with the mutation it describes.
    """
    event = NotificationEvent(
        event_type=event_type,
        product_id=product_id,
        account=account,
        payload=_jsonable(payload)
    )
    session.add(event)
    return event


def _jsonable(payload: Dict[str, Any]) -> Dict[str, Any]:
    clean = {}
    for key, value in payload.items():
        if hasattr(value, "value"):
            value = value.value
        clean[key] = value
    return clean


class NotificationDispatcher:
    """
    Drains committed outbox rows to the registered sinks.

    Rows are delivered strictly in id order. A row is marked delivered only
    after every sink accepted it; if a sink fails, the drain stops so that no
    later row overtakes it, and the next dispatch retries from there.
    """

    def __init__(self, engine: Engine, sinks: Optional[List[NotificationSink]] = None):
        self.engine = engine
        self.sinks: List[NotificationSink] = list(sinks or [])
        self._lock = Lock()

    def dispatch(self, batch_size: int = 100) -> int:
        """Background worker. Opens its OWN session. Returns the number delivered."""
        delivered = 0
        with self._lock:
            with Session(self.engine) as session:
                while True:
                    pending = session.exec(
                        select(NotificationEvent)
                        .where(NotificationEvent.delivered_at == None)  # noqa: E711
                        .order_by(NotificationEvent.id)
                        .limit(batch_size)
                    ).all()
                    if not pending:
                        break

                    for row in pending:
                        read = NotificationRead.model_validate(row)
                        try:
                            for sink in self.sinks:
                                sink.deliver(read)
                        except Exception:
                            logger.exception(
                                f"Notification delivery failed at event {row.id}; will retry on next dispatch")
                            session.commit()
                            return delivered

                        row.delivered_at = datetime.utcnow()
                        session.add(row)
                        delivered += 1

                    session.commit()

        return delivered


def list_events(
    session: Session,
    product_id: Optional[int] = None,
    account: Optional[str] = None,
    after_id: Optional[int] = None,
    limit: int = 100
) -> List[NotificationEvent]:
    """Reads the outbox in commit order, for consumers that poll."""
    query = select(NotificationEvent)
    if product_id is not None:
        query = query.where(NotificationEvent.product_id == product_id)
    if account is not None:
        query = query.where(NotificationEvent.account == account)
    if after_id is not None:
        query = query.where(NotificationEvent.id > after_id)
    query = query.order_by(NotificationEvent.id).limit(limit)
    return session.exec(query).all()


def count_undelivered(session: Session) -> int:
    return session.exec(
        select(func.count(NotificationEvent.id))
        .where(NotificationEvent.delivered_at == None)  # noqa: E711
    ).one()


def schedule_dispatch(
    dispatcher: Optional[NotificationDispatcher],
    background_tasks: Optional[BackgroundTasks] = None
) -> None:
    """
    Delivers freshly committed notifications.
    HTTP callers hand in their BackgroundTasks so the response is not held
    back by delivery; direct callers deliver inline.
    """
    if dispatcher is None:
        return
    if background_tasks is not None:
        background_tasks.add_task(dispatcher.dispatch)
    else:
        dispatcher.dispatch()
