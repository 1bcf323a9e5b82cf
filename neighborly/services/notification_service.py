"""Outcome notifications for lifecycle operations.

Every engine operation emits one OutcomeEvent (operation name + human-readable
outcome). The presentation layer subscribes and maps events to user-visible
messages; events are also logged.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from neighborly.core.errors import classify_error_with_response


logger = logging.getLogger(__name__)


class OutcomeEvent(BaseModel):
    """Result of a single lifecycle operation."""

    operation: str
    success: bool
    message: str
    actor_id: str | None = None
    entity_id: str | None = None
    error_code: str | None = None
    occurred_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat().replace("+00:00", "Z"))


Subscriber = Callable[[OutcomeEvent], Awaitable[None]]

_subscribers: list[Subscriber] = []


def subscribe(subscriber: Subscriber) -> None:
    """Register a coroutine function called with every outcome event."""
    if subscriber not in _subscribers:
        _subscribers.append(subscriber)


def unsubscribe(subscriber: Subscriber) -> None:
    if subscriber in _subscribers:
        _subscribers.remove(subscriber)


async def emit(event: OutcomeEvent) -> None:
    """Log the event and deliver it to every subscriber.

    A failing subscriber is logged and skipped; it never fails the operation
    that produced the event.
    """
    level = logging.INFO if event.success else logging.WARNING
    logger.log(
        level,
        "lifecycle_outcome",
        extra={
            "operation": event.operation,
            "success": event.success,
            "outcome": event.message,
            "actor_id": event.actor_id,
            "entity_id": event.entity_id,
        },
    )

    for subscriber in list(_subscribers):
        try:
            await subscriber(event)
        except Exception as e:
            logger.error(
                "Outcome subscriber failed",
                extra={"operation": event.operation, "subscriber": repr(subscriber), "error": str(e)},
            )


async def notify_success(
    *,
    operation: str,
    message: str,
    actor_id: str | None = None,
    entity_id: str | None = None,
) -> None:
    await emit(
        OutcomeEvent(operation=operation, success=True, message=message, actor_id=actor_id, entity_id=entity_id)
    )


async def notify_failure(
    *,
    operation: str,
    error: Exception,
    actor_id: str | None = None,
    entity_id: str | None = None,
) -> None:
    """Emit a failed outcome, using the classified user-facing message for the error."""
    response = classify_error_with_response(error)
    await emit(
        OutcomeEvent(
            operation=operation,
            success=False,
            message=response.message,
            actor_id=actor_id,
            entity_id=entity_id,
            error_code=response.code,
        )
    )
