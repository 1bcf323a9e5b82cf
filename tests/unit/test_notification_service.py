"""Unit tests for notification_service module."""

import pytest

from neighborly.core.errors import ConflictError, ErrorCode
from neighborly.services import notification_service
from neighborly.services.notification_service import OutcomeEvent


@pytest.mark.unit
class TestEmit:
    """Tests for emit and subscriber handling."""

    async def test_subscribers_receive_event(self, outcome_events):
        event = OutcomeEvent(operation="create_request", success=True, message="ok")

        await notification_service.emit(event)

        assert outcome_events == [event]

    async def test_failing_subscriber_does_not_block_others(self, outcome_events):
        async def _broken(event: OutcomeEvent) -> None:
            raise RuntimeError("subscriber down")

        notification_service.subscribe(_broken)

        await notification_service.emit(OutcomeEvent(operation="claim_request", success=True, message="ok"))

        assert len(outcome_events) == 1

    async def test_subscribe_is_idempotent(self, outcome_events):
        subscriber = notification_service._subscribers[0]
        notification_service.subscribe(subscriber)

        await notification_service.emit(OutcomeEvent(operation="x", success=True, message="ok"))

        assert len(outcome_events) == 1

    async def test_unsubscribe(self, outcome_events):
        notification_service.unsubscribe(notification_service._subscribers[0])

        await notification_service.emit(OutcomeEvent(operation="x", success=True, message="ok"))

        assert outcome_events == []


@pytest.mark.unit
class TestNotifyHelpers:
    async def test_notify_success(self, outcome_events):
        await notification_service.notify_success(
            operation="claim_request", message="Task assigned", actor_id="2", entity_id="10"
        )

        (event,) = outcome_events
        assert event.success
        assert event.message == "Task assigned"
        assert event.actor_id == "2"
        assert event.entity_id == "10"
        assert event.error_code is None
        assert event.occurred_at.endswith("Z")

    async def test_notify_failure_uses_classified_message(self, outcome_events):
        await notification_service.notify_failure(
            operation="claim_request", error=ConflictError("raced"), actor_id="2", entity_id="10"
        )

        (event,) = outcome_events
        assert not event.success
        assert event.error_code == ErrorCode.ERR_ALREADY_CLAIMED
        assert event.message == "This request has already been claimed by someone else."
