"""Lifecycle engine for help requests and the tasks that claim them.

Every operation takes the acting user explicitly, bounds each store call by a
caller-supplied timeout, and emits an outcome event whether it succeeds or fails.
"""

import logging
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

import pydantic

from neighborly.core import db_client
from neighborly.core.config import Constants, settings
from neighborly.core.db_client import (
    RecordNotFoundError,
    StoreConstraintError,
    StoreError,
    StoreTimeoutError,
    sanitize_param,
)
from neighborly.core.errors import (
    ConcurrentUpdateError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from neighborly.core.logging import log_with_actor_context, span
from neighborly.domain.create_models import HelpRequestCreate, TaskCreate
from neighborly.domain.help_request import HelpRequest, RequestStatus, RequestType
from neighborly.domain.profile import Actor
from neighborly.domain.task import Task, TaskStatus, TaskWithRequest
from neighborly.domain.update_models import HelpRequestUpdate
from neighborly.services import authorization, notification_service, task_state_machine


logger = logging.getLogger(__name__)

T = TypeVar("T")

REQUESTS = "help_requests"
TASKS = "tasks"


@dataclass
class _Outcome:
    message: str = ""
    entity_id: str | None = None


@asynccontextmanager
async def _reported(
    operation: str,
    *,
    actor: Actor | None,
    entity_id: str | None = None,
) -> AsyncIterator[_Outcome]:
    """Emit a success or failure outcome event for the wrapped operation."""
    outcome = _Outcome(entity_id=entity_id)
    actor_id = actor.id if actor else None
    try:
        yield outcome
    except Exception as e:
        log_with_actor_context(
            logger,
            "warning",
            f"{operation} failed",
            actor_id=actor_id,
            entity_id=outcome.entity_id,
            error_type=type(e).__name__,
            error=str(e),
        )
        await notification_service.notify_failure(
            operation=operation, error=e, actor_id=actor_id, entity_id=outcome.entity_id
        )
        raise
    await notification_service.notify_success(
        operation=operation, message=outcome.message, actor_id=actor_id, entity_id=outcome.entity_id
    )


def _bound(timeout: float | None) -> float:
    return settings.store_timeout_seconds if timeout is None else timeout


async def _store(awaitable: Awaitable[T], timeout: float) -> T:
    return await db_client.call_with_timeout(awaitable, timeout=timeout)


def _validation_message(error: pydantic.ValidationError) -> str:
    parts = []
    for item in error.errors():
        field = ".".join(str(loc) for loc in item["loc"]) or "payload"
        parts.append(f"{field}: {item['msg']}")
    return "; ".join(parts)


async def _load_request(request_id: str, timeout: float) -> HelpRequest:
    try:
        record = await _store(db_client.get_record(collection=REQUESTS, record_id=request_id), timeout)
    except RecordNotFoundError as e:
        raise NotFoundError(f"Help request not found: {request_id}") from e
    return HelpRequest.model_validate(record)


async def _load_task(task_id: str, timeout: float) -> Task:
    try:
        record = await _store(db_client.get_record(collection=TASKS, record_id=task_id), timeout)
    except RecordNotFoundError as e:
        raise NotFoundError(f"Task not found: {task_id}") from e
    return Task.model_validate(record)


async def create_request(
    *,
    actor: Actor | None,
    title: str,
    description: str,
    category: str = "",
    request_type: RequestType | str = RequestType.INDIVIDUAL,
    timeout: float | None = None,
) -> HelpRequest:
    """Publish a new help request owned by the actor.

    Args:
        actor: Authenticated actor (becomes the owner)
        title: Short summary, must not be blank
        description: Detailed description, must not be blank
        category: Free-form classification
        request_type: individual or organization
        timeout: Bound in seconds for each store call

    Returns:
        The created request, with status open

    Raises:
        PermissionDeniedError: If actor is None
        ValidationError: If required fields are empty or malformed
        StoreError: If persistence fails
    """
    with span("lifecycle_service.create_request"):
        async with _reported("create_request", actor=actor) as outcome:
            actor = authorization.require_actor(actor)
            try:
                payload = HelpRequestCreate(
                    owner_id=actor.id,
                    title=title,
                    description=description,
                    category=category,
                    request_type=request_type,
                )
            except pydantic.ValidationError as e:
                raise ValidationError(_validation_message(e)) from e

            record = await _store(
                db_client.create_record(collection=REQUESTS, data=payload.model_dump(mode="json")),
                _bound(timeout),
            )
            request = HelpRequest.model_validate(record)

            outcome.entity_id = request.id
            outcome.message = "Help request created successfully"
            logger.info("Created help request %s for owner %s", request.id, actor.id)
        return request


async def update_request(
    *,
    actor: Actor | None,
    request_id: str,
    fields: HelpRequestUpdate | dict[str, Any],
    timeout: float | None = None,
) -> HelpRequest:
    """Merge fields into an existing help request.

    Status is only changed when ``fields`` sets it explicitly.

    Raises:
        PermissionDeniedError: If the actor is not the owner
        NotFoundError: If the request does not exist
        ValidationError: If the fields are malformed or unknown
    """
    with span("lifecycle_service.update_request"):
        async with _reported("update_request", actor=actor, entity_id=request_id) as outcome:
            actor = authorization.require_actor(actor)
            bound = _bound(timeout)
            request = await _load_request(request_id, bound)

            if not authorization.can_manage_request(actor, request):
                raise PermissionDeniedError(f"Actor {actor.id} cannot edit help request {request_id}")

            if isinstance(fields, dict):
                try:
                    fields = HelpRequestUpdate.model_validate(fields)
                except pydantic.ValidationError as e:
                    raise ValidationError(_validation_message(e)) from e

            data = fields.model_dump(mode="json", exclude_none=True)
            if data:
                try:
                    record = await _store(
                        db_client.update_record(collection=REQUESTS, record_id=request_id, data=data), bound
                    )
                except RecordNotFoundError as e:
                    raise NotFoundError(f"Help request not found: {request_id}") from e
                request = HelpRequest.model_validate(record)

            outcome.message = "Help request updated successfully"
        return request


async def delete_request(
    *,
    actor: Actor | None,
    request_id: str,
    timeout: float | None = None,
) -> None:
    """Delete a help request. Tasks that reference it are left orphaned.

    Raises:
        PermissionDeniedError: If the actor is not the owner
        NotFoundError: If the request does not exist
    """
    with span("lifecycle_service.delete_request"):
        async with _reported("delete_request", actor=actor, entity_id=request_id) as outcome:
            actor = authorization.require_actor(actor)
            bound = _bound(timeout)
            request = await _load_request(request_id, bound)

            if not authorization.can_manage_request(actor, request):
                raise PermissionDeniedError(f"Actor {actor.id} cannot delete help request {request_id}")

            try:
                await _store(db_client.delete_record(collection=REQUESTS, record_id=request_id), bound)
            except RecordNotFoundError as e:
                raise NotFoundError(f"Help request not found: {request_id}") from e

            outcome.message = "Help request deleted successfully"
            logger.info("Deleted help request %s", request_id)


async def claim_request(
    *,
    actor: Actor | None,
    request_id: str,
    timeout: float | None = None,
) -> Task:
    """Claim an open help request, creating a pending task for the actor.

    The open -> in_progress move is a compare-and-swap in the store, so of two
    concurrent claims exactly one wins. If the task insert then fails, the
    request is put back to open before the error propagates.

    Args:
        actor: Volunteer claiming the request
        request_id: Help request to claim
        timeout: Bound in seconds for each store call

    Returns:
        The created task

    Raises:
        PermissionDeniedError: If the actor owns the request (or is None)
        ConflictError: If the request is not open (already claimed) or still has
            an unfinished task from an earlier claim
        NotFoundError: If the request does not exist
        StoreError: If persistence fails
    """
    with span("lifecycle_service.claim_request"):
        async with _reported("claim_request", actor=actor, entity_id=request_id) as outcome:
            actor = authorization.require_actor(actor)
            bound = _bound(timeout)
            request = await _load_request(request_id, bound)

            if actor.id == request.owner_id:
                raise PermissionDeniedError(f"Actor {actor.id} cannot claim their own help request {request_id}")
            if not authorization.can_claim(actor, request):
                raise ConflictError(f"Help request {request_id} is already claimed ({request.status})")

            try:
                swapped = await _store(
                    db_client.update_record_if(
                        collection=REQUESTS,
                        record_id=request_id,
                        data={"status": RequestStatus.IN_PROGRESS.value},
                        expected={"status": RequestStatus.OPEN.value},
                    ),
                    bound,
                )
            except RecordNotFoundError as e:
                raise NotFoundError(f"Help request not found: {request_id}") from e

            if swapped is None:
                raise ConflictError(f"Help request {request_id} was already claimed")

            payload = TaskCreate(help_request_id=request_id, assignee_id=actor.id)
            try:
                record = await _store(
                    db_client.create_record(collection=TASKS, data=payload.model_dump(mode="json")), bound
                )
            except StoreTimeoutError:
                # The insert may still have committed; leave the request claimed for repair
                logger.error(
                    "Task insert timed out after claiming request %s; status left in_progress",
                    request_id,
                    extra={"request_id": request_id, "actor_id": actor.id},
                )
                raise
            except StoreConstraintError as e:
                # An unfinished task from an earlier claim still holds the request
                await _release_claim(request_id, bound)
                raise ConflictError(f"Help request {request_id} already has an unfinished task") from e
            except StoreError:
                await _release_claim(request_id, bound)
                raise

            task = Task.model_validate(record)
            outcome.message = "Task assigned successfully! You can now work on it from your Tasks page."
            logger.info("Actor %s claimed help request %s as task %s", actor.id, request_id, task.id)
        return task


async def _release_claim(request_id: str, timeout: float) -> None:
    """Compensate a claim whose task could not be created."""
    try:
        await _store(
            db_client.update_record_if(
                collection=REQUESTS,
                record_id=request_id,
                data={"status": RequestStatus.OPEN.value},
                expected={"status": RequestStatus.IN_PROGRESS.value},
            ),
            timeout,
        )
        logger.info("Released claim on help request %s after task insert failure", request_id)
    except StoreError as e:
        logger.error(
            "Failed to release claim on help request %s",
            request_id,
            extra={"request_id": request_id, "error": str(e)},
        )


async def advance_task(
    *,
    actor: Actor | None,
    task_id: str,
    new_status: TaskStatus | str,
    timeout: float | None = None,
) -> Task:
    """Move a task one step forward: pending -> in_progress -> done.

    When the task reaches done its help request is marked completed. That
    second write is best-effort: the task change stands even if it fails, and
    a request that no longer exists is silently skipped.

    Raises:
        PermissionDeniedError: If the actor is neither assignee nor admin
        InvalidTransitionError: If new_status is not the next step
        NotFoundError: If the task does not exist
        ConcurrentUpdateError: If the task changed status concurrently
    """
    with span("lifecycle_service.advance_task"):
        async with _reported("advance_task", actor=actor, entity_id=task_id) as outcome:
            actor = authorization.require_actor(actor)
            bound = _bound(timeout)

            try:
                target = TaskStatus(new_status)
            except ValueError as e:
                raise InvalidTransitionError(f"Unknown task status: {new_status}") from e

            task = await _load_task(task_id, bound)

            if not authorization.can_manage_task(actor, task):
                raise PermissionDeniedError(f"Actor {actor.id} cannot update task {task_id}")

            task_state_machine.validate_task_transition(task_id=task_id, current=task.status, new=target)

            try:
                record = await _store(
                    db_client.update_record_if(
                        collection=TASKS,
                        record_id=task_id,
                        data={"status": target.value},
                        expected={"status": task.status.value},
                    ),
                    bound,
                )
            except RecordNotFoundError as e:
                raise NotFoundError(f"Task not found: {task_id}") from e

            if record is None:
                raise ConcurrentUpdateError(f"Task {task_id} changed status concurrently")

            task = Task.model_validate(record)
            if target == TaskStatus.DONE:
                await _propagate_completion(task=task, actor=actor, timeout=bound)

            outcome.message = f"Task marked as {target.value.replace('_', ' ')}"
            logger.info("Task %s moved to %s by %s", task_id, target, actor.id)
        return task


async def _propagate_completion(*, task: Task, actor: Actor, timeout: float) -> None:
    """Mark the owning help request completed after its task is done."""
    with span("lifecycle_service.propagate_completion"):
        try:
            await _store(
                db_client.update_record(
                    collection=REQUESTS,
                    record_id=task.help_request_id,
                    data={"status": RequestStatus.COMPLETED.value},
                ),
                timeout,
            )
            logger.info("Help request %s completed by task %s", task.help_request_id, task.id)
        except RecordNotFoundError:
            logger.info(
                "Help request %s no longer exists; skipping completion for task %s",
                task.help_request_id,
                task.id,
            )
        except StoreError as e:
            logger.error(
                "request_reconciliation_failed",
                extra={"request_id": task.help_request_id, "task_id": task.id, "error": str(e)},
            )
            await notification_service.notify_failure(
                operation="reconcile_request_status",
                error=e,
                actor_id=actor.id,
                entity_id=task.help_request_id,
            )


async def delete_task(
    *,
    actor: Actor | None,
    task_id: str,
    timeout: float | None = None,
) -> None:
    """Delete a task. The owning help request's status is left as it is.

    Raises:
        PermissionDeniedError: If the actor is neither assignee nor admin
        NotFoundError: If the task does not exist
    """
    with span("lifecycle_service.delete_task"):
        async with _reported("delete_task", actor=actor, entity_id=task_id) as outcome:
            actor = authorization.require_actor(actor)
            bound = _bound(timeout)
            task = await _load_task(task_id, bound)

            if not authorization.can_manage_task(actor, task):
                raise PermissionDeniedError(f"Actor {actor.id} cannot delete task {task_id}")

            try:
                await _store(db_client.delete_record(collection=TASKS, record_id=task_id), bound)
            except RecordNotFoundError as e:
                raise NotFoundError(f"Task not found: {task_id}") from e

            outcome.message = "Task deleted successfully"
            logger.info("Deleted task %s (help request %s left as is)", task_id, task.help_request_id)


async def set_request_status(
    *,
    actor: Actor | None,
    request_id: str,
    new_status: RequestStatus | str,
    timeout: float | None = None,
) -> HelpRequest:
    """Overwrite a help request's status directly (owner or admin).

    This bypasses the task-derived status and may leave the request out of
    sync with its tasks; recompute_request_status repairs that.

    Raises:
        PermissionDeniedError: If the actor is neither owner nor admin
        NotFoundError: If the request does not exist
        ValidationError: If new_status is not a request status
    """
    with span("lifecycle_service.set_request_status"):
        async with _reported("set_request_status", actor=actor, entity_id=request_id) as outcome:
            actor = authorization.require_actor(actor)
            bound = _bound(timeout)

            try:
                status = RequestStatus(new_status)
            except ValueError as e:
                raise ValidationError(f"Unknown help request status: {new_status}") from e

            request = await _load_request(request_id, bound)
            if not authorization.can_set_request_status(actor, request):
                raise PermissionDeniedError(f"Actor {actor.id} cannot change status of help request {request_id}")

            try:
                record = await _store(
                    db_client.update_record(collection=REQUESTS, record_id=request_id, data={"status": status.value}),
                    bound,
                )
            except RecordNotFoundError as e:
                raise NotFoundError(f"Help request not found: {request_id}") from e

            outcome.message = f"Request marked as {status.value}"
        return HelpRequest.model_validate(record)


async def recompute_request_status(
    *,
    request_id: str,
    actor: Actor | None = None,
    timeout: float | None = None,
) -> HelpRequest:
    """Repair a help request's status from the tasks that currently reference it.

    Intended for operators and scheduled jobs; writes only when the derived
    status differs from the stored one.

    Raises:
        NotFoundError: If the request does not exist
    """
    with span("lifecycle_service.recompute_request_status"):
        async with _reported("recompute_request_status", actor=actor, entity_id=request_id) as outcome:
            bound = _bound(timeout)
            request = await _load_request(request_id, bound)
            tasks = await _tasks_for_request(request_id, bound)
            derived = task_state_machine.derive_request_status([task.status for task in tasks])

            if derived == request.status:
                outcome.message = f"Request status already {derived.value}"
                return request

            try:
                record = await _store(
                    db_client.update_record(collection=REQUESTS, record_id=request_id, data={"status": derived.value}),
                    bound,
                )
            except RecordNotFoundError as e:
                raise NotFoundError(f"Help request not found: {request_id}") from e

            logger.warning(
                "Repaired help request %s status: %s -> %s",
                request_id,
                request.status,
                derived,
                extra={"request_id": request_id, "task_count": len(tasks)},
            )
            outcome.message = f"Request status repaired to {derived.value}"
        return HelpRequest.model_validate(record)


async def _tasks_for_request(request_id: str, timeout: float) -> list[Task]:
    records = await _store(
        db_client.list_all_records(
            collection=TASKS,
            filter_query=f'help_request_id = "{sanitize_param(request_id)}"',
            per_page=Constants.DEFAULT_PER_PAGE_LIMIT,
        ),
        timeout,
    )
    return [Task.model_validate(record) for record in records]


async def get_request(*, request_id: str, timeout: float | None = None) -> HelpRequest:
    """Get a help request by ID.

    Raises:
        NotFoundError: If the request does not exist
    """
    return await _load_request(request_id, _bound(timeout))


async def get_task(*, task_id: str, timeout: float | None = None) -> Task:
    """Get a task by ID.

    Raises:
        NotFoundError: If the task does not exist
    """
    return await _load_task(task_id, _bound(timeout))


async def list_requests(
    *,
    owner_id: str | None = None,
    status: RequestStatus | None = None,
    timeout: float | None = None,
) -> list[HelpRequest]:
    """List help requests, newest first, optionally by owner and status."""
    with span("lifecycle_service.list_requests"):
        filters = []
        if owner_id:
            filters.append(f'owner_id = "{sanitize_param(owner_id)}"')
        if status:
            filters.append(f'status = "{sanitize_param(status)}"')

        records = await _store(
            db_client.list_all_records(
                collection=REQUESTS,
                filter_query=" && ".join(filters),
                sort="-created_at",
                per_page=Constants.DEFAULT_PER_PAGE_LIMIT,
            ),
            _bound(timeout),
        )
        return [HelpRequest.model_validate(record) for record in records]


async def list_tasks(
    *,
    assignee_id: str | None = None,
    status: TaskStatus | None = None,
    timeout: float | None = None,
) -> list[Task]:
    """List tasks, newest first, optionally by assignee and status."""
    with span("lifecycle_service.list_tasks"):
        filters = []
        if assignee_id:
            filters.append(f'assignee_id = "{sanitize_param(assignee_id)}"')
        if status:
            filters.append(f'status = "{sanitize_param(status)}"')

        records = await _store(
            db_client.list_all_records(
                collection=TASKS,
                filter_query=" && ".join(filters),
                sort="-created_at",
                per_page=Constants.DEFAULT_PER_PAGE_LIMIT,
            ),
            _bound(timeout),
        )
        return [Task.model_validate(record) for record in records]


async def list_tasks_with_requests(
    *,
    assignee_id: str | None = None,
    timeout: float | None = None,
) -> list[TaskWithRequest]:
    """List tasks joined with their help request; orphaned tasks carry no request fields."""
    with span("lifecycle_service.list_tasks_with_requests"):
        bound = _bound(timeout)
        tasks = await list_tasks(assignee_id=assignee_id, timeout=bound)

        requests: dict[str, HelpRequest | None] = {}
        for request_id in {task.help_request_id for task in tasks}:
            try:
                requests[request_id] = await _load_request(request_id, bound)
            except NotFoundError:
                requests[request_id] = None

        joined = []
        for task in tasks:
            request = requests[task.help_request_id]
            extra: dict[str, Any] = {}
            if request is not None:
                extra = {
                    "request_title": request.title,
                    "request_description": request.description,
                    "request_category": request.category,
                    "request_owner_id": request.owner_id,
                }
            joined.append(TaskWithRequest(**task.model_dump(), **extra))
        return joined


async def find_status_drift(*, timeout: float | None = None) -> list[tuple[HelpRequest, RequestStatus]]:
    """Report help requests whose stored status differs from the task-derived one.

    Read-only; the repair is an explicit recompute_request_status call.

    Returns:
        (request, derived_status) pairs for every drifted request
    """
    with span("lifecycle_service.find_status_drift"):
        bound = _bound(timeout)
        requests = await list_requests(timeout=bound)
        tasks = await list_tasks(timeout=bound)

        statuses_by_request: dict[str, list[TaskStatus]] = {}
        for task in tasks:
            statuses_by_request.setdefault(task.help_request_id, []).append(task.status)

        drifted = []
        for request in requests:
            derived = task_state_machine.derive_request_status(statuses_by_request.get(request.id, []))
            if derived != request.status:
                drifted.append((request, derived))
        return drifted
