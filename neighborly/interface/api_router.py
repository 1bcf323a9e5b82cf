"""JSON API exposing the help request lifecycle to the presentation layer."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from neighborly.core.config import Constants
from neighborly.core.db_client import RecordNotFoundError, StoreError, StoreTimeoutError
from neighborly.core.errors import (
    ConflictError,
    InvalidTransitionError,
    LifecycleError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    classify_error_with_response,
)
from neighborly.domain.help_request import HelpRequest, RequestType
from neighborly.domain.profile import Actor
from neighborly.domain.task import Task
from neighborly.domain.update_models import RequestStatusUpdate
from neighborly.services import authorization, lifecycle_service, profile_service, stats_service, view_filter
from neighborly.services.stats_service import ActorStatistics


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["lifecycle"])


class RequestCreateBody(BaseModel):
    """Body for publishing a help request."""

    title: str
    description: str
    category: str = ""
    request_type: RequestType = RequestType.INDIVIDUAL


class TaskAdvanceBody(BaseModel):
    """Body for moving a task to its next status."""

    status: str


async def current_actor(
    actor_id: str | None = Header(default=None, alias=Constants.ACTOR_HEADER),
) -> Actor | None:
    """Resolve the authenticated actor from the X-Actor-Id header."""
    return await profile_service.resolve_actor(actor_id)


def _status_code_for(exc: Exception) -> int:  # noqa: PLR0911
    if isinstance(exc, ConflictError | InvalidTransitionError):
        return 409
    if isinstance(exc, ValidationError):
        return 422
    if isinstance(exc, PermissionDeniedError):
        return 403
    if isinstance(exc, NotFoundError | RecordNotFoundError):
        return 404
    if isinstance(exc, StoreTimeoutError):
        return 504
    if isinstance(exc, StoreError):
        return 503
    return 500


async def _lifecycle_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    response = classify_error_with_response(exc)
    status_code = _status_code_for(exc)
    logger.info("api_error", extra={"status_code": status_code, "code": response.code, "error": str(exc)})
    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json"))


def register_exception_handlers(app: FastAPI) -> None:
    """Map lifecycle and store errors to HTTP responses."""
    app.add_exception_handler(LifecycleError, _lifecycle_error_handler)
    app.add_exception_handler(StoreError, _lifecycle_error_handler)


@router.get("/requests")
async def get_requests(
    search: str = "",
    status: str = view_filter.ALL,
    actor: Actor | None = Depends(current_actor),
) -> list[HelpRequest]:
    """List help requests visible to the actor, filtered by search term and status."""
    actor = authorization.require_actor(actor)
    requests = await lifecycle_service.list_requests()
    return view_filter.visible_requests(requests, actor.role, search_term=search, status_filter=status)


@router.get("/requests/mine")
async def get_my_requests(actor: Actor | None = Depends(current_actor)) -> list[HelpRequest]:
    """List the actor's own help requests, newest first."""
    actor = authorization.require_actor(actor)
    return await lifecycle_service.list_requests(owner_id=actor.id)


@router.post("/requests", status_code=201)
async def post_request(
    body: RequestCreateBody,
    actor: Actor | None = Depends(current_actor),
) -> HelpRequest:
    return await lifecycle_service.create_request(
        actor=actor,
        title=body.title,
        description=body.description,
        category=body.category,
        request_type=body.request_type,
    )


@router.patch("/requests/{request_id}")
async def patch_request(
    request_id: str,
    fields: dict[str, Any] = Body(...),
    actor: Actor | None = Depends(current_actor),
) -> HelpRequest:
    return await lifecycle_service.update_request(actor=actor, request_id=request_id, fields=fields)


@router.delete("/requests/{request_id}", status_code=204)
async def remove_request(request_id: str, actor: Actor | None = Depends(current_actor)) -> None:
    await lifecycle_service.delete_request(actor=actor, request_id=request_id)


@router.post("/requests/{request_id}/claim", status_code=201)
async def claim(request_id: str, actor: Actor | None = Depends(current_actor)) -> Task:
    return await lifecycle_service.claim_request(actor=actor, request_id=request_id)


@router.put("/requests/{request_id}/status")
async def put_request_status(
    request_id: str,
    body: RequestStatusUpdate,
    actor: Actor | None = Depends(current_actor),
) -> HelpRequest:
    return await lifecycle_service.set_request_status(actor=actor, request_id=request_id, new_status=body.status)


@router.post("/requests/{request_id}/recompute")
async def recompute(request_id: str, actor: Actor | None = Depends(current_actor)) -> HelpRequest:
    """Repair a request's status from its tasks (admin only)."""
    actor = authorization.require_actor(actor)
    if not actor.is_admin:
        raise PermissionDeniedError("Only admins can recompute request status")
    return await lifecycle_service.recompute_request_status(request_id=request_id, actor=actor)


@router.get("/tasks")
async def get_tasks(
    status: str = view_filter.ALL,
    actor: Actor | None = Depends(current_actor),
) -> list[dict[str, Any]]:
    """List tasks visible to the actor (own tasks, or all for admins) with request details."""
    actor = authorization.require_actor(actor)
    assignee_id = None if actor.is_admin else actor.id
    tasks = await lifecycle_service.list_tasks_with_requests(assignee_id=assignee_id)
    visible = view_filter.visible_tasks(tasks, actor, actor.role, status_filter=status)
    return [{**task.model_dump(mode="json"), "display_title": view_filter.display_title(task)} for task in visible]


@router.post("/tasks/{task_id}/advance")
async def advance(
    task_id: str,
    body: TaskAdvanceBody,
    actor: Actor | None = Depends(current_actor),
) -> Task:
    return await lifecycle_service.advance_task(actor=actor, task_id=task_id, new_status=body.status)


@router.delete("/tasks/{task_id}", status_code=204)
async def remove_task(task_id: str, actor: Actor | None = Depends(current_actor)) -> None:
    await lifecycle_service.delete_task(actor=actor, task_id=task_id)


@router.get("/me/stats")
async def get_my_stats(actor: Actor | None = Depends(current_actor)) -> ActorStatistics:
    actor = authorization.require_actor(actor)
    return await stats_service.get_actor_stats(actor_id=actor.id)
