"""Task service: role-scoped CRUD and geo queries over tasks."""

import logging
import math
from typing import Any

from src.core import db_client
from src.core.config import constants
from src.core.errors import NotFoundError, ValidationError
from src.core.logging import span
from src.domain.create_models import TaskCreate, validate_coordinates
from src.domain.task import Task, TaskStatus
from src.domain.update_models import TaskUpdate
from src.domain.user import User
from src.services import authorization, user_service
from src.services.authorization import Operation


logger = logging.getLogger(__name__)


def _to_task(record: dict[str, Any]) -> Task:
    return Task.model_validate(record)


async def find_task(*, task_id: str) -> Task | None:
    """Get a task by ID without any access check, or None if it does not exist."""
    try:
        record = await db_client.get_record(collection="tasks", record_id=task_id)
    except db_client.RecordNotFoundError:
        return None
    return _to_task(record)


async def get_task_unchecked(*, task_id: str) -> Task:
    """Get a task by ID without any access check.

    Raises:
        NotFoundError: If the task does not exist
    """
    task = await find_task(task_id=task_id)
    if task is None:
        raise NotFoundError("Task not found")
    return task


async def _require_assignee(assignee_id: str) -> None:
    if await user_service.find_user(user_id=assignee_id) is None:
        raise NotFoundError("Assigned user not found")


async def create_task(*, actor: User, request: TaskCreate) -> Task:
    """Create a task assigned by ``actor``.

    Non-admins may only assign to themselves; an omitted assignee means the actor.

    Raises:
        AuthorizationError: If a non-admin assigns to somebody else
        NotFoundError: If the assignee does not exist
    """
    with span("task_service.create_task"):
        authorization.authorize(actor, Operation.CREATE_TASK, assignee_id=request.assignee_id)

        assignee_id = request.assignee_id or actor.id
        if assignee_id != actor.id:
            await _require_assignee(assignee_id)

        location = request.geo_point()
        record = await db_client.create_record(
            collection="tasks",
            data={
                "title": request.title,
                "description": request.description,
                "status": request.status.value,
                "due_date": request.due_date.isoformat(),
                "user_id": assignee_id,
                "assigned_by_id": actor.id,
                "location": location.model_dump(mode="json") if location else None,
                "priority": request.priority.value,
            },
        )

        logger.info(
            "Created task",
            extra={"task_id": record["id"], "user_id": assignee_id, "assigned_by_id": actor.id},
        )
        return _to_task(record)


async def get_task(*, actor: User, task_id: str) -> Task:
    """Get a task the actor may read."""
    with span("task_service.get_task"):
        task = await get_task_unchecked(task_id=task_id)
        authorization.authorize(actor, Operation.READ_TASK, owner_id=task.user_id)
        return task


async def list_tasks(*, actor: User) -> list[Task]:
    """List all tasks for admins, own tasks otherwise; newest first."""
    with span("task_service.list_tasks"):
        where = None if actor.is_admin else {"user_id": actor.id}
        records = await db_client.list_records(
            collection="tasks",
            where=where,
            sort="-created",
            per_page=None,
        )
        return [_to_task(record) for record in records]


async def list_my_tasks(*, actor: User) -> list[Task]:
    """List the actor's own tasks by due date, soonest first."""
    with span("task_service.list_my_tasks"):
        records = await db_client.list_records(
            collection="tasks",
            where={"user_id": actor.id},
            sort="due_date",
            per_page=None,
        )
        return [_to_task(record) for record in records]


async def list_tasks_by_user(*, actor: User, user_id: str) -> list[Task]:
    """List tasks assigned to ``user_id`` (admin only); newest first."""
    with span("task_service.list_tasks_by_user"):
        authorization.authorize(actor, Operation.LIST_USER_TASKS)
        records = await db_client.list_records(
            collection="tasks",
            where={"user_id": user_id},
            sort="-created",
            per_page=None,
        )
        return [_to_task(record) for record in records]


async def update_task(*, actor: User, task_id: str, update: TaskUpdate) -> Task:
    """Apply a full update to a task.

    Raises:
        NotFoundError: If the task or a new assignee does not exist
        AuthorizationError: If the actor is neither owner nor admin, or a non-admin reassigns
    """
    with span("task_service.update_task"):
        task = await get_task_unchecked(task_id=task_id)
        authorization.authorize(actor, Operation.UPDATE_TASK, owner_id=task.user_id, assignee_id=update.assignee_id)

        data: dict[str, Any] = {}
        if update.title is not None:
            data["title"] = update.title
        if update.description is not None:
            data["description"] = update.description
        if update.status is not None:
            data["status"] = update.status.value
        if update.priority is not None:
            data["priority"] = update.priority.value
        if update.due_date is not None:
            data["due_date"] = update.due_date.isoformat()
        if update.assignee_id is not None and update.assignee_id != task.user_id:
            await _require_assignee(update.assignee_id)
            data["user_id"] = update.assignee_id

        location_changed, location = update.location_change()
        if location_changed:
            data["location"] = location.model_dump(mode="json") if location else None

        if not data:
            return task

        record = await db_client.update_record(collection="tasks", record_id=task_id, data=data)
        logger.info("Updated task", extra={"task_id": task_id, "user_id": actor.id, "fields": sorted(data)})
        return _to_task(record)


async def update_task_status(*, actor: User, task_id: str, status: TaskStatus) -> Task:
    """Change only the status of a task (owner or admin)."""
    with span("task_service.update_task_status"):
        task = await get_task_unchecked(task_id=task_id)
        authorization.authorize(actor, Operation.UPDATE_TASK_STATUS, owner_id=task.user_id)

        record = await db_client.update_record(
            collection="tasks",
            record_id=task_id,
            data={"status": status.value},
        )
        logger.info("Updated task status", extra={"task_id": task_id, "status": status.value})
        return _to_task(record)


def angular_distance(*, lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points, in radians (haversine formula)."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * math.asin(min(1.0, math.sqrt(a)))


async def list_tasks_in_radius(*, actor: User, latitude: float, longitude: float, distance_km: float) -> list[Task]:
    """List tasks whose location lies within ``distance_km`` of a point.

    The distance is turned into radians by dividing by the Earth's radius.
    Non-admins only see their own tasks.

    Raises:
        ValidationError: If the coordinates or distance are out of range
    """
    with span("task_service.list_tasks_in_radius"):
        try:
            validate_coordinates(latitude, longitude)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if distance_km < 0:
            raise ValidationError("Distance must not be negative")

        radius = distance_km / constants.EARTH_RADIUS_KM
        tasks = await list_tasks(actor=actor)

        return [
            task
            for task in tasks
            if task.location is not None
            and angular_distance(
                lat1=latitude,
                lng1=longitude,
                lat2=task.location.latitude,
                lng2=task.location.longitude,
            )
            <= radius
        ]
