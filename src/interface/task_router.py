"""Task router: role-scoped task CRUD, status changes, and radius search."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, status

from src.domain.create_models import TaskCreate
from src.domain.update_models import TaskStatusUpdate, TaskUpdate
from src.domain.user import User
from src.interface.dependencies import get_current_user
from src.interface.presenters import ReferenceResolver, envelope, present_task, present_tasks
from src.services import deletion_service, task_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("")
async def list_tasks(current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    tasks = await task_service.list_tasks(actor=current_user)
    return envelope(data=await present_tasks(tasks), count=len(tasks))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(request: TaskCreate, current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    task = await task_service.create_task(actor=current_user, request=request)
    return envelope(data=await present_task(task, ReferenceResolver()))


# Fixed paths are registered before /{task_id} so they are not captured as IDs


@router.get("/my-tasks")
async def list_my_tasks(current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    tasks = await task_service.list_my_tasks(actor=current_user)
    return envelope(data=await present_tasks(tasks), count=len(tasks))


@router.get("/user/{user_id}")
async def list_tasks_by_user(user_id: str, current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    tasks = await task_service.list_tasks_by_user(actor=current_user, user_id=user_id)
    return envelope(data=await present_tasks(tasks), count=len(tasks))


@router.get("/radius/{lat}/{lng}/{distance}")
async def list_tasks_in_radius(
    lat: float,
    lng: float,
    distance: float,
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    """Tasks within ``distance`` kilometres of (lat, lng)."""
    tasks = await task_service.list_tasks_in_radius(
        actor=current_user,
        latitude=lat,
        longitude=lng,
        distance_km=distance,
    )
    return envelope(data=await present_tasks(tasks), count=len(tasks))


@router.get("/{task_id}")
async def get_task(task_id: str, current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    task = await task_service.get_task(actor=current_user, task_id=task_id)
    return envelope(data=await present_task(task, ReferenceResolver()))


@router.put("/{task_id}")
async def update_task(
    task_id: str,
    update: TaskUpdate,
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    task = await task_service.update_task(actor=current_user, task_id=task_id, update=update)
    return envelope(data=await present_task(task, ReferenceResolver()))


@router.patch("/{task_id}/status")
async def update_task_status(
    task_id: str,
    update: TaskStatusUpdate,
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    task = await task_service.update_task_status(actor=current_user, task_id=task_id, status=update.status)
    return envelope(data=await present_task(task, ReferenceResolver()), message="Task status updated successfully")


@router.delete("/{task_id}")
async def delete_task(task_id: str, current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    await deletion_service.delete_task(actor=current_user, task_id=task_id)
    return envelope(data={}, message="Task deleted successfully")
