import asyncio
import uuid
from typing import NamedTuple

from sqlalchemy import func
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from tasktracker.core.errors import ValidationError
from tasktracker.models import Task, TaskCreate, TaskUpdate, get_utc_now
from tasktracker.utils.pagination import calculate_skip


class TaskPage(NamedTuple):
    tasks: list[Task]
    total: int


def parse_task_id(task_id: str | None) -> uuid.UUID:
    if not task_id:
        raise ValidationError("Id is required")
    try:
        return uuid.UUID(str(task_id))
    except ValueError:
        raise ValidationError("Invalid ID format")


def _owned(task_id: uuid.UUID, user_id: uuid.UUID):
    # Ownership is part of every query: other users' tasks simply do not match
    return select(Task).where(Task.id == task_id, Task.user_id == user_id)


class TaskService:
    """Owner-scoped task queries and mutations."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _fetch_page(self, user_id: uuid.UUID, skip: int, limit: int) -> list[Task]:
        async with self.session_factory() as db:
            query = (
                select(Task)
                .where(Task.user_id == user_id)
                .order_by(Task.created_at.desc())
                .offset(skip)
                .limit(limit)
            )
            result = await db.exec(query)
            return list(result.all())

    async def _count(self, user_id: uuid.UUID) -> int:
        async with self.session_factory() as db:
            result = await db.exec(
                select(func.count(Task.id)).where(Task.user_id == user_id)
            )
            return result.one()

    async def get_tasks_paginated(
        self, user_id: uuid.UUID, page: int = 1, limit: int = 10
    ) -> TaskPage:
        """
        One page of the user's tasks, newest first, plus the total count.

        The page and the count run concurrently on separate sessions.
        """
        skip = calculate_skip(page, limit)
        tasks, total = await asyncio.gather(
            self._fetch_page(user_id, skip, limit),
            self._count(user_id),
        )
        return TaskPage(tasks=tasks, total=total)

    async def get_task(self, task_id: str, user_id: uuid.UUID) -> Task | None:
        key = parse_task_id(task_id)
        async with self.session_factory() as db:
            result = await db.exec(_owned(key, user_id))
            return result.first()

    async def create_task(self, task_data: TaskCreate, user_id: uuid.UUID) -> Task:
        title = (task_data.title or "").strip()
        if not title:
            raise ValidationError("Title is required")

        task = Task(
            title=title,
            description=task_data.description,
            completed=False,
            user_id=user_id,
        )
        async with self.session_factory() as db:
            db.add(task)
            await db.commit()
            await db.refresh(task)
        return task

    async def update_task(
        self, task_id: str, task_data: TaskUpdate, user_id: uuid.UUID
    ) -> Task | None:
        key = parse_task_id(task_id)
        update_data = task_data.model_dump(exclude_unset=True)

        if "title" in update_data:
            title = (update_data["title"] or "").strip()
            if not title:
                raise ValidationError("Title cannot be empty")
            update_data["title"] = title
        if update_data.get("completed", False) is None:
            del update_data["completed"]

        async with self.session_factory() as db:
            result = await db.exec(_owned(key, user_id))
            task = result.first()
            if not task:
                return None
            if update_data:
                task.sqlmodel_update(update_data)
                task.updated_at = get_utc_now()
                db.add(task)
                await db.commit()
                await db.refresh(task)
            return task

    async def delete_task(self, task_id: str, user_id: uuid.UUID) -> Task | None:
        key = parse_task_id(task_id)
        async with self.session_factory() as db:
            result = await db.exec(_owned(key, user_id))
            task = result.first()
            if not task:
                return None
            await db.delete(task)
            await db.commit()
            return task
