import logging
import random
from typing import List, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from ..database import update_order_nums
from ..models.challenge import Challenge
from ..models.task import MAX_TASK_DESCRIPTION_LENGTH, MAX_TASK_TITLE_LENGTH, Task
from .errors import ChallengeNotFound, InvalidDescription, InvalidTitle, MaxTasksReached, TaskNotFound
from .limits import MAX_TASKS_PER_CHALLENGE
from .ordering import compact_updates, move_updates, shuffle_updates

logger = logging.getLogger(__name__)


def validate_task_title(title: str) -> str:
    if not title or len(title) > MAX_TASK_TITLE_LENGTH:
        raise InvalidTitle(f"task title must be 1-{MAX_TASK_TITLE_LENGTH} characters")
    return title


def validate_task_description(description: str) -> str:
    if len(description or "") > MAX_TASK_DESCRIPTION_LENGTH:
        raise InvalidDescription(f"task description must be at most {MAX_TASK_DESCRIPTION_LENGTH} characters")
    return description or ""


class TaskService:
    def __init__(self, engine, rng: Optional[random.Random] = None):
        self.engine = engine
        self.rng = rng

    def _session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    @staticmethod
    def _ordered(session: Session, challenge_id: str) -> List[Task]:
        return list(
            session.exec(select(Task).where(Task.challenge_id == challenge_id).order_by(Task.order_num)).all()
        )

    def create(self, challenge_id: str, title: str, description: str = "", image_file_id: str = "") -> Task:
        validate_task_title(title)
        description = validate_task_description(description)

        with self._session() as session:
            if session.get(Challenge, challenge_id) is None:
                raise ChallengeNotFound()
            count = session.exec(
                select(func.count()).select_from(Task).where(Task.challenge_id == challenge_id)
            ).one()
            if count >= MAX_TASKS_PER_CHALLENGE:
                raise MaxTasksReached()
            max_order = session.exec(
                select(func.max(Task.order_num)).where(Task.challenge_id == challenge_id)
            ).one()

            task = Task(
                challenge_id=challenge_id,
                order_num=(max_order or 0) + 1,
                title=title,
                description=description,
                image_file_id=image_file_id or "",
            )
            session.add(task)
            session.commit()
            session.refresh(task)
        logger.info("Task %s added to %s at #%d", task.id, challenge_id, task.order_num)
        return task

    def get_by_id(self, task_id: int) -> Task:
        with self._session() as session:
            task = session.get(Task, task_id)
        if task is None:
            raise TaskNotFound()
        return task

    def get_by_challenge_id(self, challenge_id: str) -> List[Task]:
        with self._session() as session:
            return self._ordered(session, challenge_id)

    def count_by_challenge_id(self, challenge_id: str) -> int:
        with self._session() as session:
            return session.exec(
                select(func.count()).select_from(Task).where(Task.challenge_id == challenge_id)
            ).one()

    def update(
        self,
        task_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        image_file_id: Optional[str] = None,
    ) -> Task:
        """Change a task's content. Position only moves through move_task."""
        with self._session() as session:
            task = session.get(Task, task_id)
            if task is None:
                raise TaskNotFound()
            if title is not None:
                task.title = validate_task_title(title)
            if description is not None:
                task.description = validate_task_description(description)
            if image_file_id is not None:
                task.image_file_id = image_file_id
            session.add(task)
            session.commit()
            session.refresh(task)
            return task

    def delete(self, task_id: int, challenge_id: str) -> None:
        with self._session() as session:
            task = session.exec(
                select(Task).where(Task.id == task_id).where(Task.challenge_id == challenge_id)
            ).first()
            if task is None:
                raise TaskNotFound()
            session.delete(task)
            session.flush()

            update_order_nums(session, Task, compact_updates(self._ordered(session, challenge_id)))
            session.commit()
        logger.info("Task %s deleted from %s", task_id, challenge_id)

    def move_task(self, task_id: int, challenge_id: str, new_position: int) -> None:
        with self._session() as session:
            updates = move_updates(self._ordered(session, challenge_id), task_id, new_position)
            if not updates:
                return
            update_order_nums(session, Task, updates)
            session.commit()
        logger.info("Task %s moved to #%d in %s", task_id, new_position, challenge_id)

    def randomize_order(self, challenge_id: str) -> None:
        with self._session() as session:
            updates = shuffle_updates(self._ordered(session, challenge_id), self.rng)
            if not updates:
                return
            update_order_nums(session, Task, updates)
            session.commit()
        logger.info("Tasks of %s shuffled", challenge_id)
