import logging
import random
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..database import update_order_nums
from ..models.challenge import Challenge
from ..models.task import Task
from ..models.template import Template, TemplateTask
from ..utils.timesync import utcnow
from .challenge import validate_challenge_description, validate_challenge_name, validate_daily_limit
from .errors import ChallengeNotFound, MaxTasksReached, TaskNotFound, TemplateNameExists, TemplateNotFound
from .limits import MAX_TASKS_PER_CHALLENGE
from .ordering import compact_updates, move_updates, shuffle_updates
from .task import validate_task_description, validate_task_title

logger = logging.getLogger(__name__)


class TemplateService:
    """Reusable challenge blueprints, managed by super admins."""

    def __init__(self, engine, rng: Optional[random.Random] = None):
        self.engine = engine
        self.rng = rng

    def _session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    @staticmethod
    def _ordered(session: Session, template_id: int) -> List[TemplateTask]:
        return list(
            session.exec(
                select(TemplateTask).where(TemplateTask.template_id == template_id).order_by(TemplateTask.order_num)
            ).all()
        )

    @staticmethod
    def _name_taken(session: Session, name: str, exclude_id: Optional[int] = None) -> bool:
        statement = select(Template).where(Template.name == name)
        if exclude_id is not None:
            statement = statement.where(Template.id != exclude_id)
        return session.exec(statement).first() is not None

    def create_from_challenge(self, challenge_id: str, name: str) -> Template:
        validate_challenge_name(name)
        with self._session() as session:
            challenge = session.get(Challenge, challenge_id)
            if challenge is None:
                raise ChallengeNotFound()
            if self._name_taken(session, name):
                raise TemplateNameExists()
            tasks = session.exec(
                select(Task).where(Task.challenge_id == challenge_id).order_by(Task.order_num)
            ).all()

            template = Template(
                name=name,
                description=challenge.description,
                daily_task_limit=challenge.daily_task_limit,
                hide_future_tasks=challenge.hide_future_tasks,
            )
            session.add(template)
            try:
                session.flush()
                for task in tasks:
                    session.add(
                        TemplateTask(
                            template_id=template.id,
                            order_num=task.order_num,
                            title=task.title,
                            description=task.description,
                            image_file_id=task.image_file_id,
                        )
                    )
                session.commit()
            except IntegrityError:
                session.rollback()
                if self._name_taken(session, name):
                    raise TemplateNameExists()
                raise
            session.refresh(template)
        logger.info("Template %s (%s) saved from challenge %s", template.id, name, challenge_id)
        return template

    def get_by_id(self, template_id: int) -> Template:
        with self._session() as session:
            template = session.get(Template, template_id)
        if template is None:
            raise TemplateNotFound()
        return template

    def get_all(self) -> List[Template]:
        with self._session() as session:
            return list(session.exec(select(Template).order_by(Template.name)).all())

    def count(self) -> int:
        with self._session() as session:
            return session.exec(select(func.count()).select_from(Template)).one()

    def get_tasks(self, template_id: int) -> List[TemplateTask]:
        with self._session() as session:
            return self._ordered(session, template_id)

    def get_task(self, task_id: int) -> TemplateTask:
        with self._session() as session:
            task = session.get(TemplateTask, task_id)
        if task is None:
            raise TaskNotFound()
        return task

    def delete(self, template_id: int) -> None:
        with self._session() as session:
            template = session.get(Template, template_id)
            if template is None:
                raise TemplateNotFound()
            session.delete(template)
            session.commit()
        logger.info("Template %s deleted", template_id)

    def _update(self, template_id: int, **values) -> Template:
        with self._session() as session:
            template = session.get(Template, template_id)
            if template is None:
                raise TemplateNotFound()
            for key, value in values.items():
                setattr(template, key, value)
            template.updated_at = utcnow()
            session.add(template)
            session.commit()
            session.refresh(template)
            return template

    def update_name(self, template_id: int, name: str) -> Template:
        validate_challenge_name(name)
        with self._session() as session:
            if self._name_taken(session, name, exclude_id=template_id):
                raise TemplateNameExists()
        return self._update(template_id, name=name)

    def update_description(self, template_id: int, description: str) -> Template:
        return self._update(template_id, description=validate_challenge_description(description))

    def update_daily_limit(self, template_id: int, limit: int) -> Template:
        return self._update(template_id, daily_task_limit=validate_daily_limit(limit))

    def toggle_hide_future_tasks(self, template_id: int) -> bool:
        template = self.get_by_id(template_id)
        return self._update(template_id, hide_future_tasks=not template.hide_future_tasks).hide_future_tasks

    def create_task(self, template_id: int, title: str, description: str = "", image_file_id: str = "") -> TemplateTask:
        validate_task_title(title)
        description = validate_task_description(description)
        with self._session() as session:
            if session.get(Template, template_id) is None:
                raise TemplateNotFound()
            tasks = self._ordered(session, template_id)
            if len(tasks) >= MAX_TASKS_PER_CHALLENGE:
                raise MaxTasksReached()
            task = TemplateTask(
                template_id=template_id,
                order_num=(tasks[-1].order_num if tasks else 0) + 1,
                title=title,
                description=description,
                image_file_id=image_file_id or "",
            )
            session.add(task)
            session.commit()
            session.refresh(task)
            return task

    def update_task(
        self,
        task_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        image_file_id: Optional[str] = None,
    ) -> TemplateTask:
        with self._session() as session:
            task = session.get(TemplateTask, task_id)
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

    def delete_task(self, task_id: int, template_id: int) -> None:
        with self._session() as session:
            task = session.exec(
                select(TemplateTask).where(TemplateTask.id == task_id).where(TemplateTask.template_id == template_id)
            ).first()
            if task is None:
                raise TaskNotFound()
            session.delete(task)
            session.flush()
            update_order_nums(session, TemplateTask, compact_updates(self._ordered(session, template_id)))
            session.commit()

    def move_task(self, task_id: int, template_id: int, new_position: int) -> None:
        with self._session() as session:
            updates = move_updates(self._ordered(session, template_id), task_id, new_position)
            if updates:
                update_order_nums(session, TemplateTask, updates)
                session.commit()

    def randomize_order(self, template_id: int) -> None:
        with self._session() as session:
            updates = shuffle_updates(self._ordered(session, template_id), self.rng)
            if updates:
                update_order_nums(session, TemplateTask, updates)
                session.commit()
