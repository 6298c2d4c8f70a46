import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Set

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..models.completion import TaskCompletion
from ..models.participant import Participant
from ..utils.timesync import utcnow

logger = logging.getLogger(__name__)


@dataclass
class DailyLimitInfo:
    allowed: bool
    completed: int
    limit: int
    time_to_reset: timedelta
    user_local_time: datetime


def current_task_num(tasks: Sequence, completed_ids: Iterable[int]) -> int:
    """Order number of the task the participant should do next, 0 when done.

    Skipping ahead is allowed: the next task is the first open one after the
    furthest completed task, falling back to the earliest gap left behind.
    """
    done: Set[int] = set(completed_ids)
    furthest = max((task.order_num for task in tasks if task.id in done), default=0)

    open_orders = sorted(task.order_num for task in tasks if task.id not in done)
    for order_num in open_orders:
        if order_num > furthest:
            return order_num
    if open_orders:
        return open_orders[0]
    return 0


def daily_window(now: datetime, offset_minutes: int):
    """UTC bounds of the participant's current local day.

    `now` is aware UTC. The returned local time keeps the UTC tag but carries
    the participant's wall clock.
    """
    offset = timedelta(minutes=offset_minutes)
    user_now = now + offset
    start_of_user_day = user_now.replace(hour=0, minute=0, second=0, microsecond=0)
    start = start_of_user_day - offset
    return start, start + timedelta(days=1), user_now


class CompletionService:
    def __init__(self, engine):
        self.engine = engine

    def _session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    @staticmethod
    def _find(session: Session, task_id: int, participant_id: int) -> Optional[TaskCompletion]:
        return session.exec(
            select(TaskCompletion)
            .where(TaskCompletion.task_id == task_id)
            .where(TaskCompletion.participant_id == participant_id)
        ).first()

    def complete(self, task_id: int, participant_id: int) -> TaskCompletion:
        with self._session() as session:
            existing = self._find(session, task_id, participant_id)
            if existing is not None:
                return existing
            completion = TaskCompletion(task_id=task_id, participant_id=participant_id)
            session.add(completion)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                existing = self._find(session, task_id, participant_id)
                if existing is None:
                    raise
                return existing
            session.refresh(completion)
        logger.debug("Participant %s completed task %s", participant_id, task_id)
        return completion

    def uncomplete(self, task_id: int, participant_id: int) -> None:
        with self._session() as session:
            existing = self._find(session, task_id, participant_id)
            if existing is None:
                return
            session.delete(existing)
            session.commit()
        logger.debug("Participant %s uncompleted task %s", participant_id, task_id)

    def is_completed(self, task_id: int, participant_id: int) -> bool:
        with self._session() as session:
            return self._find(session, task_id, participant_id) is not None

    def get_completed_task_ids(self, participant_id: int) -> List[int]:
        with self._session() as session:
            return list(
                session.exec(
                    select(TaskCompletion.task_id).where(TaskCompletion.participant_id == participant_id)
                ).all()
            )

    def get_completions_by_task_id(self, task_id: int) -> List[TaskCompletion]:
        with self._session() as session:
            return list(session.exec(select(TaskCompletion).where(TaskCompletion.task_id == task_id)).all())

    def count_by_participant_id(self, participant_id: int) -> int:
        with self._session() as session:
            return session.exec(
                select(func.count())
                .select_from(TaskCompletion)
                .where(TaskCompletion.participant_id == participant_id)
            ).one()

    def count_in_range(self, participant_id: int, start: datetime, end: datetime) -> int:
        with self._session() as session:
            return session.exec(
                select(func.count())
                .select_from(TaskCompletion)
                .where(TaskCompletion.participant_id == participant_id)
                .where(TaskCompletion.completed_at >= start)
                .where(TaskCompletion.completed_at < end)
            ).one()

    def get_current_task_num(self, participant_id: int, tasks: Sequence) -> int:
        return current_task_num(tasks, self.get_completed_task_ids(participant_id))

    def is_all_completed(self, participant_id: int, total_tasks: int) -> bool:
        return total_tasks > 0 and self.count_by_participant_id(participant_id) >= total_tasks

    def check_daily_limit(
        self, participant: Participant, limit: int, now: Optional[datetime] = None
    ) -> DailyLimitInfo:
        now = now or utcnow()
        start, end, user_now = daily_window(now, participant.time_offset_minutes)
        if limit <= 0:
            return DailyLimitInfo(
                allowed=True, completed=0, limit=limit, time_to_reset=end - now, user_local_time=user_now
            )

        completed = self.count_in_range(participant.id, start, end)
        return DailyLimitInfo(
            allowed=completed < limit,
            completed=completed,
            limit=limit,
            time_to_reset=end - now,
            user_local_time=user_now,
        )
