import logging
from typing import Callable, List, Optional

from sqlalchemy import func
from sqlmodel import Session, col, or_, select

from ..models.challenge import (
    MAX_CHALLENGE_DESCRIPTION_LENGTH,
    MAX_CHALLENGE_NAME_LENGTH,
    MAX_DAILY_TASK_LIMIT,
    Challenge,
)
from ..models.participant import Participant
from ..models.task import Task
from ..models.template import Template, TemplateTask
from ..utils.ids import generate_id
from ..utils.timesync import utcnow
from .errors import (
    AlreadyMember,
    ChallengeFull,
    ChallengeNotFound,
    IdGenerationFailed,
    InvalidDailyLimit,
    InvalidDescription,
    InvalidName,
    MaxChallengesReached,
    NotAdmin,
    TemplateNotFound,
)
from .limits import MAX_CHALLENGES_PER_USER, MAX_ID_ATTEMPTS, MAX_PARTICIPANTS_PER_CHALLENGE

logger = logging.getLogger(__name__)


def validate_challenge_name(name: str) -> str:
    if not name or len(name) > MAX_CHALLENGE_NAME_LENGTH:
        raise InvalidName(f"name must be 1-{MAX_CHALLENGE_NAME_LENGTH} characters")
    return name


def validate_challenge_description(description: str) -> str:
    if len(description or "") > MAX_CHALLENGE_DESCRIPTION_LENGTH:
        raise InvalidDescription(f"description must be at most {MAX_CHALLENGE_DESCRIPTION_LENGTH} characters")
    return description or ""


def validate_daily_limit(limit: int) -> int:
    if limit < 0 or limit > MAX_DAILY_TASK_LIMIT:
        raise InvalidDailyLimit(f"daily limit must be between 0 and {MAX_DAILY_TASK_LIMIT}")
    return limit


class ChallengeService:
    def __init__(self, engine, id_generator: Callable[[], str] = generate_id):
        self.engine = engine
        self.id_generator = id_generator

    def _session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    def _user_challenges_query(self, user_id: int):
        return (
            select(Challenge)
            .outerjoin(Participant, col(Participant.challenge_id) == col(Challenge.id))
            .where(or_(Challenge.creator_id == user_id, Participant.telegram_id == user_id))
            .distinct()
            .order_by(col(Challenge.updated_at).desc())
        )

    def _new_id(self, session: Session) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            candidate = self.id_generator()
            if session.get(Challenge, candidate) is None:
                return candidate
            logger.debug("Challenge id collision on %s, retrying", candidate)
        raise IdGenerationFailed()

    def _insert(
        self,
        session: Session,
        name: str,
        description: str,
        creator_id: int,
        daily_task_limit: int,
        hide_future_tasks: bool,
    ) -> Challenge:
        validate_challenge_name(name)
        description = validate_challenge_description(description)
        validate_daily_limit(daily_task_limit)

        owned = session.exec(self._user_challenges_query(creator_id)).all()
        if len(owned) >= MAX_CHALLENGES_PER_USER:
            raise MaxChallengesReached()

        challenge = Challenge(
            id=self._new_id(session),
            name=name,
            description=description,
            creator_id=creator_id,
            daily_task_limit=daily_task_limit,
            hide_future_tasks=hide_future_tasks,
        )
        session.add(challenge)
        session.commit()
        session.refresh(challenge)
        return challenge

    def create(
        self,
        name: str,
        description: str,
        creator_id: int,
        daily_task_limit: int = 0,
        hide_future_tasks: bool = False,
    ) -> Challenge:
        with self._session() as session:
            challenge = self._insert(session, name, description, creator_id, daily_task_limit, hide_future_tasks)
        logger.info("Challenge %s created by %s", challenge.id, creator_id)
        return challenge

    def create_from_template(self, template_id: int, name: str, creator_id: int) -> Challenge:
        """Create a challenge with the template's settings and a copy of its tasks.

        If copying any task fails the half-built challenge is deleted again.
        """
        with self._session() as session:
            template = session.get(Template, template_id)
            if template is None:
                raise TemplateNotFound()
            template_tasks = session.exec(
                select(TemplateTask)
                .where(TemplateTask.template_id == template_id)
                .order_by(TemplateTask.order_num)
            ).all()

            challenge = self._insert(
                session,
                name,
                template.description,
                creator_id,
                template.daily_task_limit,
                template.hide_future_tasks,
            )

            try:
                for template_task in template_tasks:
                    session.add(
                        Task(
                            challenge_id=challenge.id,
                            order_num=template_task.order_num,
                            title=template_task.title,
                            description=template_task.description,
                            image_file_id=template_task.image_file_id,
                        )
                    )
                session.commit()
            except Exception:
                session.rollback()
                logger.exception("Copying tasks from template %s failed, removing %s", template_id, challenge.id)
                self._delete(challenge.id)
                raise

        logger.info("Challenge %s created from template %s by %s", challenge.id, template_id, creator_id)
        return challenge

    def get_by_id(self, challenge_id: str) -> Challenge:
        with self._session() as session:
            challenge = session.get(Challenge, challenge_id)
        if challenge is None:
            raise ChallengeNotFound()
        return challenge

    def get_by_user_id(self, user_id: int) -> List[Challenge]:
        with self._session() as session:
            return list(session.exec(self._user_challenges_query(user_id)).all())

    def is_admin(self, challenge_id: str, user_id: int) -> bool:
        return self.get_by_id(challenge_id).creator_id == user_id

    def can_join(self, challenge_id: str, user_id: int) -> None:
        with self._session() as session:
            if session.get(Challenge, challenge_id) is None:
                raise ChallengeNotFound()
            member = session.exec(
                select(Participant)
                .where(Participant.challenge_id == challenge_id)
                .where(Participant.telegram_id == user_id)
            ).first()
            if member is not None:
                raise AlreadyMember()
            count = session.exec(
                select(func.count()).select_from(Participant).where(Participant.challenge_id == challenge_id)
            ).one()
            if count >= MAX_PARTICIPANTS_PER_CHALLENGE:
                raise ChallengeFull()

    def _authorized(self, session: Session, challenge_id: str, user_id: int, is_super_admin: bool) -> Challenge:
        challenge = session.get(Challenge, challenge_id)
        if challenge is None:
            raise ChallengeNotFound()
        if challenge.creator_id != user_id and not is_super_admin:
            raise NotAdmin()
        return challenge

    def _update(self, challenge_id: str, user_id: int, is_super_admin: bool, **values) -> Challenge:
        with self._session() as session:
            challenge = self._authorized(session, challenge_id, user_id, is_super_admin)
            for key, value in values.items():
                setattr(challenge, key, value)
            challenge.updated_at = utcnow()
            session.add(challenge)
            session.commit()
            session.refresh(challenge)
            return challenge

    def update_name(self, challenge_id: str, name: str, user_id: int, is_super_admin: bool = False) -> Challenge:
        return self._update(challenge_id, user_id, is_super_admin, name=validate_challenge_name(name))

    def update_description(
        self, challenge_id: str, description: str, user_id: int, is_super_admin: bool = False
    ) -> Challenge:
        return self._update(
            challenge_id, user_id, is_super_admin, description=validate_challenge_description(description)
        )

    def update_daily_limit(self, challenge_id: str, limit: int, user_id: int, is_super_admin: bool = False) -> Challenge:
        return self._update(challenge_id, user_id, is_super_admin, daily_task_limit=validate_daily_limit(limit))

    def update_hide_future_tasks(
        self, challenge_id: str, hide: bool, user_id: int, is_super_admin: bool = False
    ) -> Challenge:
        return self._update(challenge_id, user_id, is_super_admin, hide_future_tasks=hide)

    def toggle_hide_future_tasks(self, challenge_id: str, user_id: int, is_super_admin: bool = False) -> bool:
        with self._session() as session:
            current = self._authorized(session, challenge_id, user_id, is_super_admin).hide_future_tasks
        return self.update_hide_future_tasks(challenge_id, not current, user_id, is_super_admin).hide_future_tasks

    def _delete(self, challenge_id: str) -> None:
        with self._session() as session:
            challenge = session.get(Challenge, challenge_id)
            if challenge is not None:
                session.delete(challenge)
                session.commit()

    def delete(self, challenge_id: str, user_id: int, is_super_admin: bool = False) -> None:
        """Delete a challenge; tasks, participants and completions go with it."""
        with self._session() as session:
            challenge = self._authorized(session, challenge_id, user_id, is_super_admin)
            session.delete(challenge)
            session.commit()
        logger.info("Challenge %s deleted by %s", challenge_id, user_id)
