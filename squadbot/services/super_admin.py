import logging
from typing import List

from sqlalchemy.dialects.sqlite import insert
from sqlmodel import Session, col, select

from ..models.challenge import Challenge
from ..models.super_admin import SuperAdmin
from ..utils.timesync import utcnow
from .errors import AlreadySuperAdmin, CannotRemoveSelf, NotSuperAdmin, SuperAdminNotFound

logger = logging.getLogger(__name__)


class SuperAdminService:
    def __init__(self, engine):
        self.engine = engine

    def _session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    @staticmethod
    def _find(session: Session, telegram_id: int):
        return session.exec(select(SuperAdmin).where(SuperAdmin.telegram_id == telegram_id)).first()

    def is_super_admin(self, telegram_id: int) -> bool:
        with self._session() as session:
            return self._find(session, telegram_id) is not None

    def get_all(self) -> List[SuperAdmin]:
        with self._session() as session:
            return list(session.exec(select(SuperAdmin).order_by(SuperAdmin.created_at, SuperAdmin.id)).all())

    def grant(self, granted_by: int, target_id: int) -> SuperAdmin:
        with self._session() as session:
            if self._find(session, granted_by) is None:
                raise NotSuperAdmin()
            if self._find(session, target_id) is not None:
                raise AlreadySuperAdmin()
            admin = SuperAdmin(telegram_id=target_id)
            session.add(admin)
            session.commit()
            session.refresh(admin)
        logger.info("Super admin granted to %s by %s", target_id, granted_by)
        return admin

    def revoke(self, revoked_by: int, target_id: int) -> None:
        with self._session() as session:
            if self._find(session, revoked_by) is None:
                raise NotSuperAdmin()
            if revoked_by == target_id:
                raise CannotRemoveSelf()
            admin = self._find(session, target_id)
            if admin is None:
                raise SuperAdminNotFound()
            session.delete(admin)
            session.commit()
        logger.info("Super admin revoked from %s by %s", target_id, revoked_by)

    def seed_from_env(self, telegram_id: int) -> None:
        if not telegram_id:
            return
        table = SuperAdmin.__table__
        with self._session() as session:
            session.execute(
                insert(table).values(telegram_id=telegram_id, created_at=utcnow()).on_conflict_do_nothing()
            )
            session.commit()
        logger.info("Super admin %s seeded from configuration", telegram_id)

    def get_all_challenges(self) -> List[Challenge]:
        with self._session() as session:
            return list(session.exec(select(Challenge).order_by(col(Challenge.updated_at).desc())).all())
