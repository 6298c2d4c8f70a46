import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.dialects.sqlite import insert
from sqlmodel import Session

from ..models.user_state import UserState
from ..utils.timesync import utcnow

logger = logging.getLogger(__name__)

IDLE = "idle"


class StateService:
    """Per-user conversation state: (state tag, scratch JSON, current challenge)."""

    def __init__(self, engine):
        self.engine = engine

    def _session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    def _upsert(self, telegram_id: int, **values) -> None:
        values["updated_at"] = utcnow()
        table = UserState.__table__
        statement = insert(table).values(telegram_id=telegram_id, **values)
        statement = statement.on_conflict_do_update(index_elements=[table.c.telegram_id], set_=values)
        with self._session() as session:
            session.execute(statement)
            session.commit()

    def get(self, telegram_id: int) -> UserState:
        """Current state; a user never seen before is idle with nothing stored."""
        with self._session() as session:
            row = session.get(UserState, telegram_id)
        if row is None:
            return UserState(telegram_id=telegram_id, state=IDLE, temp_data="", current_challenge="")
        return UserState(
            telegram_id=telegram_id,
            state=row.state or IDLE,
            temp_data=row.temp_data or "",
            current_challenge=row.current_challenge or "",
            updated_at=row.updated_at,
        )

    def set_state(self, telegram_id: int, state: str) -> None:
        self._upsert(telegram_id, state=state)

    def set_state_with_data(self, telegram_id: int, state: str, temp_data: Optional[str]) -> None:
        self._upsert(telegram_id, state=state, temp_data=temp_data or None)

    def set_current_challenge(self, telegram_id: int, challenge_id: Optional[str]) -> None:
        self._upsert(telegram_id, current_challenge=challenge_id or None)

    def reset(self, telegram_id: int) -> None:
        self._upsert(telegram_id, state=IDLE, temp_data=None, current_challenge=None)

    def reset_keep_challenge(self, telegram_id: int) -> None:
        self._upsert(telegram_id, state=IDLE, temp_data=None)

    def reset_by_challenge(self, challenge_id: str) -> int:
        """Send every user parked on challenge_id back to idle. Returns how many."""
        with self._session() as session:
            result = session.execute(
                update(UserState.__table__)
                .where(UserState.__table__.c.current_challenge == challenge_id)
                .values(state=IDLE, temp_data=None, current_challenge=None, updated_at=utcnow())
            )
            session.commit()
        logger.info("Reset %d user state(s) parked on challenge %s", result.rowcount, challenge_id)
        return result.rowcount
