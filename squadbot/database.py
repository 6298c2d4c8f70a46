import logging
from datetime import timezone
from typing import Dict, Type

from sqlalchemy import DateTime, TypeDecorator, event, update
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

logger = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC timestamps on top of SQLite's naive DATETIME.

    Values are stored as UTC wall time and come back tagged with UTC, so
    everything the services compare is aware.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
            raise ValueError("naive datetime stored in a UTC column")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(database_url: str, echo: bool = False):
    """SQLAlchemy engine for a SQLite database with foreign keys enforced."""
    kwargs = {"connect_args": {"check_same_thread": False}, "echo": echo}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every session sees an empty database
        kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **kwargs)
    event.listen(engine, "connect", _enable_foreign_keys)
    return engine


def create_db_and_tables(engine) -> None:
    # import for side effects: registers every table on SQLModel.metadata
    from .models import challenge, completion, participant, super_admin, task, template, user_state  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database schema ready")


def update_order_nums(session: Session, model: Type[SQLModel], updates: Dict[int, int]) -> None:
    """Rewrite order_num for the given {id: new_order} map without collisions.

    Every row is first parked on the negative of its target, then moved to the
    target, so UNIQUE(parent, order_num) holds after each statement. The caller
    owns the transaction.
    """
    if not updates:
        return
    for row_id, new_order in updates.items():
        session.execute(
            update(model).where(model.id == row_id).values(order_num=-new_order)
        )
    for row_id, new_order in updates.items():
        session.execute(
            update(model).where(model.id == row_id).values(order_num=new_order)
        )
