from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from ..database import UTCDateTime
from ..utils.timesync import utcnow


class TaskCompletion(SQLModel, table=True):
    __tablename__ = "task_completions"
    __table_args__ = (UniqueConstraint("task_id", "participant_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: int = Field(foreign_key="tasks.id", ondelete="CASCADE", index=True)
    participant_id: int = Field(foreign_key="participants.id", ondelete="CASCADE", index=True)
    completed_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, index=True)
