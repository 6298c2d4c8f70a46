from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from ..database import UTCDateTime
from ..utils.timesync import utcnow

MAX_TASK_TITLE_LENGTH = 100
MAX_TASK_DESCRIPTION_INPUT = 800
MAX_TASK_DESCRIPTION_LENGTH = 1200


class TaskBase(SQLModel):
    title: str = Field(max_length=MAX_TASK_TITLE_LENGTH)
    description: str = Field(default="", max_length=MAX_TASK_DESCRIPTION_LENGTH)
    image_file_id: str = ""  # opaque platform media id


class Task(TaskBase, table=True):
    __tablename__ = "tasks"
    __table_args__ = (UniqueConstraint("challenge_id", "order_num"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    challenge_id: str = Field(foreign_key="challenges.id", ondelete="CASCADE", index=True)
    order_num: int
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
