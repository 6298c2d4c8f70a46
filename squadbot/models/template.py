from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from ..database import UTCDateTime
from ..utils.timesync import utcnow
from .challenge import MAX_CHALLENGE_DESCRIPTION_LENGTH, MAX_CHALLENGE_NAME_LENGTH
from .task import TaskBase


class TemplateBase(SQLModel):
    name: str = Field(max_length=MAX_CHALLENGE_NAME_LENGTH, sa_column_kwargs={"unique": True})
    description: str = Field(default="", max_length=MAX_CHALLENGE_DESCRIPTION_LENGTH)
    daily_task_limit: int = 0
    hide_future_tasks: bool = False


class Template(TemplateBase, table=True):
    __tablename__ = "templates"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class TemplateTask(TaskBase, table=True):
    __tablename__ = "template_tasks"
    __table_args__ = (UniqueConstraint("template_id", "order_num"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    template_id: int = Field(foreign_key="templates.id", ondelete="CASCADE", index=True)
    order_num: int
