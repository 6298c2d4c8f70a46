from sqlmodel import SQLModel, Field
from datetime import datetime

from ..database import UTCDateTime
from ..utils.timesync import utcnow

MAX_CHALLENGE_NAME_LENGTH = 50
MAX_CHALLENGE_DESCRIPTION_LENGTH = 500
MAX_DAILY_TASK_LIMIT = 50


class ChallengeBase(SQLModel):
    name: str = Field(max_length=MAX_CHALLENGE_NAME_LENGTH)
    description: str = Field(default="", max_length=MAX_CHALLENGE_DESCRIPTION_LENGTH)
    creator_id: int = Field(index=True)
    daily_task_limit: int = 0  # 0 means unlimited
    hide_future_tasks: bool = False  # sequential mode: titles after the current task stay hidden


class Challenge(ChallengeBase, table=True):
    __tablename__ = "challenges"

    id: str = Field(primary_key=True, max_length=8)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
