from sqlalchemy import BigInteger, Column, UniqueConstraint
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from ..database import UTCDateTime
from ..utils.timesync import utcnow

MAX_DISPLAY_NAME_LENGTH = 30


class ParticipantBase(SQLModel):
    display_name: str = Field(max_length=MAX_DISPLAY_NAME_LENGTH)
    emoji: str = Field(max_length=32)
    notify_enabled: bool = True
    time_offset_minutes: int = 0


class Participant(ParticipantBase, table=True):
    __tablename__ = "participants"
    __table_args__ = (
        UniqueConstraint("challenge_id", "telegram_id"),
        UniqueConstraint("challenge_id", "emoji"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    challenge_id: str = Field(foreign_key="challenges.id", ondelete="CASCADE", index=True)
    telegram_id: int = Field(sa_column=Column(BigInteger, nullable=False, index=True))
    joined_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
