from sqlalchemy import BigInteger, Column
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from ..database import UTCDateTime
from ..utils.timesync import utcnow


class UserState(SQLModel, table=True):
    __tablename__ = "user_states"

    telegram_id: int = Field(sa_column=Column(BigInteger, primary_key=True, autoincrement=False))
    state: Optional[str] = None
    temp_data: Optional[str] = None  # JSON scratch of the active flow
    current_challenge: Optional[str] = None
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
