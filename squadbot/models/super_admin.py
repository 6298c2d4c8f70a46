from sqlalchemy import BigInteger, Column
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from ..database import UTCDateTime
from ..utils.timesync import utcnow


class SuperAdmin(SQLModel, table=True):
    __tablename__ = "super_admins"

    id: Optional[int] = Field(default=None, primary_key=True)
    telegram_id: int = Field(sa_column=Column(BigInteger, nullable=False, unique=True))
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
