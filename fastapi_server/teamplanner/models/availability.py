"""
Availability - one status per (member, match) pair for the current match date.
"""
from enum import Enum

from sqlmodel import Field, SQLModel


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    NOT_AVAILABLE = "not_available"
    MAYBE = "maybe"


class AvailabilityRecord(SQLModel, table=True):
    __tablename__ = "availability"

    member_id: int = Field(foreign_key="members.id", primary_key=True)
    match_id: int = Field(foreign_key="matches.id", primary_key=True)
    team_id: str = Field(foreign_key="teams.id", index=True)
    status: AvailabilityStatus = AvailabilityStatus.MAYBE
