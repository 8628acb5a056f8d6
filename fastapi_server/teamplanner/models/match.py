"""
Matches - fixtures of a team, grouped by season and season half.

Date and time are display strings ("22.09.2025", "18:00"), never parsed.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel


class SeasonHalf(str, Enum):
    FIRST = "first"
    SECOND = "second"


class Match(SQLModel, table=True):
    __tablename__ = "matches"

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: str = Field(foreign_key="teams.id", index=True)
    opponent: str = Field(max_length=120)
    date: str
    time: str = ""
    is_home: bool = True
    venue: str = ""
    season: str = Field(default="", index=True)
    season_half: SeasonHalf = SeasonHalf.FIRST
    matchday: int = 1

    # Date in effect before the first reschedule; never overwritten afterwards
    original_date: Optional[str] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
