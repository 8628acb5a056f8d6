"""
Date predictions - votes of members on proposed alternative dates of a match.

Keyed by (match, predicted date, member); last write wins.
"""
from datetime import datetime, timezone

from sqlmodel import Field, SQLModel

from teamplanner.models.availability import AvailabilityStatus


class DatePrediction(SQLModel, table=True):
    __tablename__ = "date_predictions"

    match_id: int = Field(foreign_key="matches.id", primary_key=True)
    predicted_date: str = Field(primary_key=True)
    member_id: int = Field(foreign_key="members.id", primary_key=True)
    team_id: str = Field(foreign_key="teams.id", index=True)
    availability: AvailabilityStatus = AvailabilityStatus.MAYBE
    proposed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
