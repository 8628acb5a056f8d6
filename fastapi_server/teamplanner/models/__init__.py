"""
SQLModel tables for team schedules, rosters and availability.
"""
from teamplanner.models.team import Team
from teamplanner.models.member import Member
from teamplanner.models.match import Match, SeasonHalf
from teamplanner.models.availability import AvailabilityRecord, AvailabilityStatus
from teamplanner.models.date_prediction import DatePrediction

__all__ = [
    "Team",
    "Member",
    "Match",
    "SeasonHalf",
    "AvailabilityRecord",
    "AvailabilityStatus",
    "DatePrediction",
]
