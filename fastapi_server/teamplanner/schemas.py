"""
Read models shared by the HTTP routers and the WebSocket stream.

TeamData is the full snapshot of one team; Notification is the delta pushed
to subscribed sessions after each mutation.
"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from teamplanner.models import (
    AvailabilityRecord,
    AvailabilityStatus,
    DatePrediction,
    Match,
    Member,
    SeasonHalf,
    Team,
)


class TeamView(BaseModel):
    id: str
    name: str
    slug: str
    players_needed: int
    created_at: str

    @classmethod
    def from_team(cls, team: Team) -> "TeamView":
        return cls(
            id=team.id,
            name=team.name,
            slug=team.slug,
            players_needed=team.players_needed,
            created_at=team.created_at.isoformat(),
        )


class MemberView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class MatchView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    opponent: str
    date: str
    time: str
    is_home: bool
    venue: str
    season: str
    season_half: SeasonHalf
    matchday: int
    original_date: Optional[str] = None


class AvailabilityView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    member_id: int
    match_id: int
    status: AvailabilityStatus


class PredictionView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    match_id: int
    predicted_date: str
    member_id: int
    availability: AvailabilityStatus


class SeasonView(BaseModel):
    season: str
    first_half: list[MatchView] = Field(default_factory=list)
    second_half: list[MatchView] = Field(default_factory=list)


class TeamData(BaseModel):
    team: TeamView
    members: list[MemberView]
    seasons: list[SeasonView]
    availability: list[AvailabilityView]
    predictions: list[PredictionView]

    @classmethod
    def build(
        cls,
        team: Team,
        members: list[Member],
        matches: list[Match],
        availability: list[AvailabilityRecord],
        predictions: list[DatePrediction],
    ) -> "TeamData":
        """Assemble a snapshot, grouping matches by season (first seen first) and half."""
        seasons: dict[str, SeasonView] = {}
        for match in sorted(matches, key=lambda m: m.id or 0):
            season = seasons.setdefault(match.season, SeasonView(season=match.season))
            view = MatchView.model_validate(match)
            if match.season_half == SeasonHalf.SECOND:
                season.second_half.append(view)
            else:
                season.first_half.append(view)

        for season in seasons.values():
            season.first_half.sort(key=lambda m: (m.matchday, m.id))
            season.second_half.sort(key=lambda m: (m.matchday, m.id))

        return cls(
            team=TeamView.from_team(team),
            members=[MemberView.model_validate(m) for m in members],
            seasons=list(seasons.values()),
            availability=[AvailabilityView.model_validate(a) for a in availability],
            predictions=[PredictionView.model_validate(p) for p in predictions],
        )


# --- Notifications ---

class NotificationKind(str, Enum):
    TEAM_CREATED = "TeamCreated"
    TEAM_LOADED = "TeamLoaded"
    TEAM_NOT_FOUND = "TeamNotFound"
    ACCESS_CODE_REQUIRED = "AccessCodeRequired"
    PLAYERS_NEEDED_UPDATED = "PlayersNeededUpdated"
    MATCH_CREATED = "MatchCreated"
    MEMBER_CREATED = "MemberCreated"
    AVAILABILITY_UPDATED = "AvailabilityUpdated"
    MATCH_DATE_CHANGED = "MatchDateChanged"
    MATCH_ORIGINAL_DATE_SET = "MatchOriginalDateSet"
    DATE_PREDICTION_ADDED = "DatePredictionAdded"
    DATE_PREDICTION_UPDATED = "DatePredictionUpdated"
    DATE_PREDICTION_REMOVED = "DatePredictionRemoved"
    PREDICTIONS_CLEARED = "PredictionsCleared"


class Notification(BaseModel):
    kind: NotificationKind
    team_id: str
    payload: dict[str, Any] = Field(default_factory=dict)

    def to_message(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
