"""
Teams router - API endpoints for team schedules and availability.

No accounts: a team is addressed by its unguessable id and every call
carries the team's 4-digit access code (X-Access-Code header, or the
?code= query parameter used by share links).
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from pydantic import BaseModel, Field
from sqlmodel import Session

from teamplanner.database import get_session
from teamplanner.models import AvailabilityStatus, SeasonHalf
from teamplanner.schemas import AvailabilityView, MatchView, MemberView, PredictionView, TeamData, TeamView
from teamplanner.services.calendar_import import MatchCandidate
from teamplanner.services.registry import registry

router = APIRouter(prefix="/api/teams", tags=["teams"])


# --- Request/Response Models ---

class CreateTeamRequest(BaseModel):
    name: str = Field(min_length=1, max_length=80, description="Team name")
    creator_name: str = Field(min_length=1, max_length=50, description="Creator's display name")
    member_names: str = Field(default="", description="Other members, comma separated")
    players_needed: int = Field(default=11, ge=1, le=99, description="Players needed per match")
    access_code: Optional[str] = Field(default=None, description="4-digit code, generated if omitted")


class CreateTeamResponse(BaseModel):
    team: TeamView
    creator_member_id: int
    access_code: str  # Returned only once, user must save it
    share_path: str


class AccessCodeRequest(BaseModel):
    access_code: str


class UpdateTeamRequest(BaseModel):
    players_needed: int = Field(ge=1, le=99)


class CreateMemberRequest(BaseModel):
    name: str = Field(min_length=1, max_length=50)


class CreateMatchRequest(BaseModel):
    opponent: str = Field(min_length=1, max_length=120)
    date: str = Field(min_length=1, description="Display date, e.g. 22.09.2025")
    time: str = ""
    is_home: bool = True
    venue: str = ""
    season: str = ""
    season_half: SeasonHalf = SeasonHalf.FIRST
    matchday: Optional[int] = Field(default=None, ge=1)


class UpdateAvailabilityRequest(BaseModel):
    member_id: int
    match_id: int
    status: AvailabilityStatus


class ChangeDateRequest(BaseModel):
    date: str = Field(min_length=1)


class AddPredictionRequest(BaseModel):
    predicted_date: str = Field(min_length=1)
    member_id: int


class UpdatePredictionRequest(BaseModel):
    predicted_date: str = Field(min_length=1)
    member_id: int
    availability: AvailabilityStatus


class CandidateDate(BaseModel):
    predicted_date: str
    votes: dict[int, AvailabilityStatus]


class RemovePredictionResponse(BaseModel):
    match_id: int
    member_id: int
    dates: list[str]


class CalendarPreviewRequest(BaseModel):
    calendar_text: Optional[str] = None
    url: Optional[str] = None


class CalendarCandidate(BaseModel):
    opponent: str
    date: str
    time: str
    is_home: bool
    venue: str = ""
    league: str = ""
    summary: str = ""


class CalendarImportRequest(BaseModel):
    season: str = ""
    season_half: SeasonHalf = SeasonHalf.FIRST
    candidates: list[CalendarCandidate]


# --- Dependencies ---

def access_code(
    x_access_code: Optional[str] = Header(None, alias="X-Access-Code"),
    code: Optional[str] = Query(default=None, description="Access code from a share link"),
) -> Optional[str]:
    return x_access_code or code


# --- Endpoints ---

@router.post("", response_model=CreateTeamResponse)
def create_team(
    request: CreateTeamRequest,
    session: Session = Depends(get_session),
):
    """
    Create a new team.

    Returns the team id (shareable) and the access code. The creator is
    automatically added as the first member, followed by the listed members.
    """
    team, creator_member_id, code = registry.create_team(
        session,
        name=request.name,
        creator_name=request.creator_name,
        other_member_names=request.member_names,
        players_needed=request.players_needed,
        access_code=request.access_code,
    )
    return CreateTeamResponse(
        team=TeamView.from_team(team),
        creator_member_id=creator_member_id,
        access_code=code,
        share_path=f"/team/{team.id}?code={code}",
    )


@router.get("/{team_id}", response_model=TeamData)
def get_team(
    team_id: str,
    code: Optional[str] = Depends(access_code),
    session: Session = Depends(get_session),
):
    """Full snapshot of a team: roster, matches by season, availability and predictions."""
    return registry.get_team(session, team_id, code)


@router.post("/{team_id}/access", response_model=TeamData)
def submit_access_code(
    team_id: str,
    request: AccessCodeRequest,
    session: Session = Depends(get_session),
):
    """Check a code typed into the access prompt and return the team on success."""
    return registry.submit_access_code(session, team_id, request.access_code.strip())


@router.patch("/{team_id}", response_model=TeamView)
def update_team(
    team_id: str,
    request: UpdateTeamRequest,
    code: Optional[str] = Depends(access_code),
    session: Session = Depends(get_session),
):
    team = registry.update_players_needed(session, team_id, code, request.players_needed)
    return TeamView.from_team(team)


@router.post("/{team_id}/members", response_model=MemberView)
def create_member(
    team_id: str,
    request: CreateMemberRequest,
    code: Optional[str] = Depends(access_code),
    session: Session = Depends(get_session),
):
    member = registry.create_member(session, team_id, code, request.name)
    return MemberView.model_validate(member)


@router.post("/{team_id}/matches", response_model=MatchView)
def create_match(
    team_id: str,
    request: CreateMatchRequest,
    code: Optional[str] = Depends(access_code),
    session: Session = Depends(get_session),
):
    match = registry.create_match(session, team_id, code, **request.model_dump())
    return MatchView.model_validate(match)


@router.put("/{team_id}/availability", response_model=AvailabilityView)
def update_availability(
    team_id: str,
    request: UpdateAvailabilityRequest,
    code: Optional[str] = Depends(access_code),
    session: Session = Depends(get_session),
):
    """Set a member's status for a match's current date."""
    record = registry.update_availability(
        session, team_id, code, request.member_id, request.match_id, request.status
    )
    return AvailabilityView.model_validate(record)


@router.put("/{team_id}/matches/{match_id}/date", response_model=MatchView)
def change_match_date(
    team_id: str,
    match_id: int,
    request: ChangeDateRequest,
    code: Optional[str] = Depends(access_code),
    session: Session = Depends(get_session),
):
    """
    Move a match to another date.

    Clears all availability and date predictions of the match.
    """
    match = registry.change_match_date(session, team_id, code, match_id, request.date)
    return MatchView.model_validate(match)


@router.get("/{team_id}/matches/{match_id}/predictions", response_model=list[CandidateDate])
def list_predictions(
    team_id: str,
    match_id: int,
    code: Optional[str] = Depends(access_code),
    session: Session = Depends(get_session),
):
    """Open candidate dates of a match with the votes cast on each."""
    candidates = registry.candidate_dates(session, team_id, code, match_id)
    return [
        CandidateDate(predicted_date=predicted_date, votes=votes)
        for predicted_date, votes in candidates.items()
    ]


@router.post("/{team_id}/matches/{match_id}/predictions", response_model=PredictionView)
def add_prediction(
    team_id: str,
    match_id: int,
    request: AddPredictionRequest,
    code: Optional[str] = Depends(access_code),
    session: Session = Depends(get_session),
):
    prediction = registry.add_prediction(
        session, team_id, code, match_id, request.predicted_date, request.member_id
    )
    return PredictionView.model_validate(prediction)


@router.put("/{team_id}/matches/{match_id}/predictions", response_model=PredictionView)
def update_prediction(
    team_id: str,
    match_id: int,
    request: UpdatePredictionRequest,
    code: Optional[str] = Depends(access_code),
    session: Session = Depends(get_session),
):
    prediction = registry.update_prediction_availability(
        session, team_id, code, match_id, request.predicted_date, request.member_id, request.availability
    )
    return PredictionView.model_validate(prediction)


@router.delete("/{team_id}/matches/{match_id}/predictions/{member_id}", response_model=RemovePredictionResponse)
def remove_prediction(
    team_id: str,
    match_id: int,
    member_id: int,
    code: Optional[str] = Depends(access_code),
    session: Session = Depends(get_session),
):
    """Withdraw every date a member proposed or voted on for a match."""
    dates = registry.remove_prediction(session, team_id, code, match_id, member_id)
    return RemovePredictionResponse(match_id=match_id, member_id=member_id, dates=dates)


@router.post("/{team_id}/matches/{match_id}/predictions/choose", response_model=MatchView)
def choose_predicted_date(
    team_id: str,
    match_id: int,
    request: ChangeDateRequest,
    code: Optional[str] = Depends(access_code),
    session: Session = Depends(get_session),
):
    """Commit a candidate date as the match's official date."""
    match = registry.choose_predicted_date(session, team_id, code, match_id, request.date)
    return MatchView.model_validate(match)


@router.post("/{team_id}/calendar/preview", response_model=list[CalendarCandidate])
def preview_calendar(
    team_id: str,
    request: CalendarPreviewRequest,
    code: Optional[str] = Depends(access_code),
    session: Session = Depends(get_session),
):
    """
    Parse a league calendar (pasted text or feed URL) into selectable fixtures.

    Nothing is stored; send the selected candidates to /calendar/import.
    """
    candidates = registry.preview_calendar(
        session, team_id, code, calendar_text=request.calendar_text, url=request.url
    )
    return [CalendarCandidate(**vars(candidate)) for candidate in candidates]


@router.post("/{team_id}/calendar/import", response_model=list[MatchView])
def import_calendar(
    team_id: str,
    request: CalendarImportRequest,
    code: Optional[str] = Depends(access_code),
    session: Session = Depends(get_session),
):
    matches = registry.import_calendar(
        session,
        team_id,
        code,
        candidates=[MatchCandidate(**candidate.model_dump()) for candidate in request.candidates],
        season=request.season,
        season_half=request.season_half,
    )
    return [MatchView.model_validate(match) for match in matches]
