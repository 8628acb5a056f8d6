"""
Team registry - owns every team aggregate and applies all mutations.

Each mutating call checks the team's access code, changes the rows of
that team inside one transaction while holding the team's lock, commits,
and then publishes the resulting notifications to subscribed sessions.
A failing call raises before commit and leaves the team untouched.
"""
import re
import secrets
import string
from contextlib import contextmanager
from typing import Iterator, Optional

from loguru import logger
from sqlmodel import Session, func, select

from teamplanner.config import ACCESS_CODE_LENGTH
from teamplanner.errors import AccessCodeRequired, EntityNotFound, InvalidRequest, TeamNotFound
from teamplanner.models import (
    AvailabilityRecord,
    AvailabilityStatus,
    DatePrediction,
    Match,
    Member,
    SeasonHalf,
    Team,
)
from teamplanner.schemas import (
    AvailabilityView,
    MatchView,
    MemberView,
    Notification,
    NotificationKind,
    PredictionView,
    TeamData,
)
from teamplanner.services import availability, predictions
from teamplanner.services.broadcast import SessionBroadcaster, broadcaster as default_broadcaster
from teamplanner.services.calendar_import import MatchCandidate, fetch_calendar, to_match_candidates
from teamplanner.services.locks import TeamLocks

MAX_ID_ATTEMPTS = 5


# --- Utility Functions ---

def slugify(name: str) -> str:
    """'Test Football Team' -> 'test-football-team'"""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "team"


def generate_team_id(name: str) -> str:
    """Generate an unguessable team id like 'test-football-team-3f9a1c0b'."""
    return f"{slugify(name)}-{secrets.token_hex(4)}"


def generate_access_code() -> str:
    return "".join(secrets.choice(string.digits) for _ in range(ACCESS_CODE_LENGTH))


def is_valid_access_code(code: str) -> bool:
    return len(code) == ACCESS_CODE_LENGTH and code.isdigit()


def split_member_names(names: str) -> list[str]:
    """'Alice, Bob, , Charlie' -> ['Alice', 'Bob', 'Charlie']"""
    return [name.strip() for name in names.split(",") if name.strip()]


def _required(value: str, field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidRequest(f"{field} must not be empty")
    return value


class TeamRegistry:
    def __init__(
        self,
        broadcaster: SessionBroadcaster = default_broadcaster,
        locks: Optional[TeamLocks] = None,
    ):
        self.broadcaster = broadcaster
        self.locks = locks or TeamLocks()

    # --- Access ---

    def _find_team(self, session: Session, team_id: str) -> Team:
        team = session.get(Team, team_id)
        if team is None:
            raise TeamNotFound(team_id)
        return team

    def authorize(self, session: Session, team_id: str, access_code: Optional[str]) -> Team:
        """Resolve a team and check the supplied code (exact string equality)."""
        team = self._find_team(session, team_id)
        if not access_code or access_code != team.access_code:
            logger.bind(team_id=team_id, access_code=access_code).warning(
                f"Rejected access code for team {team_id}"
            )
            raise AccessCodeRequired(team_id)
        return team

    @contextmanager
    def _mutation(
        self, session: Session, team_id: str, access_code: Optional[str]
    ) -> Iterator[tuple[Team, list[Notification]]]:
        """
        Critical section of one team.

        Yields the authorized team and an outbox; notifications appended to
        the outbox are published after a successful commit, still under the
        team lock so subscribers see them in mutation order.
        """
        with self.locks.hold(team_id):
            outbox: list[Notification] = []
            try:
                team = self.authorize(session, team_id, access_code)
                yield team, outbox
                session.commit()
            except Exception:
                session.rollback()
                raise

            for notification in outbox:
                self.broadcaster.publish(team_id, notification)

    def _notify(self, outbox: list[Notification], team: Team, kind: NotificationKind, **payload):
        outbox.append(Notification(kind=kind, team_id=team.id, payload=payload))

    def _member(self, session: Session, team: Team, member_id: int) -> Member:
        member = session.get(Member, member_id)
        if member is None or member.team_id != team.id:
            raise EntityNotFound("member", member_id)
        return member

    def _match(self, session: Session, team: Team, match_id: int) -> Match:
        match = session.get(Match, match_id)
        if match is None or match.team_id != team.id:
            raise EntityNotFound("match", match_id)
        return match

    # --- Teams ---

    def create_team(
        self,
        session: Session,
        name: str,
        creator_name: str,
        other_member_names: str = "",
        players_needed: int = 11,
        access_code: Optional[str] = None,
    ) -> tuple[Team, int, str]:
        """
        Create a team with its creator as first member.

        Returns (team, creator member id, access code). The access code is
        generated when not supplied.
        """
        name = _required(name, "Team name")
        creator_name = _required(creator_name, "Creator name")
        if players_needed < 1:
            raise InvalidRequest("Players needed must be at least 1")
        if access_code is None:
            access_code = generate_access_code()
        elif not is_valid_access_code(access_code):
            raise InvalidRequest(f"Access code must be {ACCESS_CODE_LENGTH} digits")

        # Retry for extremely rare collisions
        for _ in range(MAX_ID_ATTEMPTS):
            team_id = generate_team_id(name)
            if session.get(Team, team_id) is None:
                break
        else:
            raise RuntimeError("Failed to generate unique team id")

        team = Team(
            id=team_id,
            name=name,
            slug=slugify(name),
            players_needed=players_needed,
            access_code=access_code,
        )
        session.add(team)
        session.flush()

        creator = Member(team_id=team_id, name=creator_name)
        session.add(creator)
        for member_name in split_member_names(other_member_names):
            session.add(Member(team_id=team_id, name=member_name))
        session.commit()
        session.refresh(team)

        logger.info(f"Created team {team_id} ({name})")
        return team, creator.id, access_code

    def load_team_data(self, session: Session, team: Team) -> TeamData:
        members = session.exec(
            select(Member).where(Member.team_id == team.id).order_by(Member.id)
        ).all()
        matches = session.exec(
            select(Match).where(Match.team_id == team.id).order_by(Match.id)
        ).all()
        return TeamData.build(
            team=team,
            members=list(members),
            matches=list(matches),
            availability=availability.availability_for_team(session, team.id),
            predictions=predictions.predictions_for_team(session, team.id),
        )

    def get_team(self, session: Session, team_id: str, access_code: Optional[str]) -> TeamData:
        team = self.authorize(session, team_id, access_code)
        return self.load_team_data(session, team)

    # The access-code prompt submits the same check as a plain load
    submit_access_code = get_team

    def update_players_needed(
        self, session: Session, team_id: str, access_code: Optional[str], players_needed: int
    ) -> Team:
        with self._mutation(session, team_id, access_code) as (team, outbox):
            if players_needed < 1:
                raise InvalidRequest("Players needed must be at least 1")
            team.players_needed = players_needed
            session.add(team)
            self._notify(outbox, team, NotificationKind.PLAYERS_NEEDED_UPDATED, players_needed=players_needed)
        return team

    # --- Roster and fixtures ---

    def create_member(self, session: Session, team_id: str, access_code: Optional[str], name: str) -> Member:
        with self._mutation(session, team_id, access_code) as (team, outbox):
            name = _required(name, "Member name")
            member = Member(team_id=team.id, name=name)
            session.add(member)
            session.flush()
            self._notify(
                outbox, team, NotificationKind.MEMBER_CREATED,
                member=MemberView.model_validate(member).model_dump(mode="json"),
            )
        return member

    def _next_matchday(self, session: Session, team_id: str, season: str, season_half: SeasonHalf) -> int:
        highest = session.exec(
            select(func.max(Match.matchday))
            .where(Match.team_id == team_id)
            .where(Match.season == season)
            .where(Match.season_half == season_half)
        ).one()
        return (highest or 0) + 1

    def _add_match(self, session: Session, team: Team, outbox: list[Notification], **fields) -> Match:
        match = Match(team_id=team.id, **fields)
        session.add(match)
        session.flush()
        self._notify(
            outbox, team, NotificationKind.MATCH_CREATED,
            match=MatchView.model_validate(match).model_dump(mode="json"),
        )
        return match

    def create_match(
        self,
        session: Session,
        team_id: str,
        access_code: Optional[str],
        opponent: str,
        date: str,
        time: str = "",
        is_home: bool = True,
        venue: str = "",
        season: str = "",
        season_half: SeasonHalf = SeasonHalf.FIRST,
        matchday: Optional[int] = None,
    ) -> Match:
        with self._mutation(session, team_id, access_code) as (team, outbox):
            opponent = _required(opponent, "Opponent")
            date = _required(date, "Date")
            if matchday is None:
                matchday = self._next_matchday(session, team.id, season, season_half)
            match = self._add_match(
                session, team, outbox,
                opponent=opponent,
                date=date,
                time=time,
                is_home=is_home,
                venue=venue,
                season=season,
                season_half=season_half,
                matchday=matchday,
            )
        return match

    # --- Availability ---

    def update_availability(
        self,
        session: Session,
        team_id: str,
        access_code: Optional[str],
        member_id: int,
        match_id: int,
        status: AvailabilityStatus,
    ) -> AvailabilityRecord:
        with self._mutation(session, team_id, access_code) as (team, outbox):
            self._member(session, team, member_id)
            self._match(session, team, match_id)
            record = availability.set_availability(session, team.id, member_id, match_id, status)
            self._notify(
                outbox, team, NotificationKind.AVAILABILITY_UPDATED,
                **AvailabilityView.model_validate(record).model_dump(mode="json"),
            )
        return record

    # --- Date changes ---

    def _commit_date(self, session: Session, team: Team, match: Match, new_date: str, outbox: list[Notification]):
        """
        Make new_date the official date of a match.

        Every commit wipes the match's availability and closes the
        negotiation, even when new_date equals the current date. Only a
        differing date anchors original_date (first time only).
        """
        if new_date != match.date and match.original_date is None:
            match.original_date = match.date
            self._notify(
                outbox, team, NotificationKind.MATCH_ORIGINAL_DATE_SET,
                match_id=match.id, original_date=match.original_date,
            )
        previous = match.date
        match.date = new_date
        session.add(match)
        availability.reset_for_match(session, match.id)
        self._notify(
            outbox, team, NotificationKind.MATCH_DATE_CHANGED,
            match_id=match.id, date=new_date, original_date=match.original_date,
        )
        logger.info(f"Match {match.id} of team {team.id} moved from {previous} to {new_date}")

        predictions.clear_predictions(session, match.id)
        self._notify(outbox, team, NotificationKind.PREDICTIONS_CLEARED, match_id=match.id)

    def change_match_date(
        self, session: Session, team_id: str, access_code: Optional[str], match_id: int, new_date: str
    ) -> Match:
        with self._mutation(session, team_id, access_code) as (team, outbox):
            new_date = _required(new_date, "Date")
            match = self._match(session, team, match_id)
            self._commit_date(session, team, match, new_date, outbox)
        return match

    # --- Date predictions ---

    def add_prediction(
        self,
        session: Session,
        team_id: str,
        access_code: Optional[str],
        match_id: int,
        predicted_date: str,
        member_id: int,
    ) -> DatePrediction:
        with self._mutation(session, team_id, access_code) as (team, outbox):
            predicted_date = _required(predicted_date, "Predicted date")
            self._match(session, team, match_id)
            self._member(session, team, member_id)
            prediction, created = predictions.add_prediction(
                session, team.id, match_id, predicted_date, member_id
            )
            if created:
                self._notify(
                    outbox, team, NotificationKind.DATE_PREDICTION_ADDED,
                    **PredictionView.model_validate(prediction).model_dump(mode="json"),
                )
        return prediction

    def update_prediction_availability(
        self,
        session: Session,
        team_id: str,
        access_code: Optional[str],
        match_id: int,
        predicted_date: str,
        member_id: int,
        status: AvailabilityStatus,
    ) -> DatePrediction:
        with self._mutation(session, team_id, access_code) as (team, outbox):
            predicted_date = _required(predicted_date, "Predicted date")
            self._match(session, team, match_id)
            self._member(session, team, member_id)
            prediction = predictions.update_prediction_availability(
                session, team.id, match_id, predicted_date, member_id, status
            )
            self._notify(
                outbox, team, NotificationKind.DATE_PREDICTION_UPDATED,
                **PredictionView.model_validate(prediction).model_dump(mode="json"),
            )
        return prediction

    def remove_prediction(
        self, session: Session, team_id: str, access_code: Optional[str], match_id: int, member_id: int
    ) -> list[str]:
        with self._mutation(session, team_id, access_code) as (team, outbox):
            self._match(session, team, match_id)
            self._member(session, team, member_id)
            dates = predictions.remove_prediction(session, match_id, member_id)
            if dates:
                self._notify(
                    outbox, team, NotificationKind.DATE_PREDICTION_REMOVED,
                    match_id=match_id, member_id=member_id, dates=dates,
                )
        return dates

    def candidate_dates(
        self, session: Session, team_id: str, access_code: Optional[str], match_id: int
    ) -> dict[str, dict[int, AvailabilityStatus]]:
        team = self.authorize(session, team_id, access_code)
        self._match(session, team, match_id)
        return predictions.candidate_dates(session, match_id)

    def choose_predicted_date(
        self, session: Session, team_id: str, access_code: Optional[str], match_id: int, chosen_date: str
    ) -> Match:
        """Commit a candidate as the official date. Votes are advisory, no quorum applies."""
        with self._mutation(session, team_id, access_code) as (team, outbox):
            chosen_date = _required(chosen_date, "Chosen date")
            match = self._match(session, team, match_id)
            self._commit_date(session, team, match, chosen_date, outbox)
        return match

    # --- Calendar import ---

    def preview_calendar(
        self,
        session: Session,
        team_id: str,
        access_code: Optional[str],
        calendar_text: Optional[str] = None,
        url: Optional[str] = None,
    ) -> list[MatchCandidate]:
        """Parse a feed into candidates. Reads nothing but the team name, writes nothing."""
        team = self.authorize(session, team_id, access_code)
        if calendar_text is None:
            if not url:
                raise InvalidRequest("Either calendar text or a calendar URL is required")
            calendar_text = fetch_calendar(url)
        return to_match_candidates(team.name, calendar_text)

    def import_calendar(
        self,
        session: Session,
        team_id: str,
        access_code: Optional[str],
        candidates: list[MatchCandidate],
        season: str = "",
        season_half: SeasonHalf = SeasonHalf.FIRST,
    ) -> list[Match]:
        """Commit selected candidates as matches, numbered after existing matchdays."""
        with self._mutation(session, team_id, access_code) as (team, outbox):
            matchday = self._next_matchday(session, team.id, season, season_half)
            matches = []
            for candidate in candidates:
                matches.append(self._add_match(
                    session, team, outbox,
                    opponent=candidate.opponent,
                    date=candidate.date,
                    time=candidate.time,
                    is_home=candidate.is_home,
                    venue=candidate.venue,
                    season=season,
                    season_half=season_half,
                    matchday=matchday,
                ))
                matchday += 1

        logger.info(f"Imported {len(matches)} matches into team {team_id}")
        return matches


registry = TeamRegistry()
