"""
Date predictions - non-binding negotiation of a new date for a match.

Members propose candidate dates and vote on each candidate independently.
A candidate exists only while at least one member has an entry for it.
Nothing here decides a winner: committing a candidate is an explicit call
(TeamRegistry.choose_predicted_date) and goes through the normal date
change, which clears all candidates of the match.
"""
from sqlmodel import Session, select

from teamplanner.models import AvailabilityStatus, DatePrediction


def add_prediction(
    session: Session,
    team_id: str,
    match_id: int,
    predicted_date: str,
    member_id: int,
) -> tuple[DatePrediction, bool]:
    """Propose a date for a member with a default Maybe vote. Returns (entry, created)."""
    existing = session.get(DatePrediction, (match_id, predicted_date, member_id))
    if existing is not None:
        return existing, False

    prediction = DatePrediction(
        match_id=match_id,
        predicted_date=predicted_date,
        member_id=member_id,
        team_id=team_id,
        availability=AvailabilityStatus.MAYBE,
    )
    session.add(prediction)
    session.flush()
    return prediction, True


def update_prediction_availability(
    session: Session,
    team_id: str,
    match_id: int,
    predicted_date: str,
    member_id: int,
    availability: AvailabilityStatus,
) -> DatePrediction:
    """Overwrite a member's vote on one candidate date, creating the entry if needed."""
    prediction = session.get(DatePrediction, (match_id, predicted_date, member_id))
    if prediction is None:
        prediction = DatePrediction(
            match_id=match_id,
            predicted_date=predicted_date,
            member_id=member_id,
            team_id=team_id,
        )
    prediction.availability = availability
    session.add(prediction)
    session.flush()
    return prediction


def remove_prediction(session: Session, match_id: int, member_id: int) -> list[str]:
    """Withdraw all of a member's entries for a match. Returns the affected dates."""
    entries = session.exec(
        select(DatePrediction)
        .where(DatePrediction.match_id == match_id)
        .where(DatePrediction.member_id == member_id)
        .order_by(DatePrediction.proposed_at)
    ).all()

    dates = [entry.predicted_date for entry in entries]
    for entry in entries:
        session.delete(entry)
    return dates


def clear_predictions(session: Session, match_id: int) -> int:
    """Drop every candidate of a match. Part of a date commit."""
    entries = predictions_for_match(session, match_id)
    for entry in entries:
        session.delete(entry)
    return len(entries)


def predictions_for_match(session: Session, match_id: int) -> list[DatePrediction]:
    return list(session.exec(
        select(DatePrediction)
        .where(DatePrediction.match_id == match_id)
        .order_by(DatePrediction.proposed_at, DatePrediction.member_id)
    ).all())


def predictions_for_team(session: Session, team_id: str) -> list[DatePrediction]:
    return list(session.exec(
        select(DatePrediction)
        .where(DatePrediction.team_id == team_id)
        .order_by(DatePrediction.match_id, DatePrediction.proposed_at, DatePrediction.member_id)
    ).all())


def candidate_dates(session: Session, match_id: int) -> dict[str, dict[int, AvailabilityStatus]]:
    """
    Open candidate dates of a match, in the order they were first proposed,
    each mapped to the votes cast on it (member id -> vote).
    """
    candidates: dict[str, dict[int, AvailabilityStatus]] = {}
    for entry in predictions_for_match(session, match_id):
        candidates.setdefault(entry.predicted_date, {})[entry.member_id] = entry.availability
    return candidates
