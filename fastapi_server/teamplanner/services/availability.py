"""
Availability store - per member, per match status for the current match date.
"""
from sqlmodel import Session, select

from teamplanner.models import AvailabilityRecord, AvailabilityStatus


def set_availability(
    session: Session,
    team_id: str,
    member_id: int,
    match_id: int,
    status: AvailabilityStatus,
) -> AvailabilityRecord:
    """Upsert the status of one (member, match) pair; the last write wins."""
    record = session.get(AvailabilityRecord, (member_id, match_id))
    if record is None:
        record = AvailabilityRecord(
            member_id=member_id,
            match_id=match_id,
            team_id=team_id,
            status=status,
        )
    else:
        record.status = status
    session.add(record)
    session.flush()
    return record


def reset_for_match(session: Session, match_id: int) -> int:
    """Drop every status recorded for a match. Only called on date changes."""
    records = availability_for_match(session, match_id)
    for record in records:
        session.delete(record)
    return len(records)


def availability_for_match(session: Session, match_id: int) -> list[AvailabilityRecord]:
    return list(session.exec(
        select(AvailabilityRecord)
        .where(AvailabilityRecord.match_id == match_id)
        .order_by(AvailabilityRecord.member_id)
    ).all())


def availability_for_team(session: Session, team_id: str) -> list[AvailabilityRecord]:
    return list(session.exec(
        select(AvailabilityRecord)
        .where(AvailabilityRecord.team_id == team_id)
        .order_by(AvailabilityRecord.match_id, AvailabilityRecord.member_id)
    ).all())
