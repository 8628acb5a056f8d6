"""Tests for availability.py - the per member, per match status store."""

from teamplanner.models import AvailabilityStatus
from teamplanner.services import availability


class TestAvailabilityStore:
    def test_upsert_overwrites(self, session, team):
        team_id, _, members, match_id = team
        availability.set_availability(session, team_id, members[0], match_id, AvailabilityStatus.AVAILABLE)
        availability.set_availability(session, team_id, members[0], match_id, AvailabilityStatus.NOT_AVAILABLE)
        session.commit()

        records = availability.availability_for_match(session, match_id)
        assert len(records) == 1
        assert records[0].status == AvailabilityStatus.NOT_AVAILABLE

    def test_one_record_per_member(self, session, team):
        team_id, _, members, match_id = team
        for member_id in members:
            availability.set_availability(session, team_id, member_id, match_id, AvailabilityStatus.MAYBE)
        session.commit()

        records = availability.availability_for_team(session, team_id)
        assert [r.member_id for r in records] == members

    def test_reset_for_match_only_touches_that_match(self, session, registry, team):
        team_id, code, members, match_id = team
        other = registry.create_match(session, team_id, code, opponent="TSV Kropp", date="29.09.2025")
        availability.set_availability(session, team_id, members[0], match_id, AvailabilityStatus.AVAILABLE)
        availability.set_availability(session, team_id, members[0], other.id, AvailabilityStatus.AVAILABLE)
        session.commit()

        assert availability.reset_for_match(session, match_id) == 1
        session.commit()

        assert availability.availability_for_match(session, match_id) == []
        assert len(availability.availability_for_match(session, other.id)) == 1
