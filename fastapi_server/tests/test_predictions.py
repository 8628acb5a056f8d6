"""Tests for predictions.py - candidate dates and per-candidate votes."""

from teamplanner.models import AvailabilityStatus
from teamplanner.services import predictions


class TestAddPrediction:
    def test_default_vote_is_maybe(self, session, team):
        team_id, _, members, match_id = team
        prediction, created = predictions.add_prediction(session, team_id, match_id, "01.02.2026", members[0])
        session.commit()

        assert created
        assert prediction.availability == AvailabilityStatus.MAYBE

    def test_idempotent(self, session, team):
        team_id, _, members, match_id = team
        predictions.add_prediction(session, team_id, match_id, "01.02.2026", members[0])
        predictions.update_prediction_availability(
            session, team_id, match_id, "01.02.2026", members[0], AvailabilityStatus.AVAILABLE
        )
        prediction, created = predictions.add_prediction(session, team_id, match_id, "01.02.2026", members[0])
        session.commit()

        assert not created
        assert prediction.availability == AvailabilityStatus.AVAILABLE
        assert len(predictions.predictions_for_match(session, match_id)) == 1


class TestVotes:
    def test_votes_are_independent_per_candidate(self, session, team):
        team_id, _, members, match_id = team
        member = members[0]
        predictions.update_prediction_availability(
            session, team_id, match_id, "01.02.2026", member, AvailabilityStatus.AVAILABLE
        )
        predictions.update_prediction_availability(
            session, team_id, match_id, "08.02.2026", member, AvailabilityStatus.NOT_AVAILABLE
        )
        session.commit()

        candidates = predictions.candidate_dates(session, match_id)
        assert candidates["01.02.2026"] == {member: AvailabilityStatus.AVAILABLE}
        assert candidates["08.02.2026"] == {member: AvailabilityStatus.NOT_AVAILABLE}

    def test_update_creates_missing_entry(self, session, team):
        team_id, _, members, match_id = team
        predictions.update_prediction_availability(
            session, team_id, match_id, "01.02.2026", members[1], AvailabilityStatus.AVAILABLE
        )
        session.commit()
        assert predictions.candidate_dates(session, match_id) == {
            "01.02.2026": {members[1]: AvailabilityStatus.AVAILABLE},
        }


class TestRemovePrediction:
    def test_sole_voter_removes_candidate(self, session, team):
        team_id, _, members, match_id = team
        predictions.add_prediction(session, team_id, match_id, "01.02.2026", members[0])
        predictions.add_prediction(session, team_id, match_id, "08.02.2026", members[0])
        predictions.add_prediction(session, team_id, match_id, "08.02.2026", members[1])
        session.commit()

        removed = predictions.remove_prediction(session, match_id, members[0])
        session.commit()

        assert sorted(removed) == ["01.02.2026", "08.02.2026"]
        assert predictions.candidate_dates(session, match_id) == {
            "08.02.2026": {members[1]: AvailabilityStatus.MAYBE},
        }

    def test_nothing_to_remove(self, session, team):
        _, _, members, match_id = team
        assert predictions.remove_prediction(session, match_id, members[2]) == []

    def test_clear_predictions(self, session, team):
        team_id, _, members, match_id = team
        for member_id in members:
            predictions.add_prediction(session, team_id, match_id, "01.02.2026", member_id)
        session.commit()

        assert predictions.clear_predictions(session, match_id) == 3
        session.commit()
        assert predictions.candidate_dates(session, match_id) == {}
