import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session

from main import app
from teamplanner.database import create_db_and_tables, engine_for, get_session
from teamplanner.services.broadcast import SessionBroadcaster
from teamplanner.services.registry import TeamRegistry

FEED_HEADER = "BEGIN:VCALENDAR\nVERSION:2.0\nPRODID:-//Liga//Spielplan//DE\n"
FEED_FOOTER = "END:VCALENDAR\n"


def make_event(summary, start="20250922T180000Z", location="Turnhalle Nobiskrug", end=None):
    lines = ["BEGIN:VEVENT", f"SUMMARY:{summary}", f"DTSTART:{start}"]
    if end:
        lines.append(f"DTEND:{end}")
    lines.append(f"LOCATION:{location}")
    lines.append("END:VEVENT")
    return "\n".join(lines) + "\n"


def make_feed(*events):
    return FEED_HEADER + "".join(events) + FEED_FOOTER


class RecordingSubscriber:
    def __init__(self):
        self.messages = []

    def deliver(self, message):
        self.messages.append(message)

    @property
    def kinds(self):
        return [m["kind"] for m in self.messages]


@pytest.fixture(name="engine")
def engine_fixture():
    engine = engine_for("sqlite://", poolclass=StaticPool)
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="broadcaster")
def broadcaster_fixture():
    return SessionBroadcaster()


@pytest.fixture(name="registry")
def registry_fixture(broadcaster):
    return TeamRegistry(broadcaster=broadcaster)


@pytest.fixture(name="team")
def team_fixture(session, registry):
    """A team with three members and one match; returns (team_id, code, member_ids, match_id)."""
    team, creator_id, code = registry.create_team(
        session, "Rendsburger TSV 4", "John Doe", "Alice, Bob", players_needed=6, access_code="1234"
    )
    data = registry.get_team(session, team.id, code)
    member_ids = [m.id for m in data.members]
    match = registry.create_match(
        session, team.id, code,
        opponent="Osterbyer SV 2", date="22.09.2025", time="18:00",
        season="2025/26",
    )
    return team.id, code, member_ids, match.id


@pytest.fixture(name="client")
def client_fixture(engine):
    def get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
