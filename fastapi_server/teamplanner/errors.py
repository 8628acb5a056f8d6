"""
Domain errors raised by the team services.

Every failing operation raises one of these before anything is committed,
so callers never observe a partial mutation.
"""


class TeamPlannerError(Exception):
    """Base class for all domain errors."""


class TeamNotFound(TeamPlannerError):
    def __init__(self, team_id: str):
        self.team_id = team_id
        super().__init__(f"Team '{team_id}' not found")


class AccessCodeRequired(TeamPlannerError):
    """The team exists but the supplied access code is missing or wrong."""

    def __init__(self, team_id: str):
        self.team_id = team_id
        super().__init__(f"Access code required for team '{team_id}'")


class EntityNotFound(TeamPlannerError):
    """A member or match id that does not belong to the addressed team."""

    def __init__(self, kind: str, entity_id):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind.capitalize()} {entity_id} not found in this team")


class InvalidRequest(TeamPlannerError):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class CalendarFetchError(TeamPlannerError):
    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch calendar from {url}: {reason}")
