"""
Calendar import - turns a league's iCalendar feed into selectable match candidates.

Only VEVENT blocks and the SUMMARY/DTSTART/DTEND/LOCATION lines are read;
everything else in the feed is ignored. Values are taken verbatim (no
unescaping, no timezone conversion).

League feeds write each fixture as "Home Team - Away Team (league info)"
without saying which side is ours, and may spell our name differently
from how the team calls itself. The name that fills the home slot most
often across the whole feed is taken to be ours.
"""
from collections import Counter
from dataclasses import dataclass
from typing import Optional

import requests
from loguru import logger

from teamplanner.config import CALENDAR_FETCH_TIMEOUT
from teamplanner.errors import CalendarFetchError

FIELD_PREFIXES = {
    "SUMMARY:": "summary",
    "DTSTART:": "start",
    "DTEND:": "end",
    "LOCATION:": "location",
}
TEAM_SEPARATOR = " - "


@dataclass
class CalendarEvent:
    summary: str
    start: str
    end: str = ""
    location: str = ""


@dataclass
class MatchCandidate:
    """A fixture found in the feed, not yet committed as a match."""
    opponent: str
    date: str
    time: str
    is_home: bool
    venue: str = ""
    league: str = ""
    summary: str = ""


def parse_calendar(text: str) -> list[CalendarEvent]:
    """Extract VEVENT blocks from calendar text. Events without DTSTART are dropped."""
    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line]

    events = []
    fields: Optional[dict[str, str]] = None
    for line in lines:
        if line == "BEGIN:VEVENT":
            fields = {}
        elif line == "END:VEVENT":
            if fields is not None:
                if fields.get("start"):
                    events.append(CalendarEvent(
                        summary=fields.get("summary", ""),
                        start=fields["start"],
                        end=fields.get("end", ""),
                        location=fields.get("location", ""),
                    ))
                else:
                    logger.debug(f"Skipping event without start time: {fields.get('summary', '')!r}")
            fields = None
        elif fields is not None:
            for prefix, key in FIELD_PREFIXES.items():
                if line.startswith(prefix):
                    fields[key] = line[len(prefix):]
                    break

    return events


def split_summary(summary: str) -> Optional[tuple[str, str]]:
    """Split "Home - Away (league)" into (home, away), or None if it doesn't split in two."""
    title = summary.split("(", 1)[0]
    parts = title.split(TEAM_SEPARATOR)
    if len(parts) != 2:
        return None
    return parts[0].strip(), parts[1].strip()


def league_info(summary: str) -> str:
    """Text inside the first parentheses of a summary, if any."""
    if "(" not in summary:
        return ""
    return summary.split("(", 1)[1].split(")", 1)[0].strip()


def infer_home_team(events: list[CalendarEvent], fallback: str) -> str:
    """
    Pick the name occupying the home slot most often.

    Ties go to the name seen first. If no summary splits into two teams,
    the caller-supplied fallback is returned.
    """
    tally: Counter[str] = Counter()
    for event in events:
        teams = split_summary(event.summary)
        if teams:
            tally[teams[0]] += 1

    if not tally:
        return fallback
    # max() keeps the first key among equal counts; Counter preserves insertion order
    return max(tally, key=tally.__getitem__)


def format_date(timestamp: str) -> str:
    """20250922T180000Z -> 22.09.2025"""
    if len(timestamp) < 8:
        return ""
    return f"{timestamp[6:8]}.{timestamp[4:6]}.{timestamp[0:4]}"


def format_time(timestamp: str) -> str:
    """20250922T180000Z -> 18:00"""
    if len(timestamp) < 13:
        return ""
    return f"{timestamp[9:11]}:{timestamp[11:13]}"


def to_match_candidates(own_team_name: str, text: str) -> list[MatchCandidate]:
    """Parse a feed and classify each fixture as home or away."""
    events = parse_calendar(text)
    home_team = infer_home_team(events, own_team_name)

    candidates = []
    for event in events:
        teams = split_summary(event.summary)
        if teams is None:
            logger.debug(f"Summary did not split into two teams: {event.summary!r}")
            opponent, is_home = event.summary, True
        elif teams[0] == home_team:
            opponent, is_home = teams[1], True
        else:
            opponent, is_home = teams[0], False

        candidates.append(MatchCandidate(
            opponent=opponent,
            date=format_date(event.start),
            time=format_time(event.start),
            is_home=is_home,
            venue=event.location,
            league=league_info(event.summary),
            summary=event.summary,
        ))

    return candidates


def fetch_calendar(url: str, timeout: float = CALENDAR_FETCH_TIMEOUT) -> str:
    """Download a published calendar feed."""
    if url.startswith("webcal://"):
        url = "https://" + url[len("webcal://"):]

    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise CalendarFetchError(url, str(e)) from e

    return response.text
