"""
Import a league calendar (.ics file or feed URL) into an existing team.

    python scripts/import_calendar.py TEAM_ID ACCESS_CODE liga.ics --season 2025/26 --half first
"""
import argparse
from pathlib import Path

from sqlmodel import Session

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in __import__("sys").path:
    __import__("sys").path.insert(0, str(PROJECT_ROOT))

from teamplanner.database import create_db_and_tables, engine
from teamplanner.models import SeasonHalf
from teamplanner.services.registry import registry


def read_source(source: str) -> tuple[str | None, str | None]:
    """Return (calendar_text, url) for a file path or URL argument."""
    if source.startswith(("http://", "https://", "webcal://")):
        return None, source
    with open(source, "r", encoding="utf-8") as f:
        return f.read(), None


def import_calendar(team_id: str, access_code: str, source: str, season: str, half: SeasonHalf, dry_run: bool) -> int:
    calendar_text, url = read_source(source)

    with Session(engine) as session:
        candidates = registry.preview_calendar(
            session, team_id, access_code, calendar_text=calendar_text, url=url
        )
        for candidate in candidates:
            side = "home" if candidate.is_home else "away"
            print(f"  {candidate.date} {candidate.time:>5}  {side:<4}  {candidate.opponent}  ({candidate.venue})")

        if dry_run:
            return 0

        matches = registry.import_calendar(
            session, team_id, access_code, candidates, season=season, season_half=half
        )
        return len(matches)


def main():
    parser = argparse.ArgumentParser(description="Import a league calendar into a team")
    parser.add_argument("team_id")
    parser.add_argument("access_code")
    parser.add_argument("source", help="Path to an .ics file or a feed URL")
    parser.add_argument("--season", default="")
    parser.add_argument("--half", choices=[h.value for h in SeasonHalf], default=SeasonHalf.FIRST.value)
    parser.add_argument("--dry-run", action="store_true", help="Only list the parsed fixtures")
    args = parser.parse_args()

    create_db_and_tables()

    print(f"Reading fixtures from {args.source}...")
    count = import_calendar(
        args.team_id, args.access_code, args.source, args.season, SeasonHalf(args.half), args.dry_run
    )
    if args.dry_run:
        print("Dry run, nothing imported.")
    else:
        print(f"Done! {count} matches imported.")


if __name__ == "__main__":
    main()
