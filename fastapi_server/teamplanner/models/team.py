"""
Teams - the aggregate root; every other row is addressed by team id.
"""
from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class Team(SQLModel, table=True):
    __tablename__ = "teams"

    id: str = Field(primary_key=True)  # "<slug>-<8 hex>", doubles as share URL component
    name: str = Field(max_length=80)
    slug: str = Field(index=True)
    players_needed: int = Field(default=11, ge=1)
    access_code: str = Field(max_length=8)  # 4 digits in practice, exact string compare
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
