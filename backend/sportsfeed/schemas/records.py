from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class PlayerProp(BaseModel):
    record_type: Literal["player_prop"] = "player_prop"
    id: str = ""
    player_name: str = "Unknown Player"
    team: str = "Unknown Team"
    prop_type: str = "points"
    line: float = 0.0
    over_price: float = 0.0
    under_price: float = 0.0
    bookmaker: str = "Unknown"
    game: str = "Unknown Game"
    sport: str = ""
    last_update: str = ""


class Game(BaseModel):
    record_type: Literal["game"] = "game"
    id: str = ""
    home_team: str = "TBD"
    away_team: str = "TBD"
    home_score: int = 0
    away_score: int = 0
    status: str = "scheduled"
    start_time: str = ""
    venue: str = ""
    sport: str = ""
    last_update: str = ""


class Pick(BaseModel):
    record_type: Literal["pick"] = "pick"
    id: str = ""
    pick_type: str = "Standard"
    sport: str = ""
    pick: str = ""
    confidence: float = 0.0
    odds: str = ""
    probability: float = 0.0
    expected_value: str = ""
    key_stat: str = ""
    trend: str = ""
    last_update: str = ""


class FantasyTeam(BaseModel):
    record_type: Literal["fantasy_team"] = "fantasy_team"
    id: str = ""
    name: str = "Unnamed Team"
    owner: str = "Unknown Owner"
    sport: str = "NBA"
    league: str = ""
    record: str = "0-0"
    points: float = 0.0
    rank: int = 0
    players: list[str] = Field(default_factory=list)
    waiver_position: int = 0
    moves_this_week: int = 0
    last_update: str = ""


class AnalyticsEntry(BaseModel):
    record_type: Literal["analytics"] = "analytics"
    id: str = ""
    label: str = "Unknown"
    category: str = "general"
    value: float = 0.0
    sample_size: int = 0
    sport: str = ""
    last_update: str = ""


NormalizedRecord = Annotated[
    Union[PlayerProp, Game, Pick, FantasyTeam, AnalyticsEntry],
    Field(discriminator="record_type"),
]

RECORD_TYPES: dict[str, type[BaseModel]] = {
    "player_prop": PlayerProp,
    "game": Game,
    "pick": Pick,
    "fantasy_team": FantasyTeam,
    "analytics": AnalyticsEntry,
}
