from __future__ import annotations

import datetime
import random

from sportsfeed.schemas.records import (
    AnalyticsEntry,
    FantasyTeam,
    Game,
    NormalizedRecord,
    Pick,
    PlayerProp,
)

_PLAYERS: dict[str, list[tuple[str, str]]] = {
    "nba": [
        ("LeBron James", "Los Angeles Lakers"),
        ("Stephen Curry", "Golden State Warriors"),
        ("Giannis Antetokounmpo", "Milwaukee Bucks"),
        ("Nikola Jokic", "Denver Nuggets"),
        ("Jayson Tatum", "Boston Celtics"),
        ("Luka Doncic", "Dallas Mavericks"),
    ],
    "nfl": [
        ("Patrick Mahomes", "Kansas City Chiefs"),
        ("Josh Allen", "Buffalo Bills"),
        ("Dak Prescott", "Dallas Cowboys"),
        ("Lamar Jackson", "Baltimore Ravens"),
        ("Jalen Hurts", "Philadelphia Eagles"),
    ],
    "mlb": [
        ("Shohei Ohtani", "Los Angeles Dodgers"),
        ("Aaron Judge", "New York Yankees"),
        ("Mookie Betts", "Los Angeles Dodgers"),
        ("Juan Soto", "New York Mets"),
    ],
    "nhl": [
        ("Connor McDavid", "Edmonton Oilers"),
        ("Nathan MacKinnon", "Colorado Avalanche"),
        ("Auston Matthews", "Toronto Maple Leafs"),
    ],
}

_PROP_TYPES: dict[str, list[tuple[str, float, float]]] = {
    "nba": [("points", 18.5, 32.5), ("rebounds", 5.5, 13.5), ("assists", 4.5, 11.5)],
    "nfl": [("passing yards", 215.5, 305.5), ("rushing yards", 35.5, 95.5), ("touchdowns", 0.5, 2.5)],
    "mlb": [("hits", 0.5, 2.5), ("total bases", 1.5, 3.5), ("strikeouts", 4.5, 8.5)],
    "nhl": [("points", 0.5, 2.5), ("shots on goal", 2.5, 5.5)],
}

_BOOKMAKERS = ["DraftKings", "FanDuel", "BetMGM", "Caesars", "PrizePicks"]
_FANTASY_NAMES = ["Triple Double Crew", "Gridiron Warriors", "Home Run Heroes", "Puck Masters", "Dynasty Kings", "End Zone Experts"]
_OWNERS = ["Mike Johnson", "Sarah Williams", "David Chen", "Emma Thompson", "James Wilson", "Alex Rodriguez"]
_LEAGUES = ["Sunday League", "Pro League", "Weekend Warriors", "Monday Night", "Summer Sluggers", "Ice Kings"]
_PICK_TYPES = ["High Confidence", "Value Play", "Trending", "Longshot"]


def _sport_for(feed_id: str) -> str:
    suffix = feed_id.rsplit(":", 1)[-1].lower()
    return suffix if suffix in _PLAYERS else "nba"


def _american_odds(rng: random.Random) -> float:
    return float(rng.choice([-150, -135, -120, -115, -110, -105, 100, 110, 125, 140]))


def _player_prop(rng: random.Random, sport: str, index: int, stamp: str) -> PlayerProp:
    player, team = rng.choice(_PLAYERS[sport])
    opponent = rng.choice([t for _, t in _PLAYERS[sport] if t != team] or [team])
    prop_type, low, high = rng.choice(_PROP_TYPES[sport])
    line = round(rng.uniform(low, high) * 2) / 2
    return PlayerProp(
        id=f"synthetic-{sport}-prop-{index}",
        player_name=player,
        team=team,
        prop_type=prop_type,
        line=line,
        over_price=_american_odds(rng),
        under_price=_american_odds(rng),
        bookmaker=rng.choice(_BOOKMAKERS),
        game=f"{team} vs {opponent}",
        sport=sport,
        last_update=stamp,
    )


def _game(rng: random.Random, sport: str, index: int, stamp: str) -> Game:
    teams = sorted({team for _, team in _PLAYERS[sport]})
    home, away = rng.sample(teams, 2) if len(teams) > 1 else (teams[0], "TBD")
    status = rng.choice(["scheduled", "live", "final"])
    started = status != "scheduled"
    return Game(
        id=f"synthetic-{sport}-game-{index}",
        home_team=home,
        away_team=away,
        home_score=rng.randint(0, 120) if started else 0,
        away_score=rng.randint(0, 120) if started else 0,
        status=status,
        start_time=stamp,
        venue=f"{home} Arena",
        sport=sport,
        last_update=stamp,
    )


def _pick(rng: random.Random, sport: str, index: int, stamp: str) -> Pick:
    player, _ = rng.choice(_PLAYERS[sport])
    prop_type, low, high = rng.choice(_PROP_TYPES[sport])
    line = round(rng.uniform(low, high) * 2) / 2
    confidence = float(rng.randint(60, 95))
    return Pick(
        id=f"synthetic-{sport}-pick-{index}",
        pick_type=rng.choice(_PICK_TYPES),
        sport=sport.upper(),
        pick=f"{player} Over {line} {prop_type.title()}",
        confidence=confidence,
        odds=f"{int(_american_odds(rng)):+d}",
        probability=round(confidence - rng.uniform(0, 5), 1),
        expected_value=f"+{rng.uniform(2, 14):.1f}%",
        key_stat=f"Averaging {line + rng.uniform(0.5, 3):.1f} {prop_type} over last 10",
        trend=f"Over in {rng.randint(5, 9)} of last 10 games",
        last_update=stamp,
    )


def _fantasy_team(rng: random.Random, sport: str, index: int, stamp: str) -> FantasyTeam:
    wins = rng.randint(0, 12)
    losses = rng.randint(0, 12)
    return FantasyTeam(
        id=f"synthetic-fantasy-{index}",
        name=_FANTASY_NAMES[index % len(_FANTASY_NAMES)],
        owner=_OWNERS[index % len(_OWNERS)],
        sport=sport.upper(),
        league=rng.choice(_LEAGUES),
        record=f"{wins}-{losses}",
        points=round(rng.uniform(800, 1600), 1),
        rank=index + 1,
        players=[player for player, _ in rng.sample(_PLAYERS[sport], min(3, len(_PLAYERS[sport])))],
        waiver_position=rng.randint(1, 12),
        moves_this_week=rng.randint(0, 4),
        last_update=stamp,
    )


def _analytics(rng: random.Random, sport: str, index: int, stamp: str) -> AnalyticsEntry:
    prop_type, _, _ = rng.choice(_PROP_TYPES[sport])
    return AnalyticsEntry(
        id=f"synthetic-{sport}-analytics-{index}",
        label=f"{sport.upper()} {prop_type}",
        category=rng.choice(["bySport", "byPickType", "topPerformers"]),
        value=round(rng.uniform(45, 70), 1),
        sample_size=rng.randint(20, 400),
        sport=sport,
        last_update=stamp,
    )


_BUILDERS = {
    "player_prop": _player_prop,
    "game": _game,
    "pick": _pick,
    "fantasy_team": _fantasy_team,
    "analytics": _analytics,
}


def generate(
    feed_id: str,
    count: int,
    kind: str = "player_prop",
    now: datetime.datetime | None = None,
) -> list[NormalizedRecord]:
    """Placeholder records for ``feed_id``, stable for a given feed and day."""
    if kind not in _BUILDERS:
        raise ValueError(f"no synthetic builder for kind {kind}")
    now = now or datetime.datetime.now(datetime.UTC)
    rng = random.Random(f"{feed_id}:{now.date().isoformat()}")
    sport = _sport_for(feed_id)
    stamp = now.isoformat()
    build = _BUILDERS[kind]
    return [build(rng, sport, index, stamp) for index in range(max(count, 0))]
