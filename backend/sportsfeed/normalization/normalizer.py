"""Map heterogeneous upstream payloads onto the canonical record schemas.

The backend has shipped several response shapes for the same data over
time: bare arrays, ``{"data": [...]}``, ``{"success": true, "selections":
[...]}`` and so on, with field names that drift between snake_case,
camelCase and shortened forms. ``normalize`` probes the known containers in
a fixed order and maps each item through a per-kind alias table, so callers
only ever see fully populated records.
"""

from __future__ import annotations

import datetime
import hashlib
import logging
import math
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from sportsfeed.errors import NormalizationError
from sportsfeed.schemas.records import RECORD_TYPES, NormalizedRecord

logger = logging.getLogger(__name__)

CONTAINER_KEYS = (
    "data",
    "items",
    "results",
    "selections",
    "picks",
    "props",
    "teams",
    "games",
    "analytics",
    "bySport",
    "topPerformers",
    "byPickType",
)

_MISSING = object()


def _as_str(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip() or _MISSING
    if isinstance(value, bool):
        return _MISSING
    if isinstance(value, (int, float)):
        return str(value)
    return _MISSING


def _as_float(value: Any) -> Any:
    if isinstance(value, bool):
        return _MISSING
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return _MISSING
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace("%", ""))
        except ValueError:
            return _MISSING
    else:
        return _MISSING
    # NaN and infinities serialise to null and would not read back.
    return number if math.isfinite(number) else _MISSING


def _as_int(value: Any) -> Any:
    number = _as_float(value)
    if number is _MISSING:
        return _MISSING
    return int(number)


def _as_str_list(value: Any) -> Any:
    if not isinstance(value, list):
        return _MISSING
    names: list[str] = []
    for entry in value:
        if isinstance(entry, Mapping):
            entry = entry.get("name") or entry.get("player_name") or entry.get("player")
        text = _as_str(entry)
        if text is not _MISSING:
            names.append(text)
    return names


FieldRule = tuple[tuple[str, ...], Callable[[Any], Any]]

ALIAS_TABLES: dict[str, dict[str, FieldRule]] = {
    "player_prop": {
        "player_name": (("player_name", "player", "name", "playerName"), _as_str),
        "team": (("team", "team_name", "teamName", "team_abbr"), _as_str),
        "prop_type": (("prop_type", "type", "propType", "stat_type", "market"), _as_str),
        "line": (("line", "projection", "value"), _as_float),
        "over_price": (("over_price", "overOdds", "over_odds", "over"), _as_float),
        "under_price": (("under_price", "underOdds", "under_odds", "under"), _as_float),
        "bookmaker": (("bookmaker", "book", "sportsbook"), _as_str),
        "game": (("game", "matchup", "event"), _as_str),
        "sport": (("sport", "league"), _as_str),
        "last_update": (("last_update", "timestamp", "updated_at", "lastUpdated"), _as_str),
    },
    "game": {
        "home_team": (("home_team", "homeTeam", "home"), _as_str),
        "away_team": (("away_team", "awayTeam", "away", "visitor"), _as_str),
        "home_score": (("home_score", "homeScore"), _as_int),
        "away_score": (("away_score", "awayScore", "visitor_score"), _as_int),
        "status": (("status", "state", "game_status"), _as_str),
        "start_time": (("start_time", "startTime", "commence_time", "date", "time"), _as_str),
        "venue": (("venue", "arena", "stadium"), _as_str),
        "sport": (("sport", "league"), _as_str),
        "last_update": (("last_update", "timestamp", "updated_at", "lastUpdated"), _as_str),
    },
    "pick": {
        "pick_type": (("pick_type", "type", "category"), _as_str),
        "sport": (("sport", "league"), _as_str),
        "pick": (("pick", "selection", "description", "title"), _as_str),
        "confidence": (("confidence", "confidence_score"), _as_float),
        "odds": (("odds", "price"), _as_str),
        "probability": (("probability", "win_probability", "impliedProbability"), _as_float),
        "expected_value": (("expected_value", "expectedValue", "ev"), _as_str),
        "key_stat": (("key_stat", "keyStat"), _as_str),
        "trend": (("trend", "analysis"), _as_str),
        "last_update": (("last_update", "timestamp", "updated_at", "lastUpdated"), _as_str),
    },
    "fantasy_team": {
        "name": (("name", "team_name", "teamName"), _as_str),
        "owner": (("owner", "owner_name", "manager"), _as_str),
        "sport": (("sport", "league_sport"), _as_str),
        "league": (("league", "league_name", "leagueName"), _as_str),
        "record": (("record", "wins_losses"), _as_str),
        "points": (("points", "total_points", "fantasy_points"), _as_float),
        "rank": (("rank", "standing"), _as_int),
        "players": (("players", "roster"), _as_str_list),
        "waiver_position": (("waiver_position", "waiverPosition"), _as_int),
        "moves_this_week": (("moves_this_week", "movesThisWeek"), _as_int),
        "last_update": (("last_update", "lastUpdated", "timestamp", "updated_at"), _as_str),
    },
    "analytics": {
        "label": (("label", "name", "sport", "pickType", "player"), _as_str),
        "category": (("category", "type", "group"), _as_str),
        "value": (("value", "accuracy", "winRate", "win_rate", "roi"), _as_float),
        "sample_size": (("sample_size", "count", "total", "picks"), _as_int),
        "sport": (("sport", "league"), _as_str),
        "last_update": (("last_update", "timestamp", "updated_at", "lastUpdated"), _as_str),
    },
}

PRIMARY_FIELDS: dict[str, tuple[str, ...]] = {
    "player_prop": ("player_name", "prop_type", "line"),
    "game": ("home_team", "away_team", "start_time"),
    "pick": ("pick", "sport"),
    "fantasy_team": ("name", "owner"),
    "analytics": ("label", "category"),
}


def _probe_containers(payload: Mapping[str, Any]) -> list[Any] | None:
    """Return the first non-empty container list, [] if only empty ones exist, None if none."""
    saw_container = False
    for key in CONTAINER_KEYS:
        value = payload.get(key)
        if isinstance(value, list):
            if value:
                return value
            saw_container = True
        elif isinstance(value, Mapping):
            nested = _probe_containers(value)
            if nested:
                return nested
            if nested is not None:
                saw_container = True
    return [] if saw_container else None


def extract_items(raw: Any) -> list[Any]:
    if isinstance(raw, list):
        return raw
    if not isinstance(raw, Mapping):
        raise NormalizationError(f"unsupported payload type {type(raw).__name__}")
    if raw.get("success") is False:
        message = raw.get("message") or raw.get("error") or "success flag is false"
        raise NormalizationError(f"upstream reported failure: {message}")
    items = _probe_containers(raw)
    if items is None:
        keys = ", ".join(sorted(str(key) for key in raw.keys())) or "<none>"
        raise NormalizationError(f"no known container in payload (keys: {keys})")
    return items


def stable_id(feed_id: str, kind: str, fields: Mapping[str, Any], index: int) -> str:
    parts = [feed_id, *(str(fields.get(name, "")) for name in PRIMARY_FIELDS[kind]), str(index)]
    digest = hashlib.sha1("|".join(parts).encode("utf-8")).hexdigest()[:16]
    return f"{kind}-{digest}"


def _map_item(
    item: Mapping[str, Any],
    kind: str,
    defaults: Mapping[str, Any],
) -> dict[str, Any]:
    mapped: dict[str, Any] = {}
    for field, (aliases, coerce) in ALIAS_TABLES[kind].items():
        for alias in aliases:
            if item.get(alias) is None:
                continue
            value = coerce(item[alias])
            if value is not _MISSING:
                mapped[field] = value
                break
        else:
            if field in defaults:
                mapped[field] = defaults[field]
    return mapped


def normalize(
    feed_id: str,
    raw: Any,
    kind: str = "player_prop",
    defaults: Mapping[str, Any] | None = None,
    now: datetime.datetime | None = None,
) -> list[NormalizedRecord]:
    """Normalize ``raw`` into records of ``kind``.

    Raises NormalizationError when the payload shape is unrecognised. An empty
    but well-formed payload returns an empty list.
    """
    if kind not in RECORD_TYPES:
        raise ValueError(f"unknown record kind: {kind}")
    record_type = RECORD_TYPES[kind]
    items = extract_items(raw)

    fallback_values: dict[str, Any] = dict(defaults or {})
    if now is not None:
        fallback_values.setdefault("last_update", now.isoformat())

    records: list[NormalizedRecord] = []
    for index, item in enumerate(items):
        if not isinstance(item, Mapping):
            continue
        mapped = _map_item(item, kind, fallback_values)
        upstream_id = _as_str(item.get("id"))
        if upstream_id is _MISSING:
            upstream_id = stable_id(feed_id, kind, mapped, index)
        mapped["id"] = upstream_id
        try:
            records.append(record_type(**mapped))
        except ValidationError as exc:
            logger.debug("%s skipping item %d: %s", feed_id, index, exc)

    if items and not records:
        raise NormalizationError(f"{len(items)} items but none were objects")
    return records
