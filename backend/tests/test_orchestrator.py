import asyncio
import datetime
from collections import Counter

import httpx
import pytest

from sportsfeed.cache import MemoryKeyValue, SnapshotStore
from sportsfeed.config.settings import Settings
from sportsfeed.jobs import orchestrator as orchestrator_module
from sportsfeed.jobs.orchestrator import FetchOrchestrator, FetchState
from sportsfeed.schemas.feed import EndpointCandidate, FeedDescriptor
from sportsfeed.schemas.records import PlayerProp
from sportsfeed.schemas.snapshot import AcquisitionUnavailable, Snapshot

NOW = datetime.datetime(2026, 1, 17, 18, 30, tzinfo=datetime.UTC)
EARLIER = datetime.datetime(2026, 1, 17, 9, 0, tzinfo=datetime.UTC)
TEST_SETTINGS = Settings(base_url="http://feeds.test", synthetic_count=4)

PROPS_BODY = {
    "success": True,
    "data": [{"player_name": "Jayson Tatum", "prop_type": "points", "line": 26.5}],
}


def _feed(*paths: str, **kwargs) -> FeedDescriptor:
    return FeedDescriptor(
        feed_id="player-props:nba",
        kind="player_prop",
        base_parameters={"sport": "nba"},
        candidates=[
            EndpointCandidate(path=path, priority=index + 1, display_name=path.rsplit("/", 1)[-1])
            for index, path in enumerate(paths)
        ],
        **kwargs,
    )


class CountingStore(SnapshotStore):
    def __init__(self) -> None:
        super().__init__(MemoryKeyValue())
        self.writes: list[Snapshot] = []

    async def write(self, feed_id: str, snapshot: Snapshot) -> None:
        self.writes.append(snapshot)
        await super().write(feed_id, snapshot)


def _run(handler, feed: FeedDescriptor, store: SnapshotStore | None = None, **kwargs):
    store = store or CountingStore()

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            orchestrator = FetchOrchestrator(
                store, client, TEST_SETTINGS, clock=lambda: NOW, **kwargs
            )
            result = await orchestrator.run(feed)
            return result, orchestrator

    result, orchestrator = asyncio.run(scenario())
    return result, orchestrator, store


def test_second_candidate_used_when_first_returns_500() -> None:
    calls: Counter[str] = Counter()
    seen_params: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls[request.url.path] += 1
        seen_params.append(request.url.params.get("sport"))
        if request.url.path == "/api/first":
            return httpx.Response(500, json={"error": "boom"})
        return httpx.Response(200, json=PROPS_BODY)

    snapshot, orchestrator, store = _run(handler, _feed("/api/first", "/api/second", "/api/third"))

    assert isinstance(snapshot, Snapshot)
    assert snapshot.provenance == "live"
    assert snapshot.source_endpoint == "/api/second"
    assert snapshot.captured_at == NOW
    assert snapshot.records[0].player_name == "Jayson Tatum"
    assert snapshot.records[0].sport == "nba"
    assert calls == Counter({"/api/first": 1, "/api/second": 1})
    assert seen_params == ["nba", "nba"]
    assert len(store.writes) == 1
    assert orchestrator.last_state["player-props:nba"] is FetchState.SUCCEEDED
    assert orchestrator.latest["player-props:nba"] is snapshot


def test_candidates_are_tried_in_priority_order() -> None:
    order: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        order.append(request.url.path)
        return httpx.Response(404)

    feed = FeedDescriptor(
        feed_id="games:nba",
        kind="game",
        candidates=[
            EndpointCandidate(path="/late", priority=9),
            EndpointCandidate(path="/early", priority=1),
            EndpointCandidate(path="/middle", priority=5),
        ],
    )
    _run(handler, feed)

    assert order == ["/early", "/middle", "/late"]


def test_empty_array_is_live_success_without_fallback() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    snapshot, _, store = _run(handler, _feed("/api/first", "/api/second"))

    assert snapshot.provenance == "live"
    assert snapshot.records == []
    assert snapshot.source_endpoint == "/api/first"
    assert [written.provenance for written in store.writes] == ["live"]


def test_transport_errors_timeouts_and_bad_shapes_advance() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/down":
            raise httpx.ConnectError("connection refused", request=request)
        if request.url.path == "/api/slow":
            await asyncio.sleep(1)
            return httpx.Response(200, json=PROPS_BODY)
        if request.url.path == "/api/html":
            return httpx.Response(200, text="<html>maintenance</html>")
        if request.url.path == "/api/failed":
            return httpx.Response(200, json={"success": False, "message": "upstream unavailable"})
        return httpx.Response(200, json={"selections": PROPS_BODY["data"]})

    feed = FeedDescriptor(
        feed_id="player-props:nba",
        kind="player_prop",
        candidates=[
            EndpointCandidate(path="/api/down", priority=1),
            EndpointCandidate(path="/api/slow", priority=2, timeout_seconds=0.05),
            EndpointCandidate(path="/api/html", priority=3),
            EndpointCandidate(path="/api/failed", priority=4),
            EndpointCandidate(path="/api/ok", priority=5),
        ],
    )
    snapshot, _, store = _run(handler, feed)

    assert snapshot.provenance == "live"
    assert snapshot.source_endpoint == "/api/ok"

    trace = asyncio.run(store.read_debug_trace("player-props:nba"))
    attempts = trace["attempts"]
    assert [attempt["succeeded"] for attempt in attempts] == [False, False, False, False, True]
    assert "timed out" in attempts[1]["error"]
    assert "upstream unavailable" in attempts[3]["error"]
    assert trace["state"] == "succeeded"
    assert "Jayson Tatum" in trace["raw_excerpt"]


def test_cached_snapshot_served_unchanged_when_all_fail() -> None:
    store = CountingStore()
    prior = Snapshot(
        feed_id="player-props:nba",
        records=[PlayerProp(id="cached-1", player_name="Luka Doncic")],
        captured_at=EARLIER,
        provenance="cached",
        source_endpoint="/api/first",
    )
    asyncio.run(SnapshotStore.write(store, "player-props:nba", prior))

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    snapshot, orchestrator, _ = _run(handler, _feed("/api/first", "/api/second"), store=store)

    assert snapshot.provenance == "cached"
    assert snapshot.captured_at == EARLIER
    assert snapshot.records == prior.records
    assert "503" in snapshot.last_error_message
    assert store.writes == []
    stored = asyncio.run(store.read("player-props:nba"))
    assert stored.captured_at == EARLIER
    assert stored.last_error_message is None
    assert orchestrator.last_state["player-props:nba"] is FetchState.CACHE_HIT


def test_live_snapshot_is_reported_as_cached_on_fallback() -> None:
    store = CountingStore()
    responses = iter([httpx.Response(200, json=PROPS_BODY), httpx.Response(500)])

    def handler(request: httpx.Request) -> httpx.Response:
        return next(responses)

    feed = _feed("/api/only")

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            orchestrator = FetchOrchestrator(store, client, TEST_SETTINGS, clock=lambda: NOW)
            return await orchestrator.run(feed), await orchestrator.run(feed)

    first, second = asyncio.run(scenario())

    assert first.provenance == "live"
    assert second.provenance == "cached"
    assert second.captured_at == first.captured_at
    assert second.records == first.records
    assert len(store.writes) == 1


def test_synthetic_records_when_nothing_else_available() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    snapshot, orchestrator, store = _run(handler, _feed("/api/first"))

    assert snapshot.provenance == "synthetic"
    assert len(snapshot.records) == TEST_SETTINGS.synthetic_count
    assert snapshot.source_endpoint is None
    assert snapshot.last_error_message
    assert [written.provenance for written in store.writes] == ["synthetic"]
    assert orchestrator.last_state["player-props:nba"] is FetchState.SYNTHESIZED
    for record in snapshot.records:
        assert isinstance(record, PlayerProp)
        dumped = record.model_dump()
        assert set(dumped) == set(PlayerProp.model_fields)
        assert all(dumped[name] not in (None, "") for name in dumped)


def test_feed_fallback_count_overrides_default() -> None:
    snapshot, _, _ = _run(lambda request: httpx.Response(500), _feed("/api/first", fallback_count=2))

    assert len(snapshot.records) == 2


def test_no_candidates_goes_straight_to_fallback() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    snapshot, _, _ = _run(handler, _feed())

    assert snapshot.provenance == "synthetic"
    assert snapshot.last_error_message == "no endpoint candidates configured"


def test_failing_fallback_without_candidates_is_unavailable() -> None:
    def broken_fallback(feed_id, count, kind, now):
        raise RuntimeError("generator exploded")

    result, orchestrator, store = _run(
        lambda request: httpx.Response(200, json=[]), _feed(), fallback=broken_fallback
    )

    assert isinstance(result, AcquisitionUnavailable)
    assert "generator exploded" in result.reason
    assert store.writes == []
    assert "player-props:nba" not in orchestrator.latest
    assert orchestrator.last_state["player-props:nba"] is FetchState.UNAVAILABLE


def test_non_finite_scores_are_live_and_survive_the_store() -> None:
    body = b'{"data": [{"home_team": "BOS", "away_team": "MIA", "home_score": "NaN", "away_score": NaN}]}'

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body, headers={"content-type": "application/json"})

    feed = FeedDescriptor(
        feed_id="games:nba", kind="game", candidates=[EndpointCandidate(path="/api/games", priority=1)]
    )
    snapshot, _, store = _run(handler, feed)

    assert snapshot.provenance == "live"
    assert (snapshot.records[0].home_score, snapshot.records[0].away_score) == (0, 0)
    stored = asyncio.run(store.read("games:nba"))
    assert stored is not None
    assert stored.records == snapshot.records


def test_unexpected_normalizer_error_moves_to_next_candidate(monkeypatch: pytest.MonkeyPatch) -> None:
    real_normalize = orchestrator_module.normalize
    calls: list[str] = []

    def flaky_normalize(feed_id, raw, **kwargs):
        calls.append(feed_id)
        if len(calls) == 1:
            raise OverflowError("cannot convert float infinity to integer")
        return real_normalize(feed_id, raw, **kwargs)

    monkeypatch.setattr(orchestrator_module, "normalize", flaky_normalize)

    snapshot, orchestrator, store = _run(
        lambda request: httpx.Response(200, json=PROPS_BODY), _feed("/api/first", "/api/second")
    )

    assert snapshot.provenance == "live"
    assert snapshot.source_endpoint == "/api/second"
    assert orchestrator.last_state["player-props:nba"] is FetchState.SUCCEEDED
    trace = asyncio.run(store.read_debug_trace("player-props:nba"))
    assert [attempt["succeeded"] for attempt in trace["attempts"]] == [False, True]
    assert "OverflowError" in trace["attempts"][0]["error"]
