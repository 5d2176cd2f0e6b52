from __future__ import annotations

from sportsfeed.config.settings import Settings, settings
from sportsfeed.errors import UnknownFeedError
from sportsfeed.schemas.feed import EndpointCandidate, FeedDescriptor

_PLAYER_PROP_PATHS = [
    ("/api/prizepicks/selections", "Selections"),
    ("/api/prizepicks/picks", "Picks"),
    ("/api/picks/prizepicks", "Picks (alt)"),
    ("/api/prize-picks", "Prize-Picks"),
    ("/api/prizepicks", "Root"),
]


def _candidates(paths: list[tuple[str, str]]) -> list[EndpointCandidate]:
    return [
        EndpointCandidate(path=path, priority=index + 1, display_name=name)
        for index, (path, name) in enumerate(paths)
    ]


def resolve_candidates(feed: FeedDescriptor) -> list[EndpointCandidate]:
    return sorted(feed.candidates, key=lambda candidate: candidate.priority)


class FeedCatalog:
    def __init__(self, feeds: list[FeedDescriptor] | None = None) -> None:
        self._feeds: dict[str, FeedDescriptor] = {}
        for feed in feeds or []:
            self.register(feed)

    def register(self, feed: FeedDescriptor) -> None:
        self._feeds[feed.feed_id] = feed

    def get(self, feed_id: str) -> FeedDescriptor:
        try:
            return self._feeds[feed_id]
        except KeyError:
            raise UnknownFeedError(feed_id) from None

    def __contains__(self, feed_id: str) -> bool:
        return feed_id in self._feeds

    def all(self) -> list[FeedDescriptor]:
        return list(self._feeds.values())


def build_default_catalog(config: Settings | None = None) -> FeedCatalog:
    config = config or settings
    catalog = FeedCatalog()
    for sport in config.sports:
        catalog.register(
            FeedDescriptor(
                feed_id=f"player-props:{sport}",
                kind="player_prop",
                base_parameters={"sport": sport},
                candidates=_candidates(_PLAYER_PROP_PATHS),
            )
        )
        catalog.register(
            FeedDescriptor(
                feed_id=f"games:{sport}",
                kind="game",
                base_parameters={"sport": sport},
                candidates=_candidates(
                    [
                        (f"/api/{sport}/games", "Games"),
                        (f"/api/{sport}/scores", "Scores"),
                        ("/api/games", "Live Games"),
                    ]
                ),
            )
        )
    catalog.register(
        FeedDescriptor(
            feed_id="daily-picks",
            kind="pick",
            candidates=_candidates([("/api/picks/daily", "Daily Picks"), ("/api/picks", "Picks")]),
            fallback_count=2,
        )
    )
    catalog.register(
        FeedDescriptor(
            feed_id="fantasy-teams",
            kind="fantasy_team",
            candidates=_candidates([("/api/fantasy/teams", "Fantasy Teams"), ("/api/fantasy", "Fantasy API")]),
        )
    )
    catalog.register(
        FeedDescriptor(
            feed_id="sports-wire",
            kind="player_prop",
            candidates=_candidates([("/api/sports-wire", "Sports Wire")]),
            fallback_count=3,
        )
    )
    catalog.register(
        FeedDescriptor(
            feed_id="analytics:prizepicks",
            kind="analytics",
            candidates=_candidates([("/api/prizepicks/analytics", "PrizePicks Analytics")]),
        )
    )
    return catalog
