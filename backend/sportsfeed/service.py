from __future__ import annotations

from dataclasses import dataclass

import httpx

from sportsfeed.cache import SnapshotStore, build_key_value
from sportsfeed.config.settings import Settings, settings
from sportsfeed.feeds.catalog import FeedCatalog, build_default_catalog
from sportsfeed.jobs.orchestrator import FetchOrchestrator
from sportsfeed.jobs.scheduler import RefreshScheduler
from sportsfeed.providers.http import build_client


@dataclass
class AcquisitionService:
    config: Settings
    catalog: FeedCatalog
    store: SnapshotStore
    client: httpx.AsyncClient
    orchestrator: FetchOrchestrator
    scheduler: RefreshScheduler

    async def aclose(self) -> None:
        await self.scheduler.close()
        await self.client.aclose()


def build_service(
    config: Settings | None = None,
    catalog: FeedCatalog | None = None,
    store: SnapshotStore | None = None,
    client: httpx.AsyncClient | None = None,
) -> AcquisitionService:
    config = config or settings
    catalog = catalog or build_default_catalog(config)
    store = store or SnapshotStore(build_key_value(config.storage), config.storage.key_prefix)
    client = client or build_client(config.http)
    orchestrator = FetchOrchestrator(store, client, config)
    scheduler = RefreshScheduler(catalog, orchestrator, config.default_interval_seconds)
    return AcquisitionService(
        config=config,
        catalog=catalog,
        store=store,
        client=client,
        orchestrator=orchestrator,
        scheduler=scheduler,
    )
