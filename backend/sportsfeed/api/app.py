from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from sportsfeed.api.routes import router
from sportsfeed.config.settings import settings
from sportsfeed.service import AcquisitionService, build_service


def create_app(service: AcquisitionService | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        active = service or build_service(settings)
        app.state.service = active
        for feed_id in active.config.autostart_feeds:
            active.scheduler.subscribe(feed_id)
        try:
            yield
        finally:
            await active.aclose()

    app = FastAPI(title="sportsfeed", lifespan=lifespan)
    app.include_router(router)
    return app
