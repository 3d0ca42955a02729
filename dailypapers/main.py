from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI

from .config import Settings, load_settings
from .pipeline import build_pipeline
from .routes import router
from .services.source import SourceFetcher
from .services.summarizer import SummaryGenerator
from .store import PaperStore

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[PaperStore] = None,
    fetcher: Optional[SourceFetcher] = None,
    generator: Optional[SummaryGenerator] = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        if settings is None:
            load_dotenv()
        pipeline = build_pipeline(
            settings or load_settings(),
            store=store,
            fetcher=fetcher,
            generator=generator,
        )
        app.state.pipeline = pipeline
        yield
        # Shutdown
        await pipeline.aclose()

    app = FastAPI(title="Daily Papers digest", lifespan=lifespan)
    app.include_router(router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
