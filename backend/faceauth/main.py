import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.proxy import router as proxy_router
from .api.routes import router
from .config import Settings
from .core.embedding import EmbeddingExtractor
from .core.matcher import ImageMatcher
from .core.session import SessionFactory, SessionManager, default_session_factory

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[SessionFactory] = None,
    extractor: Optional[EmbeddingExtractor] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    matcher = ImageMatcher(
        extractor or EmbeddingExtractor(settings.embedding_model_path),
        settings.match_threshold,
    )
    sessions = SessionManager(
        session_factory or default_session_factory(settings),
        max_sessions=settings.max_sessions,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Shutting down, ending open sessions")
        # Release cameras and cancel polling for any session left open
        await sessions.end_all()
        matcher.extractor.unload()

    # Initialize FastAPI app
    app = FastAPI(title="faceauth", lifespan=lifespan)
    app.state.settings = settings
    app.state.sessions = sessions
    app.state.matcher = matcher

    # Enable CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount routes
    app.include_router(proxy_router)
    app.include_router(router, prefix="/api")

    return app


if __name__ == "__main__":
    import uvicorn

    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(settings), host="0.0.0.0", port=3000)
