"""
FastAPI main application
Group Evaluation Server - cached collections, score aggregation and rankings

Modular architecture with separated API routers in evaluator/api/:
- health.py: Health check and collection sizes
- leaderboard.py: Dashboard, group/student rankings, rubric statistics
- admin.py: Group, student, task and evaluation management
- auth.py: Sign-in / sign-out events
- config.py: Effective configuration

All routers reach the shared AppContext through app.state (see api/deps.py).
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from typing import Optional
import logging
import os

from evaluator.config import load_config
from evaluator.context import AppContext, build_context
from evaluator.core.auth import AuthNotifier, AuthSession
from evaluator.core.loader import CollectionLoader

# Import all API routers
from evaluator.api import health, admin, auth, leaderboard
from evaluator.api import config as config_router


# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def attach_context(app: FastAPI, context: AppContext) -> None:
    """Wire the context, loader and auth session onto app.state"""
    loader = CollectionLoader(context)
    notifier = AuthNotifier()
    app.state.context = context
    app.state.loader = loader
    app.state.notifier = notifier
    app.state.auth = AuthSession(context, loader, notifier)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup: build the context from config unless one was injected
    if getattr(app.state, "context", None) is None:
        try:
            settings = load_config()
        except Exception as e:
            logger.error(f"❌ Failed to load configuration: {e}")
            raise
        logging.getLogger().setLevel(settings.log_level.upper())
        attach_context(app, build_context(settings))

    failures = await app.state.loader.load_all()
    collections = app.state.context.collections
    logger.info(
        f"✅ Server started with {len(collections.groups)} groups, "
        f"{len(collections.students)} students, {len(collections.tasks)} tasks, "
        f"{len(collections.evaluations)} evaluations"
    )
    if failures:
        logger.warning(f"⚠️ Not loaded at startup: {', '.join(failures)}")

    yield

    # Shutdown
    await app.state.context.store.close()
    logger.info("🛑 Server shutting down")


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    app = FastAPI(
        title="Group Evaluation Server",
        description="Cached group/student/task collections with evaluation scoring and rankings",
        version="1.0.0",
        lifespan=lifespan
    )

    if context is not None:
        attach_context(app, context)

    # CORS middleware (allow all origins for development)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ==================== INCLUDE ROUTERS ====================

    # Health check (GET /)
    app.include_router(health.router)

    # Rankings and dashboard (GET /api/dashboard, /api/group-ranking, ...)
    app.include_router(leaderboard.router)

    # Management endpoints (POST /admin/groups, ...)
    app.include_router(admin.router)

    # Auth events (POST /auth/signed-in, /auth/signed-out)
    app.include_router(auth.router)

    # Config endpoint (GET /config)
    app.include_router(config_router.router)

    # ==================== STATIC FILES ====================

    # Mount static files directory for the presentation layer
    if os.path.exists("static"):
        app.mount("/static", StaticFiles(directory="static"), name="static")

    return app


app = create_app()


# ==================== RUN SERVER ====================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
