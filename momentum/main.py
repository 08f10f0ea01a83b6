"""
FastAPI application factory.

Assembles the app from an explicit ``Settings`` object: the database,
token signer, password hasher and notifier are built here once and
stored on ``app.state``.  Database schema is managed by Alembic, NOT
create_all.
"""

import logging

from fastapi import FastAPI

from momentum.controllers.auth_controller import router as auth_router
from momentum.controllers.user_controller import router as user_router
from momentum.core.config import Settings
from momentum.core.database import Database
from momentum.core.errors import register_exception_handlers
from momentum.core.security import PasswordHasher, TokenSigner
from momentum.services.email_service import EmailNotifier, Notifier

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    notifier: Notifier | None = None,
) -> FastAPI:
    settings = settings or Settings()

    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )

    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # ── Shared collaborators ─────────────────────────────────────────
    app.state.settings = settings
    app.state.database = database or Database.from_settings(settings)
    app.state.token_signer = TokenSigner.from_settings(settings)
    app.state.password_hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
    app.state.notifier = notifier or EmailNotifier(settings)

    register_exception_handlers(app)

    # ── Register routers ─────────────────────────────────────────────
    app.include_router(auth_router)
    app.include_router(user_router)

    # ── Shutdown ─────────────────────────────────────────────────────
    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await app.state.database.dispose()
        logger.info("Database engine disposed.")

    # ── Health check ─────────────────────────────────────────────────
    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    return app
