"""
Request-scoped wiring for the Session Authority.

The long-lived collaborators (settings, signer, hasher, notifier) are
built once in ``create_app`` and parked on ``app.state``; this
dependency combines them with the request's DB session.  Notifications
are deferred to background tasks so they run after the response.
"""

from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from momentum.core.database import get_db
from momentum.services.auth_service import SessionAuthority
from momentum.services.email_service import BackgroundNotifier


async def get_session_authority(
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
) -> SessionAuthority:
    state = request.app.state
    return SessionAuthority(
        db,
        settings=state.settings,
        signer=state.token_signer,
        hasher=state.password_hasher,
        notifier=BackgroundNotifier(state.notifier, background_tasks),
    )
