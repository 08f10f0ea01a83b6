"""
Maintenance script: deletes expired refresh sessions.

Usage:
    uv run python -m momentum.scripts.cleanup_sessions
    uv run python -m momentum.scripts.cleanup_sessions --email someone@example.com

Login already prunes a user's own expired sessions; this sweeps the
rows of users who never come back.  Safe to run from cron.
"""

import argparse
import asyncio

from momentum.core.config import Settings
from momentum.core.database import Database
from momentum.services import session_service, user_service


async def cleanup(settings: Settings, email: str | None = None) -> int:
    database = Database.from_settings(settings)
    try:
        async with database.session_factory() as session:
            user_id = None
            if email:
                user = await user_service.get_by_email(email, session)
                if user is None:
                    print(f"\n❌  No user with email '{email}'.")
                    return 0
                user_id = user.id

            removed = await session_service.cleanup_expired_sessions(session, user_id=user_id)
            await session.commit()
    finally:
        await database.dispose()

    print(f"\n✅  Removed {removed} expired refresh session(s).\n")
    return removed


def main() -> None:
    parser = argparse.ArgumentParser(description="Delete expired refresh sessions.")
    parser.add_argument("--email", help="only clean up this user's sessions")
    args = parser.parse_args()
    asyncio.run(cleanup(Settings(), args.email))


if __name__ == "__main__":
    main()
