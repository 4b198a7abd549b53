"""
Database seeding for the first staff account.

Seeds:
- Admin user from SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD (skipped if it exists)

Usage:
  python -m talent_quest.db.run_migrations upgrade head
  python -m talent_quest.db.seed
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from talent_quest.core.security import get_password_hash
from talent_quest.core.settings import get_app_settings
from talent_quest.db.session import get_session_maker
from talent_quest.repositories.security import SecurityRepository

logger = logging.getLogger(__name__)


async def seed_admin(session: AsyncSession) -> bool:
    """Create the configured admin account. Returns False when it already exists."""
    settings = get_app_settings()
    repo = SecurityRepository(session)
    if await repo.get_user_by_email(settings.SEED_ADMIN_EMAIL):
        logger.info("Admin %s already present; nothing to seed", settings.SEED_ADMIN_EMAIL)
        return False
    await repo.create_user(
        email=settings.SEED_ADMIN_EMAIL,
        password_hash=get_password_hash(settings.SEED_ADMIN_PASSWORD),
        full_name=settings.SEED_ADMIN_NAME,
        role="admin",
    )
    logger.info("Seeded admin account %s", settings.SEED_ADMIN_EMAIL)
    return True


# PUBLIC_INTERFACE
async def seed_all() -> None:
    """Seed the database with the initial admin account."""
    async with get_session_maker()() as session:
        await seed_admin(session)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed_all())
