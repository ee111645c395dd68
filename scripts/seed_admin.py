"""Admin seed script for the bulk-link API.

Creates the configured admin user if it doesn't exist and prints a bearer
token for it. Idempotent and safe to run on every container start.
"""

import asyncio
import logging
from datetime import timedelta
from sqlalchemy import select

from bulklink.auth.security import create_access_token
from bulklink.config import settings
from bulklink.database import AsyncSessionLocal
from bulklink.models.user import User

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def seed_admin() -> User:
    """Create default admin user if it doesn't exist."""
    async with AsyncSessionLocal() as session:
        result = await session.execute(
            select(User).where(User.email == settings.ADMIN_EMAIL)
        )
        admin_user = result.scalar_one_or_none()

        if admin_user:
            logger.info("Admin user already exists, skipping")
            return admin_user

        admin_user = User(
            name=settings.ADMIN_NAME,
            email=settings.ADMIN_EMAIL,
            user_role="admin",
            status="active",
        )

        session.add(admin_user)
        await session.commit()

        logger.info(f"Admin user created: {settings.ADMIN_EMAIL}")
        return admin_user


def main():
    """Entry point for the seed script."""
    admin_user = asyncio.run(seed_admin())
    token = create_access_token(
        data={"sub": admin_user.uuid, "email": admin_user.email, "role": admin_user.user_role},
        expires_delta=timedelta(days=1),
    )
    print(token)


if __name__ == "__main__":
    main()
