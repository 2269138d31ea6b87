#!/usr/bin/env python3
"""
Database initialisation

Creates every table, seeds the system roles and, optionally, an ADMIN user.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --admin-username admin --admin-email admin@example.org --admin-password 'Secret123'
"""
from __future__ import annotations

import argparse
import asyncio
import logging

from drms.core.config import settings
from drms.core.database import AsyncSessionLocal, close_engine, create_all
from drms.core.enums import RoleName
from drms.core.exceptions import ConflictError
from drms.domains.auth.service import ensure_system_roles
from drms.domains.users.service import UserService

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


async def init_db(admin_username: str | None, admin_email: str | None, admin_password: str | None) -> None:
    logger.info(f"Creating tables on {settings.database_url.split('@')[-1]}")
    await create_all()

    async with AsyncSessionLocal() as session:
        roles = await ensure_system_roles(session)
        await session.commit()
        logger.info(f"System roles ready: {', '.join(r.code for r in roles)}")

        if admin_username and admin_email and admin_password:
            try:
                await UserService(session).register(
                    email=admin_email,
                    username=admin_username,
                    password=admin_password,
                    name="Administrator",
                    roles=[RoleName.ADMIN],
                )
                await session.commit()
                logger.info(f"Admin user {admin_username} created")
            except ConflictError:
                await session.rollback()
                logger.info(f"Admin user {admin_username} already exists, skipped")

    await close_engine()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create DRMS tables and seed roles")
    parser.add_argument("--admin-username")
    parser.add_argument("--admin-email")
    parser.add_argument("--admin-password")
    args = parser.parse_args()
    asyncio.run(init_db(args.admin_username, args.admin_email, args.admin_password))


if __name__ == "__main__":
    main()
