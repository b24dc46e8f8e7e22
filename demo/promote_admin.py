#!/usr/bin/env python3
"""Promote a user to SUPER_ADMIN directly in the database.

Role changes through the API require an existing SUPER_ADMIN, so the first
one has to be provisioned by an operator.

Usage:
    python demo/promote_admin.py admin@crmdemo.com
"""
import asyncio
import sys

from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from crm.config import settings
from crm.models.user import User, UserRole


async def promote(email: str):
    engine = create_async_engine(settings.DATABASE_URL)
    sf = async_sessionmaker(engine, class_=AsyncSession)
    async with sf() as s:
        r = await s.execute(
            update(User)
            .where(User.email == email.lower())
            .values(role=UserRole.SUPER_ADMIN)
        )
        await s.commit()
        print(f"Rows updated: {r.rowcount}")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(promote(sys.argv[1] if len(sys.argv) > 1 else "admin@crmdemo.com"))
