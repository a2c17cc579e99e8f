"""Script to initialize the database."""

import asyncio

from sqlalchemy import select

from surgery_support.core.roles import RoleName, role_permissions
from surgery_support.database import engine
from surgery_support.models import metadata, roles


async def init_db() -> None:
    """Create all tables, seed the fixed roles and refresh their permissions."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

        existing = set((await conn.execute(select(roles.c.name))).scalars())
        missing = [role for role in RoleName if role.value not in existing]
        if missing:
            await conn.execute(
                roles.insert(),
                [{"name": role.value, "permissions": role_permissions(role)} for role in missing],
            )

        # Keep the informational permission lists in step with the capability table
        for role in RoleName:
            if role.value in existing:
                await conn.execute(
                    roles.update()
                    .where(roles.c.name == role.value)
                    .values(permissions=role_permissions(role))
                )

    await engine.dispose()
    print(f"✓ Database initialized successfully! ({len(missing)} roles seeded)")


if __name__ == "__main__":
    asyncio.run(init_db())
