"""Issue a signed access token for a local user profile.

Usage: python scripts/create_dev_token.py <email> [minutes]
"""

import asyncio
import sys
from datetime import timedelta

from sqlalchemy import select

from surgery_support.core.security import create_access_token
from surgery_support.database import engine, session_scope
from surgery_support.models import user_profiles


async def create_dev_token(email: str, minutes: int) -> None:
    async with session_scope() as session:
        result = await session.execute(
            select(user_profiles.c.id).where(user_profiles.c.email == email)
        )
        user_id = result.scalar_one_or_none()
    await engine.dispose()

    if user_id is None:
        print(f"✗ No profile with email {email}", file=sys.stderr)
        sys.exit(1)

    token = create_access_token(
        data={"sub": str(user_id), "email": email},
        expires_delta=timedelta(minutes=minutes),
    )
    print(token)


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts/create_dev_token.py <email> [minutes]")
        sys.exit(1)
    asyncio.run(create_dev_token(sys.argv[1], int(sys.argv[2]) if len(sys.argv) > 2 else 60))
