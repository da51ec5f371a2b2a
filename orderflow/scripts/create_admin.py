# orderflow/scripts/create_admin.py
"""Bootstrap the first super admin: python -m orderflow.scripts.create_admin EMAIL PASSWORD [NAME]"""
import asyncio
import sys

from sqlalchemy.future import select

from orderflow.core.db import AsyncSessionLocal, init_models
from orderflow.core.security import hash_password
from orderflow.models.user_models import User, UserRole


async def create_admin(email: str, password: str, name: str = "Super Admin"):
    await init_models()
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(User).where(User.email == email.lower()))
        if result.scalars().first():
            print(f"User {email} already exists")
            return
        admin = User(
            email=email.lower(),
            name=name,
            password_hash=hash_password(password),
            role=UserRole.super_admin.value,
            is_active=True
        )
        session.add(admin)
        await session.commit()
        print("Super admin created!")


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(1)
    asyncio.run(create_admin(*sys.argv[1:4]))
