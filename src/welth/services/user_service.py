"""User service: lookup and provisioning of identity-provider users.

Learn: User rows mirror the identity provider. They are created and
updated from provider webhooks; actions only look them up by the
provider's subject id.
"""

from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from welth.db.models import User


class EmailInUseError(Exception):
    """Another provider user already owns this email address."""


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_clerk_id(
        self, clerk_user_id: str, *, for_update: bool = False
    ) -> Optional[User]:
        q = select(User).where(User.clerk_user_id == clerk_user_id)
        if for_update:
            q = q.with_for_update()
        result = await self.db.execute(q)
        return result.scalars().first()

    async def upsert(
        self,
        clerk_user_id: str,
        email: str,
        name: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> User:
        """Create or refresh the row for a provider user."""
        user = await self.get_by_clerk_id(clerk_user_id)
        if user is None:
            user = User(clerk_user_id=clerk_user_id, email=email)
            self.db.add(user)
        user.email = email
        user.name = name
        user.image_url = image_url
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise EmailInUseError(email)
        await self.db.commit()
        return user

    async def delete(self, clerk_user_id: str) -> bool:
        result = await self.db.execute(
            delete(User).where(User.clerk_user_id == clerk_user_id)
        )
        await self.db.commit()
        return result.rowcount > 0
