"""Shared route dependencies."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from welth.db.engine import get_db
from welth.services.account_service import AccountService


def account_service(
    request: Request, db: AsyncSession = Depends(get_db)
) -> AccountService:
    return AccountService(
        db,
        guard=request.app.state.action_guard,
        cache=request.app.state.page_cache,
    )
