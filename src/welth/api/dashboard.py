"""Dashboard routes.

GET /api/dashboard returns the transaction feed. GET /dashboard is the
page-data endpoint behind the auth gate: accounts plus transactions,
served from the page cache until an account write revalidates it.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from welth.api.deps import account_service
from welth.api.errors import unwrap
from welth.auth.dependencies import Identity, get_identity
from welth.schemas.transaction import DashboardRead, TransactionRead
from welth.services.account_service import DASHBOARD_PATH, AccountService

router = APIRouter()
pages_router = APIRouter()


@router.get("/dashboard", response_model=list[TransactionRead])
async def dashboard_transactions(
    identity: Optional[Identity] = Depends(get_identity),
    svc: AccountService = Depends(account_service),
):
    return unwrap(await svc.get_dashboard_data(identity))


@pages_router.get(DASHBOARD_PATH, response_model=DashboardRead)
async def dashboard_page(
    request: Request,
    identity: Optional[Identity] = Depends(get_identity),
    svc: AccountService = Depends(account_service),
):
    cache = request.app.state.page_cache
    if identity is not None:
        cached = await cache.get(DASHBOARD_PATH, identity.user_id)
        if cached is not None:
            return cached

    page = {
        "accounts": unwrap(await svc.get_user_accounts(identity)),
        "transactions": unwrap(await svc.get_dashboard_data(identity)),
    }
    page = DashboardRead.model_validate(page).model_dump(mode="json")
    await cache.set(DASHBOARD_PATH, identity.user_id, page)
    return page
