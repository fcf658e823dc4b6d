"""Account API routes.

Learn: Routes only translate HTTP to actions and back. The identity
comes from the auth gate (request.state) and is handed to the service
explicitly; failures arrive as ActionResult errors and `unwrap` turns
them into status codes.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from welth.api.deps import account_service
from welth.api.errors import unwrap
from welth.auth.dependencies import Identity, get_identity
from welth.schemas.account import AccountCreate, AccountRead, AccountSummary
from welth.security.request import RequestDetails
from welth.services.account_service import AccountService

router = APIRouter(prefix="/accounts")


@router.get("", response_model=list[AccountSummary])
async def list_accounts(
    identity: Optional[Identity] = Depends(get_identity),
    svc: AccountService = Depends(account_service),
):
    return unwrap(await svc.get_user_accounts(identity))


@router.post("", response_model=AccountRead, status_code=201)
async def create_account(
    body: AccountCreate,
    request: Request,
    identity: Optional[Identity] = Depends(get_identity),
    svc: AccountService = Depends(account_service),
):
    result = await svc.create_account(
        identity, body, RequestDetails.from_request(request)
    )
    return unwrap(result)
