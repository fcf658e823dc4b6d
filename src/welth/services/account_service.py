"""Account service: the account and dashboard actions.

Learn: Each action takes the caller's Identity explicitly (None when
signed out) and returns an ActionResult. Shared steps:

1. No identity → UNAUTHORIZED
2. No User row for the identity → NOT_FOUND
3. Query, then serialize money fields to floats

create_account additionally spends one token from the caller's rate
limit bucket, and runs "unset other defaults + insert" in a single
transaction with the user row locked, so two concurrent creates can't
both end up default.
"""

import math
from decimal import Decimal
from typing import Any, Optional

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from welth.auth.dependencies import Identity
from welth.cache.pages import PageCache
from welth.db.models import Account, Transaction, User
from welth.schemas.account import AccountCreate
from welth.security.guard import Guard
from welth.security.request import RequestDetails
from welth.services.results import ActionFailure, ErrorKind, action
from welth.services.serialization import serialize_money, to_dict
from welth.services.user_service import UserService

logger = structlog.get_logger()

DASHBOARD_PATH = "/dashboard"

# Numeric(12, 2) holds at most 10 integer digits
MAX_BALANCE = 10**10


def parse_balance(value: Any) -> Optional[float]:
    """Balance rounded to cents, or None if it isn't numeric or won't fit."""
    if isinstance(value, bool):
        return None
    try:
        balance = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    if not math.isfinite(balance):
        return None
    balance = round(balance, 2)
    if abs(balance) >= MAX_BALANCE:
        return None
    return balance


class AccountService:
    """Account listing/creation and dashboard data for one request."""

    def __init__(
        self,
        db: AsyncSession,
        guard: Optional[Guard] = None,
        cache: Optional[PageCache] = None,
    ):
        self.db = db
        self.guard = guard
        self.cache = cache or PageCache()
        self.users = UserService(db)

    async def _require_user(
        self, identity: Optional[Identity], *, for_update: bool = False
    ) -> User:
        if identity is None:
            raise ActionFailure(ErrorKind.UNAUTHORIZED, "Unauthorized")
        user = await self.users.get_by_clerk_id(identity.user_id, for_update=for_update)
        if user is None:
            raise ActionFailure(ErrorKind.NOT_FOUND, "User not found")
        return user

    # ─── Listing ────────────────────────────────────────

    @action("get_user_accounts")
    async def get_user_accounts(self, identity: Optional[Identity]) -> list[dict]:
        """All of the user's accounts, newest first, with transaction counts."""
        user = await self._require_user(identity)

        tx_count = (
            select(func.count(Transaction.id))
            .where(Transaction.account_id == Account.id)
            .correlate(Account)
            .scalar_subquery()
        )
        result = await self.db.execute(
            select(Account, tx_count.label("transaction_count"))
            .where(Account.user_id == user.id)
            .order_by(Account.created_at.desc())
        )
        return [
            {**serialize_money(to_dict(account)), "transaction_count": count}
            for account, count in result.all()
        ]

    # ─── Creation ───────────────────────────────────────

    @action("create_account")
    async def create_account(
        self,
        identity: Optional[Identity],
        data: AccountCreate,
        request: RequestDetails,
    ) -> dict:
        if identity is None:
            raise ActionFailure(ErrorKind.UNAUTHORIZED, "Unauthorized")

        if self.guard is not None:
            decision = await self.guard.protect(
                request,
                characteristics={"user_id": identity.user_id},
                requested=1,
            )
            if decision.is_denied():
                reason = decision.reason
                if reason is not None and reason.is_rate_limit():
                    raise ActionFailure(
                        ErrorKind.RATE_LIMITED,
                        "Too many requests. Please try again later.",
                        remaining=reason.remaining,
                        reset=reason.reset,
                    )
                raise ActionFailure(ErrorKind.POLICY_BLOCKED, "Request blocked")

        user = await self._require_user(identity, for_update=True)

        balance = parse_balance(data.balance)
        if balance is None:
            raise ActionFailure(ErrorKind.VALIDATION_FAILED, "Invalid balance amount")

        existing = await self.db.scalar(
            select(func.count(Account.id)).where(Account.user_id == user.id)
        )
        # A user's first account is always the default
        is_default = True if existing == 0 else data.is_default

        if is_default:
            await self.db.execute(
                update(Account)
                .where(Account.user_id == user.id, Account.is_default.is_(True))
                .values(is_default=False)
            )

        account = Account(
            name=data.name,
            type=data.type,
            balance=Decimal(str(balance)).quantize(Decimal("0.01")),
            is_default=is_default,
            user_id=user.id,
        )
        self.db.add(account)
        await self.db.flush()
        await self.db.commit()

        logger.info(
            "welth.accounts.created",
            account_id=str(account.id),
            user_id=str(user.id),
            is_default=is_default,
        )
        await self.cache.revalidate_path(DASHBOARD_PATH, identity.user_id)
        return serialize_money(to_dict(account))

    # ─── Dashboard ──────────────────────────────────────

    @action("get_dashboard_data")
    async def get_dashboard_data(self, identity: Optional[Identity]) -> list[dict]:
        """All of the user's transactions, most recent first."""
        user = await self._require_user(identity)
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.user_id == user.id)
            .order_by(Transaction.date.desc())
        )
        return [serialize_money(to_dict(tx)) for tx in result.scalars().all()]
